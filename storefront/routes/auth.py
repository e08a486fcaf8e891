"""Authentication routes."""

import structlog
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from storefront.errors import StorefrontError
from storefront.forms.auth import LoginForm
from storefront.models import User
from storefront.services.cart_merge import merge_guest_cart
from storefront.utils.decorators import SESSION_HEADER

auth_bp = Blueprint('auth', __name__)
logger = structlog.get_logger(__name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    """User login. A guest cart named by the request is folded in."""
    form = LoginForm().validate_or_raise()
    user = User.query.filter_by(email=form.email.data.lower()).first()

    if user is None or not user.check_password(form.password.data):
        return jsonify({'error': 'Invalid email or password'}), 401
    if not user.is_active:
        return jsonify({'error': 'Your account has been deactivated. Please contact support.'}), 403

    login_user(user, remember=form.remember.data)

    body = {
        'message': f'Welcome back, {user.name}!',
        'user': {'id': user.id, 'email': user.email, 'name': user.name, 'role': user.role},
    }
    guest_session = request.headers.get(SESSION_HEADER) or form.sessionId.data
    if guest_session:
        try:
            result = merge_guest_cart(user.id, guest_session)
        except StorefrontError as exc:
            # Login stands even if the cart could not be merged.
            logger.warning('login_cart_merge_failed', user_id=user.id, error=exc.message)
        else:
            body['cartMerge'] = {'transferred': result.transferred, 'merged': result.merged}
    return jsonify(body)


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """User logout."""
    logout_user()
    return jsonify({'message': 'You have been logged out.'})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'user': {'id': current_user.id, 'email': current_user.email,
                             'name': current_user.name, 'role': current_user.role}})
