"""Request decorators: cart owner resolution and role checks."""

from functools import wraps
from uuid import uuid4

from flask import abort, g, request
from flask_login import current_user

from storefront.errors import ValidationFailed
from storefront.extensions import login_manager
from storefront.models import GuestOwner, UserOwner

SESSION_HEADER = 'X-Session-Id'


def resolve_cart_owner(mint=True):
    """Work out whose cart the current request addresses.

    Signed-in users own their cart by user id. Anonymous clients identify
    their cart with the ``X-Session-Id`` header (or a ``sessionId`` body
    field); without either a fresh session id is minted, or None is
    returned when ``mint`` is false.
    """
    if current_user.is_authenticated:
        return UserOwner(current_user.id)

    session_id = request.headers.get(SESSION_HEADER)
    if not session_id:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            session_id = body.get('sessionId')
    session_id = str(session_id).strip() if session_id else None
    if session_id:
        if len(session_id) > 64:
            raise ValidationFailed(errors={'sessionId': ['Session ID is too long']})
        return GuestOwner(session_id)
    return GuestOwner(uuid4().hex) if mint else None


def cart_owner(f):
    """Inject the resolved ``owner`` keyword argument."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        owner = resolve_cart_owner()
        g.cart_owner = owner
        return f(*args, owner=owner, **kwargs)
    return decorated_function


def with_session(body):
    """Echo the guest session id so the client can keep addressing its cart."""
    owner = g.get('cart_owner')
    if isinstance(owner, GuestOwner):
        body['sessionId'] = owner.session_id
    return body


def admin_required(f):
    """Decorator to require admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        if not current_user.is_admin():
            abort(403)
        return f(*args, **kwargs)
    return decorated_function
