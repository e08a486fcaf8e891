"""Order routes."""

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from storefront.errors import NotFound, ValidationFailed
from storefront.forms.checkout import CheckoutForm, PaymentForm, StatusUpdateForm
from storefront.services import checkout, payments
from storefront.services.checkout import to_cents
from storefront.utils.decorators import admin_required, resolve_cart_owner

orders_bp = Blueprint('orders', __name__)

MAX_PAGE_SIZE = 100


def _money(value):
    return str(to_cents(value))


def _address(order, kind):
    snapshot = order.address(kind)
    return {
        'firstName': snapshot['first_name'],
        'lastName': snapshot['last_name'],
        'company': snapshot['company'],
        'addressLine1': snapshot['address_line_1'],
        'addressLine2': snapshot['address_line_2'],
        'city': snapshot['city'],
        'state': snapshot['state'],
        'postalCode': snapshot['postal_code'],
        'country': snapshot['country'],
    }


def serialize_order(order):
    return {
        'id': order.id,
        'orderNumber': order.order_number,
        'userId': order.user_id,
        'email': order.email,
        'phone': order.phone,
        'status': order.status,
        'paymentStatus': order.payment_status,
        'paymentMethod': order.payment_method,
        'paymentReference': order.payment_reference,
        'subtotal': _money(order.subtotal),
        'taxAmount': _money(order.tax_amount),
        'shippingAmount': _money(order.shipping_amount),
        'discountAmount': _money(order.discount_amount),
        'total': _money(order.total),
        'notes': order.notes,
        'trackingNumber': order.tracking_number,
        'billingAddress': _address(order, 'billing'),
        'shippingAddress': _address(order, 'shipping'),
        'items': [{
            'id': item.id,
            'productId': item.product_id,
            'name': item.product_name,
            'quantity': item.quantity,
            'price': _money(item.unit_price),
            'total': _money(item.line_total),
        } for item in order.items],
        'createdAt': order.created_at.isoformat() if order.created_at else None,
        'paidAt': order.paid_at.isoformat() if order.paid_at else None,
        'shippedAt': order.shipped_at.isoformat() if order.shipped_at else None,
        'deliveredAt': order.delivered_at.isoformat() if order.delivered_at else None,
    }


def _visible_order(order_id):
    """Admins see every order, customers their own, guests need the order e-mail."""
    if current_user.is_authenticated:
        if current_user.is_admin():
            return checkout.get_order(order_id)
        return checkout.get_order(order_id, user_id=current_user.id)

    order = checkout.get_order(order_id)
    email = (request.args.get('email') or '').strip().lower()
    if order.user_id is not None or not email or email != order.email.lower():
        raise NotFound('Order not found')
    return order


@orders_bp.route('', methods=['POST'])
def create_order():
    """Place an order from the caller's cart or an explicit item list."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationFailed('Request body must be a JSON object')
    arguments = CheckoutForm().checkout_arguments(payload)
    owner = resolve_cart_owner(mint=False)
    order = checkout.create_order(owner, **arguments)
    return jsonify({
        'message': 'Order created successfully',
        'order': serialize_order(order),
    }), 201


@orders_bp.route('/mine', methods=['GET'])
@login_required
def my_orders():
    """The signed-in customer's order history, paginated."""
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 10, type=int)
    errors = {}
    if page < 1:
        errors['page'] = ['Page must be a positive integer']
    if not 1 <= limit <= MAX_PAGE_SIZE:
        errors['limit'] = [f'Limit must be between 1 and {MAX_PAGE_SIZE}']
    if errors:
        raise ValidationFailed(errors=errors)

    pagination = checkout.list_orders(current_user.id, page=page, per_page=limit)
    return jsonify({
        'orders': [serialize_order(order) for order in pagination.items],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': pagination.total,
            'pages': pagination.pages,
        },
    })


@orders_bp.route('/<int:order_id>', methods=['GET'])
def order_detail(order_id):
    return jsonify({'order': serialize_order(_visible_order(order_id))})


@orders_bp.route('/<int:order_id>/status', methods=['PUT'])
@admin_required
def update_status(order_id):
    """Update order status (admin)."""
    form = StatusUpdateForm().validate_or_raise()
    order = checkout.transition_status(
        order_id,
        form.status.data,
        notes=form.notes.data or None,
        tracking_number=form.trackingNumber.data or None,
    )
    return jsonify({'message': 'Order status updated', 'order': serialize_order(order)})


@orders_bp.route('/<int:order_id>', methods=['DELETE'])
@admin_required
def delete_order(order_id):
    checkout.delete_order(order_id)
    return jsonify({'message': 'Order deleted'})


@orders_bp.route('/<int:order_id>/payment', methods=['POST'])
def start_payment(order_id):
    """Open a hosted payment page for an order the caller can see."""
    form = PaymentForm().validate_or_raise()
    _visible_order(order_id)
    url = payments.initiate_payment(
        order_id,
        success_url=form.successUrl.data or None,
        cancel_url=form.cancelUrl.data or None,
    )
    return jsonify({'url': url})
