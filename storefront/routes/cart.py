"""Cart routes."""

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from storefront.forms.cart import AddItemForm, MergeCartForm, UpdateItemForm
from storefront.models import UserOwner
from storefront.services import cart_merge, cart_store
from storefront.services.checkout import to_cents
from storefront.utils.decorators import cart_owner, with_session

cart_bp = Blueprint('cart', __name__)


def serialize_item(item, product=None):
    product = product or item.product
    return {
        'id': item.id,
        'productId': item.product_id,
        'name': product.name,
        'quantity': item.quantity,
        'unitPrice': str(to_cents(item.unit_price)),
        'currentPrice': str(to_cents(product.price)),
        'lineTotal': str(to_cents(item.line_total)),
        'stock': product.stock,
        'status': product.status,
    }


def serialize_cart(view):
    items = []
    for line in view.lines:
        entry = serialize_item(line.item, line.product)
        entry['priceChanged'] = line.price_changed
        entry['available'] = line.is_purchasable
        items.append(entry)
    return {
        'items': items,
        'summary': {
            'itemCount': view.item_count,
            'subtotal': str(view.subtotal),
            'total': str(view.total),
        },
    }


@cart_bp.route('', methods=['GET'])
@cart_owner
def view_cart(owner):
    """View shopping cart."""
    return jsonify(with_session(serialize_cart(cart_store.get_cart(owner))))


@cart_bp.route('/items', methods=['POST'])
@cart_owner
def add_to_cart(owner):
    """Add product to cart."""
    form = AddItemForm().validate_or_raise()
    item = cart_store.add_item(owner, form.productId.data, form.quantity.data)
    return jsonify(with_session({
        'message': 'Item added to cart',
        'item': serialize_item(item),
        'count': cart_store.get_count(owner),
    })), 201


@cart_bp.route('/items/<int:item_id>', methods=['PUT'])
@cart_owner
def update_cart(item_id, owner):
    """Update cart item quantity."""
    form = UpdateItemForm().validate_or_raise()
    item = cart_store.update_item(owner, item_id, form.quantity.data)
    return jsonify(with_session({
        'message': 'Cart updated',
        'item': serialize_item(item),
        'count': cart_store.get_count(owner),
    }))


@cart_bp.route('/items/<int:item_id>', methods=['DELETE'])
@cart_owner
def remove_from_cart(item_id, owner):
    """Remove item from cart."""
    cart_store.remove_item(owner, item_id)
    return jsonify(with_session({
        'message': 'Item removed from cart',
        'count': cart_store.get_count(owner),
    }))


@cart_bp.route('', methods=['DELETE'])
@cart_owner
def clear_cart(owner):
    """Clear all items from cart."""
    removed = cart_store.clear_cart(owner)
    return jsonify(with_session({'message': 'Cart cleared', 'removed': removed}))


@cart_bp.route('/count')
@cart_owner
def cart_count(owner):
    """Get cart item count."""
    return jsonify(with_session({'count': cart_store.get_count(owner)}))


@cart_bp.route('/merge', methods=['POST'])
@login_required
def merge_cart():
    """Fold a guest cart into the signed-in user's cart."""
    form = MergeCartForm().validate_or_raise()
    result = cart_merge.merge_guest_cart(current_user.id, form.sessionId.data)
    return jsonify({
        'message': 'Cart merged',
        'transferred': result.transferred,
        'merged': result.merged,
        'count': cart_store.get_count(UserOwner(current_user.id)),
    })
