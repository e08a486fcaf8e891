"""Order assembler: turns a cart (or an explicit item list) into an order.

Stock re-validation, order persistence, stock decrement and cart clearing
happen inside one unit of work; a failure at any step leaves no trace.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

import structlog
from flask import current_app

from storefront.errors import EmptyCart, InvalidState, NotFound, StorefrontError, ValidationFailed
from storefront.extensions import db
from storefront.models import (ADDRESS_FIELDS, Address, CartItem, Order, OrderItem,
                               ORDER_STATUSES, Product, UserOwner)
from storefront.services.inventory import check_stock, consume_stock, load_products
from storefront.services.notifications import send_order_confirmation
from storefront.services.unit_of_work import unit_of_work

logger = structlog.get_logger(__name__)

CENT = Decimal('0.01')
ORDER_NUMBER_ATTEMPTS = 5


def to_cents(amount):
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int
    name: str = None


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    discount_amount: Decimal
    total: Decimal


def calculate_totals(subtotal, discount=Decimal('0')):
    """Apply tax, flat shipping with a free-shipping threshold, and discount."""
    config = current_app.config
    subtotal = to_cents(subtotal)
    tax = to_cents(subtotal * config['TAX_RATE'])
    if subtotal > config['FREE_SHIPPING_THRESHOLD']:
        shipping = to_cents(0)
    else:
        shipping = to_cents(config['SHIPPING_FLAT_FEE'])
    discount = to_cents(discount)
    return OrderTotals(
        subtotal=subtotal,
        tax_amount=tax,
        shipping_amount=shipping,
        discount_amount=discount,
        total=to_cents(subtotal + tax + shipping - discount),
    )


def create_order(owner, email, billing_address, shipping_address, items=None,
                 phone=None, payment_method='card', notes=None, save_address=False):
    """Create an order and return it with its items.

    ``items`` is an optional list of ``{'product_id', 'quantity'}`` mappings
    for checkouts that bypass the cart; otherwise the owner's cart is used.
    """
    if owner is None and not items:
        raise EmptyCart()

    with unit_of_work('checkout.create_order'):
        lines = _resolve_lines(owner, items)
        if not lines:
            raise EmptyCart()

        # Lock and re-check every product before writing anything.
        products = load_products([line.product_id for line in lines], for_update=True)
        for line in lines:
            product = products.get(line.product_id)
            check_stock(product, line.quantity, name=line.name or _label(product, line))

        totals = calculate_totals(
            sum((products[line.product_id].price * line.quantity for line in lines), Decimal('0'))
        )
        order = Order(
            order_number=_unique_order_number(),
            user_id=owner.user_id if isinstance(owner, UserOwner) else None,
            email=email,
            phone=phone,
            status='pending',
            payment_status='pending',
            payment_method=payment_method,
            notes=notes,
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            shipping_amount=totals.shipping_amount,
            discount_amount=totals.discount_amount,
            total=totals.total,
        )
        order.set_address('billing', billing_address)
        order.set_address('shipping', shipping_address)
        db.session.add(order)

        for line in lines:
            product = products[line.product_id]
            order.items.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                quantity=line.quantity,
                unit_price=product.price,
                line_total=to_cents(product.price * line.quantity),
            ))
            consume_stock(product.id, line.quantity, product.name)

        order.add_status_history('pending', 'Order placed')
        _clear_source_cart(owner, lines, explicit=bool(items))

    logger.info('order_placed', order_number=order.order_number, owner=owner,
                lines=len(lines), total=str(totals.total))

    if save_address and isinstance(owner, UserOwner):
        _save_shipping_address(owner.user_id, shipping_address)
    send_order_confirmation(order)
    return order


def _resolve_lines(owner, items):
    if items:
        merged = {}
        for entry in items:
            try:
                product_id = int(entry['product_id'])
                quantity = int(entry['quantity'])
            except (KeyError, TypeError, ValueError):
                raise ValidationFailed(errors={'items': ['Each item needs a product id and quantity']})
            if quantity < 1:
                raise ValidationFailed(errors={'items': ['Quantity must be at least 1']})
            previous = merged.get(product_id)
            merged[product_id] = LineRequest(
                product_id=product_id,
                quantity=quantity + (previous.quantity if previous else 0),
                name=entry.get('name') or (previous.name if previous else None),
            )
        return list(merged.values())

    rows = (
        db.session.query(CartItem.product_id, CartItem.quantity, Product.name)
        .join(Product, CartItem.product_id == Product.id)
        .filter(CartItem.owner_clause(owner))
        .order_by(CartItem.id)
        .all()
    )
    return [LineRequest(product_id=row.product_id, quantity=row.quantity, name=row.name)
            for row in rows]


def _label(product, line):
    return product.name if product is not None else f'#{line.product_id}'


def _unique_order_number():
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        number = Order.generate_order_number()
        if not db.session.query(Order.id).filter_by(order_number=number).first():
            return number
    raise InvalidState('Could not allocate an order number, please retry')


def _clear_source_cart(owner, lines, explicit):
    if owner is None:
        return
    query = CartItem.owned_by(owner)
    if explicit:
        query = query.filter(CartItem.product_id.in_([line.product_id for line in lines]))
    query.delete(synchronize_session=False)


def _save_shipping_address(user_id, shipping_address):
    """Best-effort copy of the shipping address into the user's address book."""
    try:
        with unit_of_work('checkout.save_address'):
            existing = Address.query.filter_by(user_id=user_id).all()
            if any(address.matches(shipping_address) for address in existing):
                return
            db.session.add(Address(
                user_id=user_id,
                label='Shipping',
                is_default=not existing,
                **{field: shipping_address.get(field) for field in ADDRESS_FIELDS},
            ))
    except StorefrontError as exc:
        logger.warning('address_save_failed', user_id=user_id, error=exc.message)


def get_order(order_id, user_id=None):
    """Fetch an order, optionally restricted to one user's orders."""
    query = Order.query.filter_by(id=order_id)
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    order = query.first()
    if order is None:
        raise NotFound('Order not found')
    return order


def get_order_by_number(order_number):
    order = Order.query.filter_by(order_number=order_number).first()
    if order is None:
        raise NotFound('Order not found')
    return order


def list_orders(user_id, page=1, per_page=10):
    """One page of a user's order history, newest first."""
    query = Order.query.filter_by(user_id=user_id)
    return query.order_by(Order.created_at.desc(), Order.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )


def transition_status(order_id, new_status, notes=None, tracking_number=None):
    """Move an order along pending → processing → shipped → delivered.

    Cancellation is allowed from pending and processing only.
    """
    if new_status not in ORDER_STATUSES:
        raise ValidationFailed(errors={'status': [f'Unknown status {new_status}']})

    with unit_of_work('orders.transition_status'):
        order = Order.query.filter_by(id=order_id).with_for_update().first()
        if order is None:
            raise NotFound('Order not found')
        if not order.can_transition_to(new_status):
            raise InvalidState(f'Cannot move order from {order.status} to {new_status}')

        previous = order.status
        order.status = new_status
        if tracking_number:
            order.tracking_number = tracking_number
        if new_status == 'shipped' and not order.shipped_at:
            order.shipped_at = datetime.utcnow()
        elif new_status == 'delivered' and not order.delivered_at:
            order.delivered_at = datetime.utcnow()
        order.add_status_history(new_status, notes)

    logger.info('order_status_changed', order_number=order.order_number,
                previous=previous, status=new_status)
    return order


def delete_order(order_id):
    """Admin deletion; items and history go with the order."""
    with unit_of_work('orders.delete'):
        order = db.session.get(Order, order_id)
        if order is None:
            raise NotFound('Order not found')
        number = order.order_number
        db.session.delete(order)
    logger.info('order_deleted', order_number=number)
