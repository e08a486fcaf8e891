"""Cart store: per-owner cart rows keyed by user id or guest session id."""

from dataclasses import dataclass, field
from decimal import Decimal

import structlog
from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from storefront.errors import NotFound, ValidationFailed
from storefront.extensions import db
from storefront.models import CartItem, Product
from storefront.services.inventory import check_stock, ensure_available
from storefront.services.unit_of_work import unit_of_work

logger = structlog.get_logger(__name__)

CENT = Decimal('0.01')


@dataclass
class CartLine:
    """A cart row joined with the live product it points at."""
    item: CartItem
    product: Product

    @property
    def line_total(self):
        return self.item.line_total

    @property
    def price_changed(self):
        return self.product.price != self.item.unit_price

    @property
    def is_purchasable(self):
        return self.product.is_active and self.product.stock >= self.item.quantity


@dataclass
class CartView:
    lines: list = field(default_factory=list)

    @property
    def item_count(self):
        return sum(line.item.quantity for line in self.lines)

    @property
    def subtotal(self):
        total = sum((line.line_total for line in self.lines), Decimal('0'))
        return total.quantize(CENT)

    @property
    def total(self):
        # Tax and shipping are only known at checkout.
        return self.subtotal


def validate_quantity(quantity):
    """Shared quantity rule for add and update; never treats <= 0 as delete."""
    maximum = current_app.config['MAX_CART_QUANTITY']
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationFailed(errors={'quantity': ['Quantity must be a whole number']})
    if quantity < 1 or quantity > maximum:
        raise ValidationFailed(errors={'quantity': [f'Quantity must be between 1 and {maximum}']})
    return quantity


def get_cart(owner):
    """Return the owner's cart with current product data, newest first."""
    rows = (
        db.session.query(CartItem, Product)
        .join(Product, CartItem.product_id == Product.id)
        .filter(CartItem.owner_clause(owner))
        .order_by(CartItem.created_at.desc(), CartItem.id.desc())
        .all()
    )
    return CartView(lines=[CartLine(item=item, product=product) for item, product in rows])


def get_count(owner):
    """Total quantity across the owner's cart, computed from the rows."""
    count = (
        db.session.query(func.coalesce(func.sum(CartItem.quantity), 0))
        .filter(CartItem.owner_clause(owner))
        .scalar()
    )
    return int(count)


def add_item(owner, product_id, quantity):
    """Add ``quantity`` of a product, accumulating onto an existing row."""
    validate_quantity(quantity)

    with unit_of_work('cart.add_item'):
        product = db.session.get(Product, product_id)
        if product is None or not product.is_active:
            raise NotFound('Product not found or unavailable')

        item = CartItem.owned_by(owner).filter_by(product_id=product_id).first()
        if item is not None:
            check_stock(product, item.quantity + quantity)
            item.quantity = CartItem.quantity + quantity
        else:
            check_stock(product, quantity)
            item = _insert_item(owner, product, quantity)

    logger.info('cart_item_added', owner=owner, product_id=product_id,
                quantity=quantity, line_quantity=item.quantity)
    return item


def _insert_item(owner, product, quantity):
    """Insert a new row; a concurrent insert of the same pair becomes an increment."""
    item = CartItem(product_id=product.id, quantity=quantity,
                    unit_price=product.price, **CartItem.owner_columns(owner))
    try:
        with db.session.begin_nested():
            db.session.add(item)
    except IntegrityError:
        item = CartItem.owned_by(owner).filter_by(product_id=product.id).first()
        if item is None:
            raise
        check_stock(product, item.quantity + quantity)
        item.quantity = CartItem.quantity + quantity
    return item


def update_item(owner, item_id, quantity):
    """Set a row's quantity outright."""
    validate_quantity(quantity)

    with unit_of_work('cart.update_item'):
        item = _owned_item(owner, item_id)
        ensure_available(item.product_id, quantity)
        item.quantity = quantity
    return item


def remove_item(owner, item_id):
    with unit_of_work('cart.remove_item'):
        item = _owned_item(owner, item_id)
        db.session.delete(item)


def clear_cart(owner):
    """Delete every row of the owner's cart. Returns the number removed."""
    with unit_of_work('cart.clear'):
        removed = CartItem.owned_by(owner).delete(synchronize_session=False)
    return removed


def _owned_item(owner, item_id):
    item = CartItem.owned_by(owner).filter_by(id=item_id).first()
    if item is None:
        raise NotFound('Cart item not found')
    return item
