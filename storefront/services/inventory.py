"""Inventory guard: availability and stock-ceiling checks.

The checks never write. The one write, :func:`consume_stock`, belongs to
checkout and must run inside the same transaction as the locked read that
validated it.
"""

import structlog
from sqlalchemy import update

from storefront.errors import InsufficientStock, ProductUnavailable
from storefront.extensions import db
from storefront.models import Product

logger = structlog.get_logger(__name__)


def check_stock(product, quantity, name=None):
    """Raise if ``quantity`` units of ``product`` cannot be sold right now."""
    if product is None or not product.is_active:
        label = name or (product.name if product is not None else 'requested')
        raise ProductUnavailable(label)
    if product.stock < quantity:
        logger.info('stock_rejected', product_id=product.id,
                    requested=quantity, available=product.stock)
        raise InsufficientStock(name or product.name, product.stock)


def load_products(product_ids, for_update=False):
    """Read the current product rows, keyed by id.

    With ``for_update`` the rows are locked in ascending id order so that two
    checkouts touching the same products always queue in the same order.
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    query = Product.query.filter(Product.id.in_(ids)).order_by(Product.id)
    if for_update:
        query = query.with_for_update()
    return {product.id: product for product in query.all()}


def ensure_available(product_id, quantity, name=None, for_update=False):
    """Load a product and check it; returns the product on success."""
    product = load_products([product_id], for_update=for_update).get(product_id)
    check_stock(product, quantity, name)
    return product


def consume_stock(product_id, quantity, name):
    """Decrement stock and bump the sales counter, guarded on availability.

    The ``stock >= quantity`` predicate makes the write itself refuse to
    oversell even if the caller's read was stale.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity, Product.status == 'active')
        .values(stock=Product.stock - quantity,
                sales_count=Product.sales_count + quantity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = db.session.get(Product, product_id, populate_existing=True)
        if current is None or not current.is_active:
            raise ProductUnavailable(name)
        raise InsufficientStock(name, current.stock)
