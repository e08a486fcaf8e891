"""Order models."""

from datetime import datetime
import secrets
import time
from storefront.extensions import db
from storefront.models.user import ADDRESS_FIELDS


ORDER_STATUSES = ('pending', 'processing', 'shipped', 'delivered', 'cancelled')
PAYMENT_STATUSES = ('pending', 'paid', 'failed', 'refunded')

# Allowed forward moves of Order.status; anything else is rejected.
ORDER_TRANSITIONS = {
    'pending': ('processing', 'cancelled'),
    'processing': ('shipped', 'cancelled'),
    'shipped': ('delivered',),
    'delivered': (),
    'cancelled': (),
}


class Order(db.Model):
    """Order header."""
    __tablename__ = 'orders'

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(50), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), index=True)  # Null for guest checkout
    email = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(20))

    # Status
    status = db.Column(db.String(20), nullable=False, default='pending')
    payment_status = db.Column(db.String(20), nullable=False, default='pending')
    payment_method = db.Column(db.String(20), default='card')
    payment_id = db.Column(db.String(255), index=True)  # External checkout session id
    payment_reference = db.Column(db.String(255))  # Provider's payment reference once paid

    # Billing address snapshot
    billing_first_name = db.Column(db.String(50), nullable=False)
    billing_last_name = db.Column(db.String(50), nullable=False)
    billing_company = db.Column(db.String(100))
    billing_address_line_1 = db.Column(db.String(200), nullable=False)
    billing_address_line_2 = db.Column(db.String(200))
    billing_city = db.Column(db.String(100), nullable=False)
    billing_state = db.Column(db.String(100), nullable=False)
    billing_postal_code = db.Column(db.String(20), nullable=False)
    billing_country = db.Column(db.String(2), nullable=False)

    # Shipping address snapshot
    shipping_first_name = db.Column(db.String(50), nullable=False)
    shipping_last_name = db.Column(db.String(50), nullable=False)
    shipping_company = db.Column(db.String(100))
    shipping_address_line_1 = db.Column(db.String(200), nullable=False)
    shipping_address_line_2 = db.Column(db.String(200))
    shipping_city = db.Column(db.String(100), nullable=False)
    shipping_state = db.Column(db.String(100), nullable=False)
    shipping_postal_code = db.Column(db.String(20), nullable=False)
    shipping_country = db.Column(db.String(2), nullable=False)

    # Pricing
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(10, 2), nullable=False)
    shipping_amount = db.Column(db.Numeric(10, 2), nullable=False)
    discount_amount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(10, 2), nullable=False)

    # Additional info
    notes = db.Column(db.Text)
    tracking_number = db.Column(db.String(100))

    # Timestamps
    paid_at = db.Column(db.DateTime)
    shipped_at = db.Column(db.DateTime)
    delivered_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    items = db.relationship('OrderItem', backref='order', lazy='select',
                            cascade='all, delete-orphan', order_by='OrderItem.id')
    status_history = db.relationship('OrderStatusHistory', backref='order', lazy='dynamic', passive_deletes=True,
                                     cascade='all, delete-orphan')

    @staticmethod
    def generate_order_number():
        """Generate a human-readable order number."""
        timestamp = str(int(time.time() * 1000))[-6:]
        suffix = f'{secrets.randbelow(1000):03d}'
        return f'ORD-{timestamp}{suffix}'

    def set_address(self, kind, address):
        """Copy an address mapping into the billing_* or shipping_* columns."""
        for field in ADDRESS_FIELDS:
            setattr(self, f'{kind}_{field}', address.get(field))

    def address(self, kind):
        """Return the billing or shipping snapshot as a plain dict."""
        return {field: getattr(self, f'{kind}_{field}') for field in ADDRESS_FIELDS}

    def add_status_history(self, status, notes=None):
        """Add a status change to history."""
        self.status_history.append(OrderStatusHistory(status=status, notes=notes))

    def can_transition_to(self, status):
        return status in ORDER_TRANSITIONS.get(self.status, ())

    def __repr__(self):
        return f'<Order {self.order_number}>'


class OrderItem(db.Model):
    """Immutable snapshot of a purchased line."""
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    product_name = db.Column(db.String(150), nullable=False)  # Snapshot of product name
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    line_total = db.Column(db.Numeric(10, 2), nullable=False)

    def __repr__(self):
        return f'<OrderItem {self.product_name} x {self.quantity}>'


class OrderStatusHistory(db.Model):
    """Order status history model."""
    __tablename__ = 'order_status_history'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    status = db.Column(db.String(50), nullable=False)
    notes = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<OrderStatusHistory {self.status}>'
