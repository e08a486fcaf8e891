"""Cart model and the owner key that addresses a cart."""

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from storefront.extensions import db


@dataclass(frozen=True)
class UserOwner:
    """Cart of an authenticated user."""
    user_id: int


@dataclass(frozen=True)
class GuestOwner:
    """Cart of an anonymous visitor, keyed by a client-held session token."""
    session_id: str

    def __post_init__(self):
        if not self.session_id:
            raise ValueError('Guest carts need a non-empty session id')


OwnerKey = Union[UserOwner, GuestOwner]


class CartItem(db.Model):
    """Shopping cart item model."""
    __tablename__ = 'cart_items'
    __table_args__ = (
        db.CheckConstraint('(user_id IS NULL) <> (session_id IS NULL)', name='ck_cart_items_single_owner'),
        db.CheckConstraint('quantity > 0', name='ck_cart_items_quantity_positive'),
        db.UniqueConstraint('user_id', 'product_id', name='uq_cart_items_user_product'),
        db.UniqueConstraint('session_id', 'product_id', name='uq_cart_items_session_product'),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), index=True)
    session_id = db.Column(db.String(64), index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    quantity = db.Column(db.Integer, default=1, nullable=False)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)  # Captured when first added
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def owner_clause(cls, owner):
        """SQL criterion selecting the rows that belong to ``owner``."""
        if isinstance(owner, UserOwner):
            return cls.user_id == owner.user_id
        if isinstance(owner, GuestOwner):
            return cls.session_id == owner.session_id
        raise TypeError(f'Unsupported cart owner: {owner!r}')

    @classmethod
    def owned_by(cls, owner):
        return cls.query.filter(cls.owner_clause(owner))

    @staticmethod
    def owner_columns(owner):
        """Column values that tag a new row with ``owner``."""
        if isinstance(owner, UserOwner):
            return {'user_id': owner.user_id, 'session_id': None}
        if isinstance(owner, GuestOwner):
            return {'user_id': None, 'session_id': owner.session_id}
        raise TypeError(f'Unsupported cart owner: {owner!r}')

    @property
    def owner(self):
        if self.user_id is not None:
            return UserOwner(self.user_id)
        return GuestOwner(self.session_id)

    @property
    def line_total(self):
        """Calculate the line total at the captured price."""
        return self.unit_price * self.quantity

    def __repr__(self):
        return f'<CartItem {self.product_id} x {self.quantity}>'
