"""Database models package."""

from .user import User, Address, ADDRESS_FIELDS
from .product import Product
from .cart import CartItem, OwnerKey, UserOwner, GuestOwner
from .order import (Order, OrderItem, OrderStatusHistory,
                    ORDER_STATUSES, ORDER_TRANSITIONS, PAYMENT_STATUSES)

__all__ = [
    'User',
    'Address',
    'ADDRESS_FIELDS',
    'Product',
    'CartItem',
    'OwnerKey',
    'UserOwner',
    'GuestOwner',
    'Order',
    'OrderItem',
    'OrderStatusHistory',
    'ORDER_STATUSES',
    'ORDER_TRANSITIONS',
    'PAYMENT_STATUSES',
]
