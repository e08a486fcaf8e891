"""Folds a guest cart into a user's cart at login."""

from dataclasses import dataclass

import structlog

from storefront.extensions import db
from storefront.models import CartItem, GuestOwner, UserOwner
from storefront.services.unit_of_work import unit_of_work

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MergeResult:
    transferred: int = 0
    merged: int = 0
    discarded: int = 0


def merge_guest_cart(user_id, guest_session_id):
    """Merge the guest session's cart into the user's cart.

    Products only in the guest cart are re-owned, not copied. Products in
    both keep max(user quantity, guest quantity), never the sum.
    """
    user = UserOwner(user_id)
    guest = GuestOwner(guest_session_id)
    transferred = merged = 0

    with unit_of_work('cart.merge'):
        guest_items = CartItem.owned_by(guest).order_by(CartItem.id).all()
        user_items = {item.product_id: item for item in CartItem.owned_by(user).all()}

        for guest_item in guest_items:
            existing = user_items.get(guest_item.product_id)
            if existing is not None:
                existing.quantity = max(existing.quantity, guest_item.quantity)
                db.session.delete(guest_item)
                merged += 1
            else:
                guest_item.user_id = user_id
                guest_item.session_id = None
                user_items[guest_item.product_id] = guest_item
                transferred += 1

        db.session.flush()
        # Anything still tagged with the session is left over from an earlier,
        # interrupted merge.
        discarded = CartItem.owned_by(guest).delete(synchronize_session=False)

    result = MergeResult(transferred=transferred, merged=merged, discarded=discarded)
    logger.info('guest_cart_merged', user_id=user_id, session_id=guest_session_id,
                transferred=result.transferred, merged=result.merged,
                discarded=result.discarded)
    return result
