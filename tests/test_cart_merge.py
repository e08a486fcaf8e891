"""Tests for folding a guest cart into a user cart."""

import pytest

from storefront.models import CartItem, GuestOwner, UserOwner
from storefront.services import cart_store
from storefront.services.cart_merge import merge_guest_cart

SESSION = 'guest-merge-1'


@pytest.fixture
def shopper(users):
    return UserOwner(users['customer'])


@pytest.fixture
def guest():
    return GuestOwner(SESSION)


def quantities(owner):
    return {item.product_id: item.quantity for item in CartItem.owned_by(owner).all()}


def test_overlapping_product_keeps_larger_quantity(ctx, catalog, shopper, guest):
    cart_store.add_item(shopper, catalog['bread'], 2)
    cart_store.add_item(guest, catalog['bread'], 5)

    result = merge_guest_cart(shopper.user_id, SESSION)

    assert result.merged == 1
    assert result.transferred == 0
    assert quantities(shopper) == {catalog['bread']: 5}
    assert quantities(guest) == {}


def test_user_quantity_wins_when_larger(ctx, catalog, shopper, guest):
    cart_store.add_item(shopper, catalog['bread'], 6)
    cart_store.add_item(guest, catalog['bread'], 1)

    merge_guest_cart(shopper.user_id, SESSION)

    assert quantities(shopper) == {catalog['bread']: 6}


def test_guest_only_rows_are_reowned(ctx, catalog, shopper, guest):
    guest_item = cart_store.add_item(guest, catalog['cake'], 2)
    cart_store.add_item(shopper, catalog['bread'], 1)

    result = merge_guest_cart(shopper.user_id, SESSION)

    assert result.transferred == 1
    assert quantities(shopper) == {catalog['bread']: 1, catalog['cake']: 2}
    moved = CartItem.owned_by(shopper).filter_by(product_id=catalog['cake']).one()
    assert moved.id == guest_item.id
    assert moved.session_id is None


def test_mixed_cart(ctx, catalog, shopper, guest):
    cart_store.add_item(shopper, catalog['bread'], 2)
    cart_store.add_item(guest, catalog['bread'], 5)
    cart_store.add_item(guest, catalog['cake'], 1)
    cart_store.add_item(guest, catalog['hamper'], 3)

    result = merge_guest_cart(shopper.user_id, SESSION)

    assert (result.transferred, result.merged, result.discarded) == (2, 1, 0)
    assert quantities(shopper) == {catalog['bread']: 5, catalog['cake']: 1, catalog['hamper']: 3}
    assert CartItem.query.filter(CartItem.session_id.isnot(None)).count() == 0


def test_empty_guest_cart(ctx, catalog, shopper):
    cart_store.add_item(shopper, catalog['bread'], 2)

    result = merge_guest_cart(shopper.user_id, 'never-used')

    assert (result.transferred, result.merged, result.discarded) == (0, 0, 0)
    assert quantities(shopper) == {catalog['bread']: 2}


def test_other_guest_carts_untouched(ctx, catalog, shopper, guest):
    bystander = GuestOwner('someone-else')
    cart_store.add_item(bystander, catalog['bread'], 1)
    cart_store.add_item(guest, catalog['bread'], 1)

    merge_guest_cart(shopper.user_id, SESSION)

    assert quantities(bystander) == {catalog['bread']: 1}
