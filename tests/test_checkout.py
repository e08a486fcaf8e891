"""Tests for order assembly, totals and the order lifecycle."""

import smtplib
from decimal import Decimal

import pytest

from storefront.errors import EmptyCart, InsufficientStock, InvalidState, NotFound, ProductUnavailable, \
    ValidationFailed
from storefront.extensions import db, mail
from storefront.models import Address, CartItem, GuestOwner, Order, OrderItem, OrderStatusHistory, Product, \
    UserOwner
from storefront.services import cart_store
from storefront.services.checkout import calculate_totals, create_order, delete_order, get_order, \
    get_order_by_number, list_orders, transition_status
from tests.conftest import ADDRESS


@pytest.fixture
def shopper(users):
    return UserOwner(users['customer'])


def place(owner, **kwargs):
    kwargs.setdefault('email', 'shopper@bakery.io')
    return create_order(owner, billing_address=ADDRESS, shipping_address=ADDRESS, **kwargs)


class TestTotals:
    def test_tax_and_flat_shipping(self, ctx):
        totals = calculate_totals(Decimal('45.00'))
        assert totals.tax_amount == Decimal('3.60')
        assert totals.shipping_amount == Decimal('9.99')
        assert totals.discount_amount == Decimal('0.00')
        assert totals.total == Decimal('58.59')

    def test_free_shipping_above_threshold(self, ctx):
        totals = calculate_totals(Decimal('100.01'))
        assert totals.shipping_amount == Decimal('0.00')

    def test_threshold_itself_still_pays_shipping(self, ctx):
        assert calculate_totals(Decimal('100.00')).shipping_amount == Decimal('9.99')

    def test_amounts_quantized_to_cents(self, ctx):
        totals = calculate_totals(Decimal('10.33'))
        assert totals.tax_amount == Decimal('0.83')
        assert totals.total == Decimal('21.15')
        assert calculate_totals(Decimal('10.315')).subtotal == Decimal('10.32')


class TestCreateOrder:
    def test_cart_checkout(self, ctx, catalog, shopper):
        cart_store.add_item(shopper, catalog['bread'], 2)
        cart_store.add_item(shopper, catalog['cake'], 1)

        order = place(shopper, phone='5035550100')

        assert order.order_number.startswith('ORD-')
        assert order.user_id == shopper.user_id
        assert order.status == 'pending'
        assert order.payment_status == 'pending'
        assert order.subtotal == Decimal('45.00')
        assert order.tax_amount == Decimal('3.60')
        assert order.shipping_amount == Decimal('9.99')
        assert order.total == Decimal('58.59')
        assert sorted((item.product_name, item.quantity, item.line_total) for item in order.items) == [
            ('Chocolate Cake', 1, Decimal('25.00')),
            ('Sourdough Loaf', 2, Decimal('20.00')),
        ]
        assert order.address('shipping')['city'] == 'Portland'
        assert order.status_history.count() == 1

        assert cart_store.get_count(shopper) == 0
        bread = db.session.get(Product, catalog['bread'])
        assert bread.stock == 8
        assert bread.sales_count == 2
        assert db.session.get(Product, catalog['cake']).stock == 4

    def test_priced_at_live_price(self, ctx, catalog, shopper):
        cart_store.add_item(shopper, catalog['bread'], 1)
        db.session.get(Product, catalog['bread']).price = Decimal('11.00')
        db.session.commit()

        order = place(shopper)
        assert order.items[0].unit_price == Decimal('11.00')
        assert order.subtotal == Decimal('11.00')

    def test_free_shipping(self, ctx, catalog, shopper):
        cart_store.add_item(shopper, catalog['hamper'], 2)
        order = place(shopper)
        assert order.subtotal == Decimal('120.00')
        assert order.shipping_amount == Decimal('0.00')
        assert order.total == Decimal('129.60')

    def test_empty_cart(self, ctx, shopper):
        with pytest.raises(EmptyCart):
            place(shopper)
        assert Order.query.count() == 0

    def test_no_owner_and_no_items(self, ctx):
        with pytest.raises(EmptyCart):
            place(None)

    def test_short_line_rolls_everything_back(self, ctx, catalog, shopper):
        cart_store.add_item(shopper, catalog['bread'], 2)
        cart_store.add_item(shopper, catalog['cake'], 3)
        db.session.get(Product, catalog['cake']).stock = 1
        db.session.commit()

        with pytest.raises(InsufficientStock) as exc_info:
            place(shopper)

        assert exc_info.value.product_name == 'Chocolate Cake'
        assert exc_info.value.available == 1
        assert Order.query.count() == 0
        assert db.session.get(Product, catalog['bread']).stock == 10
        assert cart_store.get_count(shopper) == 5

    def test_deactivated_product_in_cart(self, ctx, catalog, shopper):
        cart_store.add_item(shopper, catalog['bread'], 1)
        db.session.get(Product, catalog['bread']).status = 'inactive'
        db.session.commit()

        with pytest.raises(ProductUnavailable):
            place(shopper)
        assert cart_store.get_count(shopper) == 1

    def test_explicit_items_for_guest(self, ctx, catalog):
        order = place(None, items=[
            {'product_id': catalog['bread'], 'quantity': 1},
            {'product_id': catalog['bread'], 'quantity': 2},
        ])
        assert order.user_id is None
        assert len(order.items) == 1
        assert order.items[0].quantity == 3
        assert db.session.get(Product, catalog['bread']).stock == 7

    def test_explicit_items_only_clear_matching_cart_rows(self, ctx, catalog, shopper):
        cart_store.add_item(shopper, catalog['bread'], 1)
        cart_store.add_item(shopper, catalog['cake'], 1)

        place(shopper, items=[{'product_id': catalog['bread'], 'quantity': 4}])

        remaining = CartItem.owned_by(shopper).all()
        assert [item.product_id for item in remaining] == [catalog['cake']]

    def test_guest_cart_checkout(self, ctx, catalog):
        guest = GuestOwner('guest-abc')
        cart_store.add_item(guest, catalog['cake'], 2)
        order = place(guest)
        assert order.total == Decimal('63.99')
        assert cart_store.get_count(guest) == 0

    def test_malformed_items(self, ctx):
        with pytest.raises(ValidationFailed):
            place(None, items=[{'quantity': 1}])
        with pytest.raises(ValidationFailed):
            place(None, items=[{'product_id': 1, 'quantity': 0}])

    def test_unknown_product_in_items(self, ctx):
        with pytest.raises(ProductUnavailable):
            place(None, items=[{'product_id': 4242, 'quantity': 1}])

    def test_saves_shipping_address_once(self, ctx, catalog, shopper):
        cart_store.add_item(shopper, catalog['bread'], 1)
        place(shopper, save_address=True)
        cart_store.add_item(shopper, catalog['bread'], 1)
        place(shopper, save_address=True)

        addresses = Address.query.filter_by(user_id=shopper.user_id).all()
        assert len(addresses) == 1
        assert addresses[0].is_default
        assert addresses[0].postal_code == '97201'

    def test_sends_confirmation_email(self, ctx, catalog, shopper):
        cart_store.add_item(shopper, catalog['bread'], 1)
        with mail.record_messages() as outbox:
            order = place(shopper)
        assert len(outbox) == 1
        assert order.order_number in outbox[0].subject
        assert outbox[0].recipients == ['shopper@bakery.io']

    def test_mail_failure_does_not_fail_checkout(self, ctx, catalog, shopper, monkeypatch):
        def broken_send(message):
            raise smtplib.SMTPException('relay down')

        monkeypatch.setattr(mail, 'send', broken_send)
        cart_store.add_item(shopper, catalog['bread'], 1)
        order = place(shopper)
        assert db.session.get(Order, order.id) is not None


class TestOrderLookup:
    def test_scoped_to_user(self, ctx, catalog, shopper, users):
        cart_store.add_item(shopper, catalog['bread'], 1)
        order = place(shopper)

        assert get_order(order.id, user_id=shopper.user_id).id == order.id
        assert get_order_by_number(order.order_number).id == order.id
        with pytest.raises(NotFound):
            get_order(order.id, user_id=users['other'])
        with pytest.raises(NotFound):
            get_order_by_number('ORD-000000000')

    def test_history_is_paginated_newest_first(self, ctx, catalog, shopper):
        placed = [place(shopper, items=[{'product_id': catalog['bread'], 'quantity': 1}]).id for _ in range(3)]
        place(None, items=[{'product_id': catalog['bread'], 'quantity': 1}])

        first = list_orders(shopper.user_id, page=1, per_page=2)
        second = list_orders(shopper.user_id, page=2, per_page=2)

        assert first.total == 3
        assert first.pages == 2
        assert [order.id for order in first.items] == [placed[2], placed[1]]
        assert [order.id for order in second.items] == [placed[0]]

    def test_history_past_the_last_page_is_empty(self, ctx, shopper):
        page = list_orders(shopper.user_id, page=5)
        assert page.items == []
        assert page.total == 0


class TestTransitions:
    @pytest.fixture
    def order_id(self, ctx, catalog, shopper):
        cart_store.add_item(shopper, catalog['bread'], 2)
        return place(shopper).id

    def test_happy_path(self, order_id):
        transition_status(order_id, 'processing')
        shipped = transition_status(order_id, 'shipped', tracking_number='1Z999')
        assert shipped.shipped_at is not None
        assert shipped.tracking_number == '1Z999'
        delivered = transition_status(order_id, 'delivered', notes='Left at door')
        assert delivered.delivered_at is not None
        assert delivered.status_history.count() == 4

    def test_cannot_skip_states(self, order_id):
        with pytest.raises(InvalidState):
            transition_status(order_id, 'shipped')

    def test_cancel_from_processing(self, order_id, catalog):
        transition_status(order_id, 'processing')
        order = transition_status(order_id, 'cancelled')
        assert order.status == 'cancelled'
        # Cancellation leaves stock alone.
        assert db.session.get(Product, catalog['bread']).stock == 8

    def test_no_cancel_after_shipping(self, order_id):
        transition_status(order_id, 'processing')
        transition_status(order_id, 'shipped')
        with pytest.raises(InvalidState):
            transition_status(order_id, 'cancelled')

    def test_unknown_status(self, order_id):
        with pytest.raises(ValidationFailed):
            transition_status(order_id, 'teleported')

    def test_missing_order(self, ctx):
        with pytest.raises(NotFound):
            transition_status(999, 'processing')

    def test_delete_cascades(self, order_id):
        delete_order(order_id)
        assert db.session.get(Order, order_id) is None
        assert OrderItem.query.count() == 0
        assert OrderStatusHistory.query.count() == 0
