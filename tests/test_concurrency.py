"""Parallel checkouts against a file-backed SQLite database."""

import threading
from decimal import Decimal

import pytest

from storefront import create_app
from storefront.errors import InsufficientStock
from storefront.extensions import db
from storefront.models import Order, Product
from storefront.services.checkout import create_order
from tests.conftest import ADDRESS

BUYERS = 8
STOCK = 3


@pytest.fixture
def file_app(tmp_path):
    app = create_app('testing', overrides={
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{tmp_path / "race.db"}',
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
        'SEND_ORDER_EMAILS': False,
    })
    with app.app_context():
        db.create_all()
        product = Product(name='Limited Stollen', sku='LTD-1', price=Decimal('15.00'), stock=STOCK)
        db.session.add(product)
        db.session.commit()
        app.config['RACE_PRODUCT_ID'] = product.id
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def test_parallel_checkouts_never_oversell(file_app):
    product_id = file_app.config['RACE_PRODUCT_ID']
    barrier = threading.Barrier(BUYERS)
    outcomes = []
    lock = threading.Lock()

    def buy(index):
        with file_app.app_context():
            barrier.wait()
            try:
                create_order(
                    None,
                    email=f'buyer{index}@bakery.io',
                    billing_address=ADDRESS,
                    shipping_address=ADDRESS,
                    items=[{'product_id': product_id, 'quantity': 1}],
                )
                result = 'ok'
            except InsufficientStock:
                result = 'short'
            with lock:
                outcomes.append(result)

    threads = [threading.Thread(target=buy, args=(index,)) for index in range(BUYERS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert len(outcomes) == BUYERS
    assert outcomes.count('ok') == STOCK
    assert outcomes.count('short') == BUYERS - STOCK

    with file_app.app_context():
        product = db.session.get(Product, product_id)
        assert product.stock == 0
        assert product.sales_count == STOCK
        assert Order.query.count() == STOCK
