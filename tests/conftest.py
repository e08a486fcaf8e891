"""Pytest fixtures for storefront tests."""

import hashlib
import hmac
import json
import time
from decimal import Decimal

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.models import Product, User

ADDRESS = {
    'first_name': 'Ada',
    'last_name': 'Baker',
    'company': None,
    'address_line_1': '12 Mill Lane',
    'address_line_2': None,
    'city': 'Portland',
    'state': 'OR',
    'postal_code': '97201',
    'country': 'US',
}

ADDRESS_PAYLOAD = {
    'firstName': 'Ada',
    'lastName': 'Baker',
    'addressLine1': '12 Mill Lane',
    'city': 'Portland',
    'state': 'OR',
    'postalCode': '97201',
    'country': 'us',
}

PRODUCTS = {
    'bread': {'name': 'Sourdough Loaf', 'sku': 'BRD-1', 'price': '10.00', 'stock': 10},
    'cake': {'name': 'Chocolate Cake', 'sku': 'CKE-1', 'price': '25.00', 'stock': 5},
    'hamper': {'name': 'Gift Hamper', 'sku': 'HMP-1', 'price': '60.00', 'stock': 10},
    'last_one': {'name': 'Wedding Cake', 'sku': 'CKE-2', 'price': '80.00', 'stock': 1},
    'retired': {'name': 'Fruit Scone', 'sku': 'SCN-1', 'price': '2.50', 'stock': 20,
                'status': 'inactive'},
}

USERS = {
    'customer': {'email': 'shopper@bakery.io', 'name': 'Sam Shopper', 'role': 'customer'},
    'other': {'email': 'other@bakery.io', 'name': 'Olive Other', 'role': 'customer'},
    'admin': {'email': 'admin@bakery.io', 'name': 'Ann Admin', 'role': 'admin'},
}
PASSWORD = 'password123'


def sign_payload(payload, secret, timestamp=None):
    """Build a `t=...,v1=...` header the way the provider signs webhooks."""
    timestamp = int(time.time()) if timestamp is None else int(timestamp)
    message = f'{timestamp}.'.encode('utf-8') + payload
    digest = hmac.new(secret.encode('utf-8'), message, hashlib.sha256).hexdigest()
    return f't={timestamp},v1={digest}'


@pytest.fixture
def app():
    """Application with a fresh in-memory database."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture
def catalog(app):
    """Seed products; returns product ids keyed by fixture name."""
    with app.app_context():
        products = {}
        for key, data in PRODUCTS.items():
            product = Product(
                name=data['name'],
                sku=data['sku'],
                price=Decimal(data['price']),
                stock=data['stock'],
                status=data.get('status', 'active'),
            )
            db.session.add(product)
            products[key] = product
        db.session.commit()
        return {key: product.id for key, product in products.items()}


@pytest.fixture
def users(app):
    """Seed accounts; returns user ids keyed by fixture name."""
    with app.app_context():
        accounts = {}
        for key, data in USERS.items():
            user = User(**data)
            user.set_password(PASSWORD)
            db.session.add(user)
            accounts[key] = user
        db.session.commit()
        return {key: user.id for key, user in accounts.items()}


@pytest.fixture
def ctx(app, catalog, users):
    """Push an application context for service-level tests."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app, catalog, users):
    return app.test_client()


@pytest.fixture
def gateway(app):
    return app.extensions['payment_gateway']


@pytest.fixture
def sign(app):
    """Serialize an event and sign it with the configured webhook secret."""
    def _sign(event, secret=None, timestamp=None):
        payload = json.dumps(event).encode('utf-8')
        header = sign_payload(payload, secret or app.config['STRIPE_WEBHOOK_SECRET'], timestamp)
        return payload, header
    return _sign


def checkout_event(session_id, metadata=None, event_type='checkout.session.completed',
                   payment_intent='pi_test_123', payment_status='paid'):
    return {
        'id': 'evt_test_1',
        'type': event_type,
        'data': {
            'object': {
                'id': session_id,
                'object': 'checkout.session',
                'payment_intent': payment_intent,
                'payment_status': payment_status,
                'metadata': metadata or {},
            },
        },
    }


def login(client, who='customer', session_id=None):
    headers = {'X-Session-Id': session_id} if session_id else {}
    response = client.post('/auth/login', json={'email': USERS[who]['email'], 'password': PASSWORD},
                           headers=headers)
    assert response.status_code == 200, response.get_json()
    return response
