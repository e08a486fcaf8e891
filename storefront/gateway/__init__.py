"""Payment gateway factory.

``init_gateway`` picks the adapter named by ``PAYMENT_GATEWAY`` and stores it
on the app; ``get_gateway`` / ``set_gateway`` read and swap it:
- FakeGateway for development and testing
- StripeGateway for production
"""

from flask import current_app

from storefront.gateway.fake_adapter import FakeGateway
from storefront.gateway.port import CheckoutSession, PaymentGateway
from storefront.gateway.stripe_adapter import StripeGateway

EXTENSION_KEY = 'payment_gateway'


def build_gateway(config):
    name = config.get('PAYMENT_GATEWAY', 'fake')
    tolerance = config.get('WEBHOOK_TOLERANCE_SECONDS', 300)

    if name == 'stripe':
        if not config.get('STRIPE_SECRET_KEY'):
            raise RuntimeError('Stripe is not configured. Set STRIPE_SECRET_KEY in the environment.')
        return StripeGateway(
            api_key=config['STRIPE_SECRET_KEY'],
            webhook_secret=config.get('STRIPE_WEBHOOK_SECRET'),
            tolerance=tolerance,
        )
    if name == 'fake':
        return FakeGateway(webhook_secret=config.get('STRIPE_WEBHOOK_SECRET'), tolerance=tolerance)
    raise ValueError(f'Unknown payment gateway: {name}')


def init_gateway(app):
    app.extensions[EXTENSION_KEY] = build_gateway(app.config)


def get_gateway() -> PaymentGateway:
    """Return the gateway of the current app."""
    return current_app.extensions[EXTENSION_KEY]


def set_gateway(app, gateway):
    """Override the active payment gateway (useful for tests)."""
    app.extensions[EXTENSION_KEY] = gateway


__all__ = [
    'CheckoutSession',
    'FakeGateway',
    'PaymentGateway',
    'StripeGateway',
    'build_gateway',
    'get_gateway',
    'init_gateway',
    'set_gateway',
]
