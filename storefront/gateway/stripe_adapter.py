"""Stripe payment gateway adapter.

Creates Checkout Sessions with the stripe SDK. The API key is passed per
request, so several apps in one process never share global Stripe state.
"""

from decimal import Decimal, ROUND_HALF_UP

import stripe
import structlog

from storefront.errors import PaymentProviderError
from storefront.gateway.port import CheckoutSession, PaymentGateway

logger = structlog.get_logger(__name__)

ALLOWED_SHIPPING_COUNTRIES = ('US', 'CA', 'GB', 'AU', 'DE', 'FR', 'IT', 'ES', 'NL', 'BE')


def to_minor_units(amount):
    """Convert a decimal amount to integer cents."""
    return int((Decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class StripeGateway(PaymentGateway):
    """Production gateway backed by Stripe Checkout."""

    def __init__(self, api_key, webhook_secret, tolerance=300):
        super().__init__(webhook_secret, tolerance)
        self.api_key = api_key

    def create_checkout_session(self, amount, currency, customer_email, shipping_address,
                                success_url, cancel_url, metadata):
        params = self.session_params(amount, currency, customer_email, shipping_address,
                                     success_url, cancel_url, metadata)
        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.StripeError as exc:
            logger.error('stripe_request_failed', error=str(exc),
                         http_status=getattr(exc, 'http_status', None))
            raise PaymentProviderError() from exc

        session_id = session.get('id')
        url = session.get('url')
        if not session_id or not url:
            logger.error('stripe_session_incomplete', session_id=session_id)
            raise PaymentProviderError()
        return CheckoutSession(session_id=session_id, url=url)

    @staticmethod
    def session_params(amount, currency, customer_email, shipping_address,
                       success_url, cancel_url, metadata):
        """Keyword arguments for ``stripe.checkout.Session.create``."""
        label = metadata.get('order_number') or metadata.get('order_id')
        metadata = {key: str(value) for key, value in metadata.items()}
        params = {
            'mode': 'payment',
            'payment_method_types': ['card'],
            'line_items': [{
                'quantity': 1,
                'price_data': {
                    'currency': currency.lower(),
                    'unit_amount': to_minor_units(amount),
                    'product_data': {'name': f'Order #{label}'},
                },
            }],
            'success_url': success_url,
            'cancel_url': cancel_url,
            'billing_address_collection': 'required',
            'shipping_address_collection': {'allowed_countries': list(ALLOWED_SHIPPING_COUNTRIES)},
            'metadata': metadata,
            'payment_intent_data': {'metadata': dict(metadata)},
        }
        if customer_email:
            params['customer_email'] = customer_email

        if shipping_address:
            # Attach the order's shipping snapshot to the resulting payment.
            name = ' '.join(filter(None, [shipping_address.get('first_name'),
                                          shipping_address.get('last_name')]))
            address = {
                'line1': shipping_address.get('address_line_1'),
                'line2': shipping_address.get('address_line_2'),
                'city': shipping_address.get('city'),
                'state': shipping_address.get('state'),
                'postal_code': shipping_address.get('postal_code'),
                'country': shipping_address.get('country') or 'US',
            }
            params['payment_intent_data']['shipping'] = {
                'name': name or customer_email or 'Customer',
                'address': {key: value.strip() for key, value in address.items() if value},
            }
        return params
