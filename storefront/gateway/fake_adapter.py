"""Configurable fake payment gateway for development and testing.

No network calls: sessions get random ids and a local URL. Webhooks use the
same signature scheme as the real provider, so callback handling is
exercised end to end.
"""

from uuid import uuid4

from storefront.errors import PaymentProviderError
from storefront.gateway.port import CheckoutSession, PaymentGateway


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, webhook_secret, tolerance=300,
                 checkout_base_url='https://checkout.fake.local/pay'):
        super().__init__(webhook_secret, tolerance)
        self.checkout_base_url = checkout_base_url
        self.should_succeed = True
        self.failure_reason = 'Payment provider is unavailable, please try again'
        self.calls = []

    def configure(self, should_succeed, failure_reason=None):
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        if failure_reason:
            self.failure_reason = failure_reason

    def create_checkout_session(self, amount, currency, customer_email, shipping_address,
                                success_url, cancel_url, metadata):
        self.calls.append({
            'method': 'create_checkout_session',
            'amount': amount,
            'currency': currency,
            'customer_email': customer_email,
            'shipping_address': shipping_address,
            'success_url': success_url,
            'cancel_url': cancel_url,
            'metadata': dict(metadata),
        })
        if not self.should_succeed:
            raise PaymentProviderError(self.failure_reason)

        session_id = f'cs_test_{uuid4().hex}'
        return CheckoutSession(session_id=session_id, url=f'{self.checkout_base_url}/{session_id}')
