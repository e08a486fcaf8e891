"""Payment gateway port (abstract interface).

Adapters create hosted checkout sessions and turn signed webhook payloads
into event dicts. ``FakeGateway`` serves development and tests,
``StripeGateway`` talks to the real provider. Both verify webhooks with
Stripe's ``t=...,v1=...`` signature scheme.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass

import stripe
import structlog

from storefront.errors import SignatureInvalid

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckoutSession:
    """Hosted payment page created by the provider."""

    session_id: str
    url: str


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    def __init__(self, webhook_secret, tolerance=300):
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance

    @abstractmethod
    def create_checkout_session(
        self,
        amount,
        currency,
        customer_email,
        shipping_address,
        success_url,
        cancel_url,
        metadata,
    ) -> CheckoutSession:
        """Create a hosted payment session for ``amount`` (a Decimal)."""
        ...

    def construct_event(self, payload, signature_header) -> dict:
        """Verify a webhook body and decode it into a plain event dict.

        Fails closed: a missing secret or header, a bad or stale signature
        and a body that is not a JSON object all raise ``SignatureInvalid``.
        """
        if not self.webhook_secret:
            raise SignatureInvalid('Webhook secret is not configured')
        if not signature_header:
            raise SignatureInvalid('Missing signature header')

        try:
            if isinstance(payload, bytes):
                payload = payload.decode('utf-8')
            stripe.WebhookSignature.verify_header(
                payload, signature_header, self.webhook_secret, tolerance=self.tolerance)
            event = json.loads(payload)
        except stripe.SignatureVerificationError as exc:
            logger.warning('webhook_signature_rejected', error=str(exc))
            raise SignatureInvalid() from exc
        except ValueError as exc:
            raise SignatureInvalid('Invalid payload') from exc

        if not isinstance(event, dict) or not isinstance(event.get('type'), str):
            raise SignatureInvalid('Invalid payload')
        return event
