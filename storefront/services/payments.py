"""Payment reconciliation.

``initiate_payment`` opens a hosted payment session for a pending order.
``handle_payment_callback`` applies the provider's signed confirmation with a
guarded update, so duplicate or concurrent deliveries change nothing twice.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from flask import current_app
from sqlalchemy import update

from storefront.errors import InvalidState, NotFound, PaymentProviderError, StorefrontError
from storefront.extensions import db
from storefront.gateway import get_gateway
from storefront.models import CartItem, Order, OrderStatusHistory, UserOwner
from storefront.services.unit_of_work import unit_of_work

logger = structlog.get_logger(__name__)

COMPLETED_EVENTS = ('checkout.session.completed', 'checkout.session.async_payment_succeeded')
FAILED_EVENTS = ('checkout.session.async_payment_failed', 'checkout.session.expired')


@dataclass(frozen=True)
class CallbackResult:
    """What a webhook delivery did. Every outcome is acknowledged."""
    outcome: str  # processed, duplicate, ignored, unmatched, error
    event_type: str = None
    order_number: str = None


def initiate_payment(order_id, success_url=None, cancel_url=None):
    """Create a payment session for a pending order and return its URL."""
    with unit_of_work('payments.load_order'):
        order = db.session.get(Order, order_id)
        if order is None:
            raise NotFound('Order not found')
        if order.payment_status != 'pending':
            raise InvalidState(f'Order {order.order_number} payment is already {order.payment_status}')
        if order.status == 'cancelled':
            raise InvalidState(f'Order {order.order_number} has been cancelled')

        order_number = order.order_number
        session_request = dict(
            amount=order.total,
            currency=current_app.config['PAYMENT_CURRENCY'],
            customer_email=order.email,
            shipping_address=order.address('shipping'),
            success_url=success_url or current_app.config['PAYMENT_SUCCESS_URL'].format(order_number=order_number),
            cancel_url=cancel_url or current_app.config['PAYMENT_CANCEL_URL'].format(order_number=order_number),
            metadata={'order_id': str(order.id), 'order_number': order_number},
        )

    # No transaction is open while the provider is called.
    try:
        session = get_gateway().create_checkout_session(**session_request)
    except PaymentProviderError:
        logger.warning('payment_initiation_failed', order_number=order_number)
        raise

    with unit_of_work('payments.record_session'):
        result = db.session.execute(
            update(Order)
            .where(Order.id == order_id, Order.payment_status == 'pending')
            .values(payment_id=session.session_id)
        )
        if result.rowcount != 1:
            raise InvalidState(f'Order {order_number} is no longer awaiting payment')

    logger.info('payment_session_created', order_number=order_number, session_id=session.session_id)
    return session.url


def handle_payment_callback(raw_payload, signature_header):
    """Verify and apply a provider webhook.

    Raises ``SignatureInvalid`` for unverifiable payloads. Anything else is
    acknowledged, including replays and internal failures, so the provider
    stops retrying.
    """
    event = get_gateway().construct_event(raw_payload, signature_header)
    event_type = event.get('type')
    data = event.get('data')
    session = data.get('object') if isinstance(data, dict) else None
    if not isinstance(session, dict):
        logger.warning('payment_callback_malformed', event_type=event_type)
        return CallbackResult('ignored', event_type)

    if event_type in COMPLETED_EVENTS and session.get('payment_status') != 'unpaid':
        target = 'paid'
    elif event_type in FAILED_EVENTS:
        target = 'failed'
    else:
        logger.info('payment_callback_ignored', event_type=event_type)
        return CallbackResult('ignored', event_type)

    try:
        result = _apply_payment_status(event_type, session, target)
    except StorefrontError as exc:
        logger.error('payment_callback_failed', event_type=event_type, error=exc.message)
        return CallbackResult('error', event_type)

    logger.info('payment_callback_handled', event_type=event_type,
                outcome=result.outcome, order_number=result.order_number)
    return result


def _text(value):
    """Provider strings only; anything else in the payload counts as absent."""
    return value if isinstance(value, str) and value else None


def find_order_for_session(session):
    """Locate the order a provider session refers to.

    Precedence: the session id recorded at initiation, then the ``order_id``
    metadata, then the ``order_number`` metadata.
    """
    session_id = _text(session.get('id'))
    if session_id:
        order = Order.query.filter_by(payment_id=session_id).first()
        if order is not None:
            return order

    metadata = session.get('metadata')
    if not isinstance(metadata, dict):
        metadata = {}
    order_id = _text(metadata.get('order_id'))
    if order_id:
        try:
            order = db.session.get(Order, int(order_id))
        except ValueError:
            order = None
        if order is not None:
            return order

    order_number = _text(metadata.get('order_number'))
    if order_number:
        return Order.query.filter_by(order_number=order_number).first()
    return None


def _apply_payment_status(event_type, session, target):
    with unit_of_work('payments.callback'):
        order = find_order_for_session(session)
        if order is None:
            logger.warning('payment_callback_unmatched', event_type=event_type,
                           session_id=_text(session.get('id')))
            return CallbackResult('unmatched', event_type)

        order_number = order.order_number
        session_id = _text(session.get('id'))
        if order.payment_status != 'pending':
            return CallbackResult('duplicate', event_type, order_number)

        values = {'payment_status': target}
        if session_id and not order.payment_id:
            values['payment_id'] = session_id
        if target == 'paid':
            values['payment_reference'] = _text(session.get('payment_intent')) or session_id
            values['paid_at'] = datetime.utcnow()

        result = db.session.execute(
            update(Order)
            .where(Order.id == order.id, Order.payment_status == 'pending')
            .values(**values)
        )
        if result.rowcount != 1:
            return CallbackResult('duplicate', event_type, order_number)

        db.session.add(OrderStatusHistory(
            order_id=order.id,
            status=order.status,
            notes='Payment received' if target == 'paid' else 'Payment failed',
        ))
        if target == 'paid' and order.user_id is not None:
            CartItem.owned_by(UserOwner(order.user_id)).delete(synchronize_session=False)

    return CallbackResult('processed', event_type, order_number)
