"""Customer e-mail notifications. Delivery is best-effort."""

import smtplib

import structlog
from flask import current_app
from flask_mail import Message

from storefront.extensions import mail

logger = structlog.get_logger(__name__)


def send_order_confirmation(order):
    """Send the order-placed e-mail; failures are logged, never raised."""
    if not current_app.config.get('SEND_ORDER_EMAILS', True):
        return False

    lines = [f'{item.quantity} x {item.product_name} @ {item.unit_price} = {item.line_total}'
             for item in order.items]
    body = '\n'.join([
        f'Thank you for your order #{order.order_number}!',
        '',
        *lines,
        '',
        f'Subtotal: {order.subtotal}',
        f'Tax: {order.tax_amount}',
        f'Shipping: {order.shipping_amount}',
        f'Total: {order.total}',
    ])
    message = Message(subject=f'Order {order.order_number} confirmed',
                      recipients=[order.email], body=body)
    try:
        mail.send(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning('order_email_failed', order_number=order.order_number, error=str(exc))
        return False
    return True
