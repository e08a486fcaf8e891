"""Payment provider webhook."""

from flask import Blueprint, jsonify, request

from storefront.services.payments import handle_payment_callback

payments_bp = Blueprint('payments', __name__)

SIGNATURE_HEADER = 'Stripe-Signature'


@payments_bp.route('/webhook', methods=['POST'])
def webhook():
    """Acknowledge every verified delivery; unverifiable ones get a 400."""
    result = handle_payment_callback(request.get_data(), request.headers.get(SIGNATURE_HEADER))
    return jsonify({
        'received': True,
        'outcome': result.outcome,
        'orderNumber': result.order_number,
    })
