"""Webhooks blueprint — /api/webhook/stripe

Receives Stripe webhook events. Needs no session auth; the signature is
the authentication. Raw body is required for signature verification.
"""

import logging

from flask import Blueprint, request, jsonify

from evently.errors import ErrorKind, error_response
from evently.services.stripe_service import verify_webhook_signature, handle_webhook_event

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/webhook")


@webhooks_bp.route("/stripe", methods=["POST"])
def stripe_webhook():
    """Receive and process Stripe webhook events.

    1. Get raw body (required for signature verification)
    2. Verify signature with STRIPE_WEBHOOK_SECRET
    3. Pass to handle_webhook_event (idempotent via orders.stripe_id)
    4. Return 200 to acknowledge receipt, 400 on a rejected delivery,
       500 when the order could not be saved so Stripe retries
    """
    payload = request.get_data(as_text=True)
    sig_header = request.headers.get("Stripe-Signature")

    if not sig_header:
        logger.warning("Webhook received without Stripe-Signature header")
        return jsonify({"error": "Missing signature"}), 400

    # --- Verify signature ---
    event, failure = verify_webhook_signature(payload, sig_header)
    if failure:
        return error_response(failure)

    # --- Process event (idempotent) ---
    body, failure = handle_webhook_event(event)

    if failure:
        if failure.kind is ErrorKind.DOWNSTREAM:
            logger.error(f"Webhook processing failed: {failure.message}")
        else:
            logger.warning(f"Webhook rejected: {failure.message}")
        return error_response(failure)

    return jsonify(body), 200
