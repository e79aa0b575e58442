"""Stripe service — checkout sessions and webhook handling.

Responsible for:
- Creating Stripe Checkout Sessions for event tickets
- Verifying webhook signatures
- Dispatching verified events to handlers
- Materializing orders from completed checkout sessions

Idempotency lives in the orders table (unique stripe_id), not here:
Stripe delivers at least once and may deliver the same session twice.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

import stripe
from flask import current_app

from evently import errors
from evently.extensions import db
from evently.services import event_service, order_service

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Checkout Sessions
# ──────────────────────────────────────────────

def _unit_amount(event):
    """Ticket price in minor units (cents). Free events cost 0."""
    if event.is_free or not event.price:
        return 0
    return int((Decimal(event.price) * 100).to_integral_value())


def create_checkout_session(event_id, buyer_id):
    """Create a one-ticket Stripe Checkout Session for an event.

    The event and buyer ids ride along in session metadata; the webhook
    reads them back to build the order.

    Returns:
        tuple: ({"id": session_id, "url": checkout_url}, failure)
    """
    event, failure = event_service.find_event(event_id)
    if failure:
        return None, failure

    if event_service.as_utc(event.end_date_time) < datetime.now(timezone.utc):
        return None, errors.validation("Sorry, tickets are no longer available.")

    stripe.api_key = current_app.config["STRIPE_SECRET_KEY"]
    app_base_url = current_app.config["APP_BASE_URL"]

    try:
        session = stripe.checkout.Session.create(
            line_items=[
                {
                    "price_data": {
                        "currency": current_app.config["CHECKOUT_CURRENCY"],
                        "unit_amount": _unit_amount(event),
                        "product_data": {"name": event.title},
                    },
                    "quantity": 1,
                }
            ],
            metadata={
                "eventId": event.id,
                "buyerId": buyer_id,
            },
            mode="payment",
            success_url=f"{app_base_url}/profile",
            cancel_url=f"{app_base_url}/",
        )
    except stripe.StripeError as e:
        logger.error(f"Checkout session for event {event.id} failed: {e}", exc_info=True)
        return None, errors.downstream("Could not start checkout")

    logger.info(f"Checkout session {session.id} created for event {event.id} by {buyer_id}")
    return {"id": session.id, "url": session.url}, None


# ──────────────────────────────────────────────
# Webhook Handling
# ──────────────────────────────────────────────

def verify_webhook_signature(payload, sig_header):
    """Verify the Stripe-Signature header and construct the event.

    `payload` must be the raw request body exactly as received. The
    verified event is returned as plain dicts for the handlers.

    Returns:
        tuple: (event dict, failure)
    """
    webhook_secret = current_app.config["STRIPE_WEBHOOK_SECRET"]
    try:
        event = stripe.Webhook.construct_event(payload, sig_header, webhook_secret)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        return None, errors.validation("Invalid signature")
    except (ValueError, TypeError, AttributeError) as e:
        # not JSON, or JSON that is not an event object
        logger.warning(f"Webhook payload could not be parsed: {e}")
        return None, errors.validation("Invalid payload")

    event = event.to_dict()
    if not event.get("type"):
        logger.warning("Webhook payload has no event type")
        return None, errors.validation("Invalid payload")

    return event, None


def handle_webhook_event(event):
    """Process a verified Stripe webhook event.

    Unrecognized event types are acknowledged and ignored so Stripe stops
    redelivering them.

    Returns:
        tuple: (response body dict, failure)
    """
    event_type = event["type"]
    handler = WEBHOOK_HANDLERS.get(event_type)

    if handler is None:
        logger.info(f"Ignoring webhook event {event.get('id')} ({event_type})")
        return {"status": "ignored", "type": event_type}, None

    try:
        return handler(event)
    except Exception as e:
        logger.error(f"Error handling {event_type}: {e}", exc_info=True)
        db.session.rollback()
        return None, errors.downstream(str(e))


# ──────────────────────────────────────────────
# Event Handlers
# ──────────────────────────────────────────────

def _handle_checkout_completed(event):
    """Handle checkout.session.completed by materializing an Order.

    Missing metadata never fails the delivery: eventId and buyerId default
    to empty strings and amount_total to zero. A payload of the wrong shape
    is rejected with a 400 so Stripe does not keep redelivering it.
    """
    data = event.get("data") or {}
    session = data.get("object", {}) if isinstance(data, dict) else None
    if not isinstance(session, dict):
        logger.warning(f"Webhook {event.get('id')} has no checkout session object")
        return None, errors.validation("Invalid payload")

    metadata = session.get("metadata") or {}
    amount_total = session.get("amount_total")
    if not isinstance(metadata, dict) or (
        amount_total is not None
        and (not isinstance(amount_total, int) or isinstance(amount_total, bool))
    ):
        logger.warning(f"Webhook {event.get('id')} has malformed session fields")
        return None, errors.validation("Invalid payload")

    result, failure = order_service.create_order(
        stripe_id=session.get("id"),
        event_id=metadata.get("eventId") or "",
        buyer_id=metadata.get("buyerId") or "",
        total_amount=order_service.total_amount_from_minor_units(amount_total),
    )
    if failure:
        return None, failure

    status = "materialized" if result.created else "already_materialized"
    return {"status": status, "order": result.order.to_dict()}, None


WEBHOOK_HANDLERS = {
    "checkout.session.completed": _handle_checkout_completed,
}
