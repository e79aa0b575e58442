"""Orders blueprint — checkout and per-event order listings.

Routes:
- POST /api/events/<id>/checkout  — create a Stripe Checkout Session
- GET  /api/events/<id>/orders    — orders for an event (organizer only, ?q= buyer search)

Orders themselves are only ever created by the Stripe webhook.
"""

from flask import Blueprint, g, jsonify, request

from evently.decorators import identity_required
from evently.errors import error_response
from evently.extensions import limiter
from evently.services import order_service, stripe_service

orders_bp = Blueprint("orders", __name__, url_prefix="/api/events")


@orders_bp.route("/<event_id>/checkout", methods=["POST"])
@limiter.limit("10 per minute")
@identity_required
def checkout(event_id):
    """Start Stripe Checkout for one ticket; the client redirects to `url`."""
    session, failure = stripe_service.create_checkout_session(event_id, g.subject_id)
    if failure:
        return error_response(failure)
    return jsonify(session), 201


@orders_bp.route("/<event_id>/orders", methods=["GET"])
@identity_required
def event_orders(event_id):
    orders, failure = order_service.get_orders_by_event(
        actor_id=g.subject_id,
        event_id=event_id,
        search_string=request.args.get("q", "").strip(),
    )
    if failure:
        return error_response(failure)
    return jsonify({"data": orders})
