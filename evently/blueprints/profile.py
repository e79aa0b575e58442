"""Profile blueprint — /api/profile/*

The caller's own listings:
- GET /api/profile/events  — events they organize
- GET /api/profile/orders  — tickets they bought
"""

from flask import Blueprint, current_app, g, jsonify

from evently.blueprints.events import page_args
from evently.decorators import identity_required
from evently.errors import error_response
from evently.services import event_service, order_service

profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")


@profile_bp.route("/events", methods=["GET"])
@identity_required
def my_events():
    page, limit = page_args(current_app.config["EVENTS_PAGE_SIZE"])
    result, failure = event_service.get_events_by_user(g.subject_id, page=page, limit=limit)
    if failure:
        return error_response(failure)
    return jsonify(result)


@profile_bp.route("/orders", methods=["GET"])
@identity_required
def my_orders():
    page, limit = page_args(current_app.config["ORDERS_PAGE_SIZE"])
    result, failure = order_service.get_orders_by_user(g.subject_id, page=page, limit=limit)
    if failure:
        return error_response(failure)
    return jsonify(result)
