"""Events blueprint — /api/events/*

Routes:
- GET    /api/events                  — search + paginate (query, category, page, limit)
- POST   /api/events                  — create (organizer = caller)
- GET    /api/events/<id>             — detail with organizer
- PUT    /api/events/<id>             — update (organizer only)
- DELETE /api/events/<id>             — delete (organizer only)
- GET    /api/events/<id>/related     — other events in the same category
"""

from flask import Blueprint, current_app, g, jsonify, request

from evently.decorators import identity_required, json_body_required
from evently.errors import error_response
from evently.services import event_service

events_bp = Blueprint("events", __name__, url_prefix="/api/events")


def page_args(default_limit):
    """Read ?page=&limit= with fallbacks for missing or non-numeric values."""
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", default_limit, type=int)
    return page, limit


@events_bp.route("", methods=["GET"])
def list_events():
    page, limit = page_args(current_app.config["EVENTS_PAGE_SIZE"])
    result, failure = event_service.get_all_events(
        query=request.args.get("query", "").strip(),
        category=request.args.get("category", "").strip(),
        page=page,
        limit=limit,
    )
    if failure:
        return error_response(failure)
    return jsonify(result)


@events_bp.route("", methods=["POST"])
@identity_required
@json_body_required
def create_event():
    event, failure = event_service.create_event(g.subject_id, g.json_body)
    if failure:
        return error_response(failure)
    return jsonify(event), 201


@events_bp.route("/<event_id>", methods=["GET"])
def get_event(event_id):
    event, failure = event_service.get_event_by_id(event_id)
    if failure:
        return error_response(failure)
    return jsonify(event)


@events_bp.route("/<event_id>", methods=["PUT", "PATCH"])
@identity_required
@json_body_required
def update_event(event_id):
    event, failure = event_service.update_event(g.subject_id, event_id, g.json_body)
    if failure:
        return error_response(failure)
    return jsonify(event)


@events_bp.route("/<event_id>", methods=["DELETE"])
@identity_required
def delete_event(event_id):
    _, failure = event_service.delete_event(g.subject_id, event_id)
    if failure:
        return error_response(failure)
    return jsonify({"status": "deleted", "id": event_id})


@events_bp.route("/<event_id>/related", methods=["GET"])
def related_events(event_id):
    event, failure = event_service.find_event(event_id)
    if failure:
        return error_response(failure)

    page, limit = page_args(current_app.config["RELATED_EVENTS_PAGE_SIZE"])
    result, failure = event_service.get_related_events_by_category(
        category_id=event.category_id,
        event_id=event.id,
        page=page,
        limit=limit,
    )
    if failure:
        return error_response(failure)
    return jsonify(result)
