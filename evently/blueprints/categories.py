"""Categories blueprint — /api/categories"""

from flask import Blueprint, g, jsonify

from evently.decorators import identity_required, json_body_required
from evently.errors import error_response
from evently.services import event_service

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.route("", methods=["GET"])
def list_categories():
    categories, _ = event_service.get_all_categories()
    return jsonify({"data": categories})


@categories_bp.route("", methods=["POST"])
@identity_required
@json_body_required
def create_category():
    category, failure = event_service.create_category(g.json_body.get("name"))
    if failure:
        return error_response(failure)
    return jsonify(category), 201
