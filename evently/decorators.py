"""
Custom route decorators.

- identity_required: caller must present an active identity-provider session;
  their subject id is stored on g.subject_id.
- json_body_required: request body must be a JSON object; it is parsed once
  and stored on g.json_body.
"""

from functools import wraps

from flask import g, jsonify, request
from flask_login import current_user, login_required


def identity_required(f):
    """Require an authenticated caller (see extensions.load_identity_from_request)."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        g.subject_id = current_user.id
        return f(*args, **kwargs)

    return decorated


def json_body_required(f):
    """Reject requests whose body is not a JSON object with a 400."""

    @wraps(f)
    def decorated(*args, **kwargs):
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        g.json_body = body
        return f(*args, **kwargs)

    return decorated
