"""
Deferred extension instances.

Created here, bound to the app in create_app() via init_app().
"""

from flask import jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # per-route limits only
    storage_uri="memory://",
)


@login_manager.request_loader
def load_identity_from_request(req):
    """Resolve `Authorization: Bearer <session id>` to an identity.

    Sessions live with the identity provider; nothing is stored locally.
    Imports lazily to avoid circular deps.
    """
    from evently.services import identity_service

    auth_header = req.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None

    subject_id = identity_service.resolve_session(token.strip())
    if subject_id is None:
        return None
    return identity_service.Identity(subject_id)


@login_manager.unauthorized_handler
def unauthorized():
    """JSON 401 instead of a redirect to a login page."""
    return jsonify({"error": "Authentication required"}), 401
