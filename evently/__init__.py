import atexit
import os
import logging

import click
from flask import Flask, jsonify

from evently.config import config_by_name
from evently.extensions import db, migrate, login_manager, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from evently import models  # noqa: F401

    # --- Identity lookup cache (one per app) ---
    from evently.services.identity_service import init_identity_cache
    init_identity_cache(app)

    # --- Register blueprints ---
    from evently.blueprints.events import events_bp
    from evently.blueprints.orders import orders_bp
    from evently.blueprints.categories import categories_bp
    from evently.blueprints.profile import profile_bp
    from evently.blueprints.webhooks import webhooks_bp

    app.register_blueprint(events_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(webhooks_bp)

    # --- Health check ---
    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    # --- Error handlers ---
    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Internal server error"}), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Control referrer information
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # JSON API: nothing should be rendered or framed
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Database shutdown ---
    # The engine (and its pool) is created by db.init_app() above and
    # shared by every request; release its connections on exit.
    def dispose_engine():
        with app.app_context():
            db.engine.dispose()

    atexit.register(dispose_engine)

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("seed-categories")
    @click.argument("names", nargs=-1)
    def seed_categories(names):
        """Create event categories that don't exist yet.

        Usage:
            flask seed-categories
            flask seed-categories Music Sports "Tech Talks"
        """
        from evently.services.event_service import create_category

        for name in names or ("Music", "Sports", "Technology", "Arts", "Food"):
            category, failure = create_category(name)
            if failure:
                click.echo(f"  skipped {name}: {failure.message}")
            else:
                click.echo(f"  created {category['name']} (id: {category['id']})")

    @app.cli.command("unlink-user")
    @click.argument("subject_id")
    def unlink_user(subject_id):
        """Detach a deleted identity-provider user from events and orders.

        Run when the identity provider reports a user deletion.

        Usage:
            flask unlink-user user_2abc...
        """
        from evently.services.user_service import unlink_user as _unlink_user

        counts, failure = _unlink_user(subject_id)
        if failure:
            raise click.ClickException(failure.message)
        click.echo(
            f"Unlinked {subject_id}: {counts['events']} events, {counts['orders']} orders"
        )
