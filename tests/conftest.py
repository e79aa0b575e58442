"""Shared test fixtures for the Evently test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- identity_api: fake identity provider patched over requests.get (autouse)
- auth_headers: builds an Authorization header for a known session
- seed_data: categories, events, and the ids tests need
- signed_webhook: posts a payload to the Stripe webhook with a real signature
"""

import hashlib
import hmac
import json
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest

from evently import create_app
from evently.extensions import db as _db
from evently.models.event import Category, Event

ORGANIZER_ID = "user_organizer"
BUYER_ID = "user_buyer"
OTHER_ID = "user_other"


def _identity_user(user_id, first, last, email):
    """A user record in the identity provider's wire format."""
    return {
        "id": user_id,
        "first_name": first,
        "last_name": last,
        "email_addresses": [{"email_address": email}],
        "profile_image_url": f"https://img.test/{user_id}.png",
    }


def _response(status_code, payload):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


class FakeIdentityAPI:
    """Stands in for the identity provider's REST API.

    Knows three users and one active session per user. Set `fail = True`
    to make every user lookup return a 500.
    """

    def __init__(self):
        self.users = {
            ORGANIZER_ID: _identity_user(ORGANIZER_ID, "Olivia", "Organizer", "olivia@example.com"),
            BUYER_ID: _identity_user(BUYER_ID, "Bob", "Buyer", "bob@example.com"),
            OTHER_ID: _identity_user(OTHER_ID, "Oscar", "Other", "oscar@example.com"),
        }
        self.sessions = {
            "sess_organizer": ORGANIZER_ID,
            "sess_buyer": BUYER_ID,
            "sess_other": OTHER_ID,
        }
        self.user_lookups = []
        self.fail = False

    def get(self, url, headers=None, timeout=None):
        kind, _, key = url.split("/v1/", 1)[1].partition("/")

        if kind == "sessions":
            user_id = self.sessions.get(key)
            if user_id is None:
                return _response(404, {"errors": [{"code": "resource_not_found"}]})
            return _response(200, {"id": key, "user_id": user_id, "status": "active"})

        self.user_lookups.append(key)
        if self.fail:
            return _response(500, {"errors": [{"code": "internal"}]})
        user = self.users.get(key)
        if user is None:
            return _response(404, {"errors": [{"code": "resource_not_found"}]})
        return _response(200, user)


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture(autouse=True)
def identity_api(app):
    """Fake identity provider with an empty user cache for every test."""
    api = FakeIdentityAPI()
    app.extensions["identity_cache"].clear()
    with patch(
        "evently.services.identity_service.requests.get", side_effect=api.get
    ):
        yield api
    app.extensions["identity_cache"].clear()


@pytest.fixture
def auth_headers():
    """auth_headers("sess_buyer") -> {"Authorization": "Bearer sess_buyer"}"""

    def _headers(session_id="sess_organizer"):
        return {"Authorization": f"Bearer {session_id}"}

    return _headers


@pytest.fixture
def seed_data(app, db_session):
    """Seed two categories and three events.

    - concert: Music, organized by ORGANIZER_ID, $25, created first
    - match:   Sports, organized by ORGANIZER_ID, free, created second
    - past:    Music, organized by OTHER_ID, already over, created last

    Returns plain ids so tests can use them across app contexts.
    """
    now = datetime.now(timezone.utc)

    music = Category(name="Music")
    sports = Category(name="Sports")
    _db.session.add_all([music, sports])
    _db.session.flush()

    concert = Event(
        title="Summer Concert",
        description="Open air concert",
        location="City Park",
        start_date_time=now + timedelta(days=10),
        end_date_time=now + timedelta(days=10, hours=3),
        price="25",
        is_free=False,
        category_id=music.id,
        organizer=ORGANIZER_ID,
        created_at=now - timedelta(hours=3),
    )
    match = Event(
        title="Charity Football Match",
        location="Stadium",
        start_date_time=now + timedelta(days=5),
        end_date_time=now + timedelta(days=5, hours=2),
        price="0",
        is_free=True,
        category_id=sports.id,
        organizer=ORGANIZER_ID,
        created_at=now - timedelta(hours=2),
    )
    past = Event(
        title="Spring Jazz Night",
        start_date_time=now - timedelta(days=3),
        end_date_time=now - timedelta(days=3) + timedelta(hours=2),
        price="15.50",
        is_free=False,
        category_id=music.id,
        organizer=OTHER_ID,
        created_at=now - timedelta(hours=1),
    )
    _db.session.add_all([concert, match, past])
    _db.session.commit()

    return {
        "music_id": music.id,
        "sports_id": sports.id,
        "concert_id": concert.id,
        "match_id": match.id,
        "past_id": past.id,
    }


def sign(payload, secret="whsec_test_fake", timestamp=None):
    """Build a Stripe-Signature header value for `payload`."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def signed_webhook(client):
    """POST a Stripe event (dict or raw string) with a valid signature."""

    def _post(event, secret="whsec_test_fake", timestamp=None):
        payload = event if isinstance(event, str) else json.dumps(event)
        return client.post(
            "/api/webhook/stripe",
            data=payload,
            content_type="application/json",
            headers={"Stripe-Signature": sign(payload, secret, timestamp)},
        )

    return _post


def checkout_completed(session_id="cs_123", amount_total=5000, metadata=None, event_id="evt_1"):
    """A checkout.session.completed event as Stripe sends it."""
    session = {"id": session_id, "object": "checkout.session"}
    if amount_total is not None:
        session["amount_total"] = amount_total
    if metadata is not None:
        session["metadata"] = metadata
    return {
        "id": event_id,
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": session},
    }
