"""Identity service — users live with the external identity provider.

Nothing about a user is stored locally except the subject id on events
(organizer) and orders (buyer). This module:

- resolves a bearer session id to a subject id (authentication)
- fetches user details for in-memory enrichment of events and orders
- caches user details per app in a bounded, time-limited cache

Lookups fail closed: a failed fetch is returned as a downstream failure and
callers pass it up rather than serving partial data.
"""

import logging
import re
import threading
import time
from collections import OrderedDict

import requests
from flask import current_app
from flask_login import UserMixin

from evently import errors

logger = logging.getLogger(__name__)

# Session ids are opaque but URL-safe; anything else never reaches the API.
_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_\-]{1,255}$")


class Identity(UserMixin):
    """The authenticated caller, known only by subject id."""

    def __init__(self, subject_id):
        self.id = subject_id

    def __repr__(self):
        return f"<Identity {self.id}>"


# ──────────────────────────────────────────────
# User Details Cache
# ──────────────────────────────────────────────

class UserCache:
    """Bounded LRU cache whose entries expire after `ttl` seconds."""

    def __init__(self, maxsize=1024, ttl=300):
        self.maxsize = maxsize
        self.ttl = ttl
        self._entries = OrderedDict()
        self._lock = threading.Lock()

    def get(self, subject_id):
        with self._lock:
            entry = self._entries.get(subject_id)
            if entry is None:
                return None
            stored_at, details = entry
            if time.monotonic() - stored_at > self.ttl:
                del self._entries[subject_id]
                return None
            self._entries.move_to_end(subject_id)
            return details

    def set(self, subject_id, details):
        with self._lock:
            self._entries[subject_id] = (time.monotonic(), details)
            self._entries.move_to_end(subject_id)
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)

    def evict(self, subject_id):
        with self._lock:
            self._entries.pop(subject_id, None)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        return len(self._entries)


def init_identity_cache(app):
    """Attach a fresh user cache to the app, sized from config."""
    app.extensions["identity_cache"] = UserCache(
        maxsize=app.config["IDENTITY_CACHE_MAXSIZE"],
        ttl=app.config["IDENTITY_CACHE_TTL"],
    )


def get_cache():
    return current_app.extensions["identity_cache"]


# ──────────────────────────────────────────────
# Identity API
# ──────────────────────────────────────────────

def _api_get(path):
    base_url = current_app.config["IDENTITY_API_URL"].rstrip("/")
    return requests.get(
        f"{base_url}/{path}",
        headers={
            "Authorization": f"Bearer {current_app.config['IDENTITY_SECRET_KEY']}",
        },
        timeout=current_app.config["IDENTITY_API_TIMEOUT"],
    )


def _to_user_details(user):
    emails = user.get("email_addresses") or []
    return {
        "id": user.get("id"),
        "firstName": user.get("first_name") or "",
        "lastName": user.get("last_name") or "",
        "email": emails[0].get("email_address", "") if emails else "",
        "profileImageUrl": user.get("profile_image_url") or "",
    }


def resolve_session(session_id):
    """Return the subject id for an active session, else None."""
    if not session_id or not _SESSION_ID_RE.match(session_id):
        return None

    try:
        resp = _api_get(f"sessions/{session_id}")
    except requests.exceptions.RequestException as e:
        logger.warning(f"Session lookup failed: {e}")
        return None

    if resp.status_code != 200:
        return None

    try:
        session = resp.json()
    except ValueError:
        logger.warning("Session lookup returned a non-JSON body")
        return None

    if session.get("status") != "active":
        return None
    return session.get("user_id") or None


def fetch_user_details(subject_id):
    """Fetch {id, firstName, lastName, email, profileImageUrl} for a subject.

    Returns:
        tuple: (details, failure)
    """
    if not subject_id:
        return None, errors.validation("A user id is required.")

    cache = get_cache()
    cached = cache.get(subject_id)
    if cached is not None:
        return cached, None

    try:
        resp = _api_get(f"users/{subject_id}")
    except requests.exceptions.RequestException as e:
        logger.error(f"Identity lookup failed for {subject_id}: {e}")
        return None, errors.downstream("Failed to fetch user details")

    if resp.status_code != 200:
        logger.error(
            f"Identity API returned {resp.status_code} for user {subject_id}"
        )
        return None, errors.downstream("Failed to fetch user details")

    try:
        details = _to_user_details(resp.json())
    except ValueError:
        logger.error(f"Identity API returned a non-JSON body for user {subject_id}")
        return None, errors.downstream("Failed to fetch user details")

    cache.set(subject_id, details)
    return details, None


def fetch_many(subject_ids):
    """Fetch details for each distinct, non-empty subject id once.

    Returns:
        tuple: ({subject_id: details}, failure) — the first failure wins.
    """
    users = {}
    for subject_id in dict.fromkeys(s for s in subject_ids if s):
        details, failure = fetch_user_details(subject_id)
        if failure:
            return None, failure
        users[subject_id] = details
    return users, None


def display_name(details):
    """'First Last' for an order listing."""
    return f"{details['firstName']} {details['lastName']}".strip()
