"""Tests for the events and categories blueprints.

Covers:
- Listing: search by title, category filter, pagination, newest first
- Organizer enrichment (and fail-closed identity errors)
- Create / update / delete with organizer checks
- Input validation and HTML sanitizing
- Related events and the caller's own events
- Categories
"""

from datetime import datetime, timedelta, timezone

from conftest import BUYER_ID, ORGANIZER_ID
from evently.extensions import db
from evently.models.event import Category, Event
from evently.models.order import Order
from evently.services import event_service


def _event_body(category_id, **overrides):
    start = datetime.now(timezone.utc) + timedelta(days=30)
    body = {
        "title": "Tech Meetup",
        "description": "Talks and pizza",
        "location": "Hall 4",
        "imageUrl": "https://img.test/meetup.png",
        "startDateTime": start.isoformat(),
        "endDateTime": (start + timedelta(hours=2)).isoformat(),
        "price": "12.50",
        "isFree": False,
        "url": "https://meetup.test",
        "categoryId": category_id,
    }
    body.update(overrides)
    return body


class TestListEvents:

    def test_lists_newest_first_with_total_pages(self, client, seed_data):
        resp = client.get("/api/events")
        assert resp.status_code == 200
        body = resp.get_json()
        titles = [e["title"] for e in body["data"]]
        assert titles == ["Spring Jazz Night", "Charity Football Match", "Summer Concert"]
        assert body["totalPages"] == 1

    def test_enriches_organizer(self, client, seed_data):
        body = client.get("/api/events").get_json()
        concert = next(e for e in body["data"] if e["title"] == "Summer Concert")
        assert concert["organizer"] == {
            "id": ORGANIZER_ID,
            "firstName": "Olivia",
            "lastName": "Organizer",
            "email": "olivia@example.com",
            "profileImageUrl": f"https://img.test/{ORGANIZER_ID}.png",
        }
        assert concert["category"]["name"] == "Music"

    def test_each_organizer_fetched_once(self, client, seed_data, identity_api):
        client.get("/api/events")
        assert sorted(identity_api.user_lookups) == ["user_organizer", "user_other"]

    def test_search_by_title_is_case_insensitive(self, client, seed_data):
        body = client.get("/api/events?query=CONCERT").get_json()
        assert [e["title"] for e in body["data"]] == ["Summer Concert"]

    def test_filter_by_category_name(self, client, seed_data):
        body = client.get("/api/events?category=mus").get_json()
        assert {e["title"] for e in body["data"]} == {"Summer Concert", "Spring Jazz Night"}

    def test_unknown_category_applies_no_filter(self, client, seed_data):
        body = client.get("/api/events?category=opera").get_json()
        assert len(body["data"]) == 3

    def test_pagination(self, client, seed_data):
        first = client.get("/api/events?limit=2&page=1").get_json()
        second = client.get("/api/events?limit=2&page=2").get_json()
        assert first["totalPages"] == 2
        assert len(first["data"]) == 2
        assert [e["title"] for e in second["data"]] == ["Summer Concert"]

    def test_non_numeric_page_falls_back(self, client, seed_data):
        resp = client.get("/api/events?page=abc")
        assert resp.status_code == 200
        assert len(resp.get_json()["data"]) == 3

    def test_identity_failure_fails_closed(self, client, seed_data, identity_api):
        identity_api.fail = True
        resp = client.get("/api/events")
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to fetch user details"}


class TestGetEvent:

    def test_get_by_id(self, client, seed_data):
        resp = client.get(f"/api/events/{seed_data['concert_id']}")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["title"] == "Summer Concert"
        assert body["price"] == "25"
        assert body["organizer"]["firstName"] == "Olivia"

    def test_missing_event_returns_404(self, client, seed_data):
        resp = client.get("/api/events/does-not-exist")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Event not found."}

    def test_unlinked_organizer_skips_lookup(self, client, seed_data, identity_api):
        event = db.session.get(Event, seed_data["concert_id"])
        event.organizer = None
        db.session.commit()

        resp = client.get(f"/api/events/{seed_data['concert_id']}")
        assert resp.status_code == 200
        assert resp.get_json()["organizer"] is None
        assert identity_api.user_lookups == []


class TestCreateEvent:

    def test_requires_authentication(self, client, seed_data):
        resp = client.post("/api/events", json=_event_body(seed_data["music_id"]))
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Authentication required"}

    def test_unknown_session_is_unauthenticated(self, client, seed_data, auth_headers):
        resp = client.post(
            "/api/events",
            json=_event_body(seed_data["music_id"]),
            headers=auth_headers("sess_revoked"),
        )
        assert resp.status_code == 401

    def test_creates_event_owned_by_caller(self, client, seed_data, auth_headers):
        resp = client.post(
            "/api/events",
            json=_event_body(seed_data["music_id"]),
            headers=auth_headers("sess_organizer"),
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["title"] == "Tech Meetup"
        assert body["price"] == "12.50"
        assert body["organizer"]["id"] == ORGANIZER_ID

        event = db.session.get(Event, body["id"])
        assert event.organizer == ORGANIZER_ID
        assert event.category_id == seed_data["music_id"]

    def test_free_event_price_is_zero(self, client, seed_data, auth_headers):
        body = _event_body(seed_data["music_id"], isFree=True, price="")
        resp = client.post("/api/events", json=body, headers=auth_headers())
        assert resp.status_code == 201
        assert resp.get_json()["price"] == "0"

    def test_price_is_stored_in_plain_notation(self, client, seed_data, auth_headers):
        body = _event_body(seed_data["music_id"], price="1E+1")
        resp = client.post("/api/events", json=body, headers=auth_headers())
        assert resp.status_code == 201
        assert resp.get_json()["price"] == "10"
        assert db.session.get(Event, resp.get_json()["id"]).price == "10"

    def test_strips_html(self, client, seed_data, auth_headers):
        body = _event_body(
            seed_data["music_id"],
            title="<b>Bold</b> Meetup",
            description="<script>alert(1)</script>Hello",
        )
        resp = client.post("/api/events", json=body, headers=auth_headers())
        assert resp.status_code == 201
        assert resp.get_json()["title"] == "Bold Meetup"
        assert "<script>" not in resp.get_json()["description"]

    def test_validation_errors(self, client, seed_data, auth_headers):
        music_id = seed_data["music_id"]
        start = datetime.now(timezone.utc) + timedelta(days=1)
        cases = [
            (_event_body(music_id, title=""), "Title is required."),
            (_event_body(music_id, startDateTime="next tuesday"),
             "startDateTime must be an ISO 8601 datetime."),
            (_event_body(music_id,
                         startDateTime=start.isoformat(),
                         endDateTime=(start - timedelta(hours=1)).isoformat()),
             "endDateTime must not be before startDateTime."),
            (_event_body(music_id, price=""), "Price is required unless the event is free."),
            (_event_body(music_id, price="-5"), "Price must be zero or more."),
            (_event_body(music_id, price="cheap"), "Price must be a number."),
            (_event_body(music_id, isFree="false", price="20"), "isFree must be true or false."),
            (_event_body(music_id, isFree=1), "isFree must be true or false."),
            (_event_body("no-such-category"), "Category not found."),
        ]
        for body, message in cases:
            resp = client.post("/api/events", json=body, headers=auth_headers())
            assert resp.status_code == 400, message
            assert resp.get_json() == {"error": message}
        assert Event.query.count() == 3

    def test_non_json_body_returns_400(self, client, seed_data, auth_headers):
        resp = client.post(
            "/api/events", data="title=x", content_type="text/plain", headers=auth_headers()
        )
        assert resp.status_code == 400

    def test_identity_failure_creates_nothing(self, client, seed_data, auth_headers, identity_api):
        identity_api.fail = True
        resp = client.post(
            "/api/events", json=_event_body(seed_data["music_id"]), headers=auth_headers()
        )
        assert resp.status_code == 500
        assert Event.query.count() == 3


class TestUpdateEvent:

    def test_organizer_can_update(self, client, seed_data, auth_headers):
        resp = client.put(
            f"/api/events/{seed_data['concert_id']}",
            json={"title": "Summer Concert (moved)", "location": "Riverside"},
            headers=auth_headers("sess_organizer"),
        )
        assert resp.status_code == 200
        assert resp.get_json()["title"] == "Summer Concert (moved)"

        event = db.session.get(Event, seed_data["concert_id"])
        assert event.location == "Riverside"
        assert event.price == "25"

    def test_change_category(self, client, seed_data, auth_headers):
        resp = client.put(
            f"/api/events/{seed_data['concert_id']}",
            json={"categoryId": seed_data["sports_id"]},
            headers=auth_headers(),
        )
        assert resp.status_code == 200
        assert resp.get_json()["category"]["name"] == "Sports"

    def test_other_user_is_forbidden(self, client, seed_data, auth_headers):
        resp = client.put(
            f"/api/events/{seed_data['concert_id']}",
            json={"title": "Hijacked"},
            headers=auth_headers("sess_other"),
        )
        assert resp.status_code == 403
        assert db.session.get(Event, seed_data["concert_id"]).title == "Summer Concert"

    def test_missing_event_returns_404(self, client, seed_data, auth_headers):
        resp = client.put("/api/events/nope", json={"title": "x"}, headers=auth_headers())
        assert resp.status_code == 404

    def test_invalid_update_is_rejected(self, client, seed_data, auth_headers):
        resp = client.put(
            f"/api/events/{seed_data['concert_id']}",
            json={"title": "   "},
            headers=auth_headers(),
        )
        assert resp.status_code == 400


class TestDeleteEvent:

    def test_organizer_can_delete_and_orders_survive(self, client, seed_data, auth_headers):
        db.session.add(Order(
            stripe_id="cs_keep", event_id=seed_data["concert_id"],
            buyer_id=BUYER_ID, total_amount="25",
        ))
        db.session.commit()

        resp = client.delete(f"/api/events/{seed_data['concert_id']}", headers=auth_headers())
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "deleted", "id": seed_data["concert_id"]}
        assert db.session.get(Event, seed_data["concert_id"]) is None
        assert Order.query.filter_by(stripe_id="cs_keep").count() == 1

    def test_other_user_is_forbidden(self, client, seed_data, auth_headers):
        resp = client.delete(
            f"/api/events/{seed_data['concert_id']}", headers=auth_headers("sess_buyer")
        )
        assert resp.status_code == 403
        assert db.session.get(Event, seed_data["concert_id"]) is not None

    def test_requires_authentication(self, client, seed_data):
        resp = client.delete(f"/api/events/{seed_data['concert_id']}")
        assert resp.status_code == 401


class TestRelatedAndProfileEvents:

    def test_related_events_exclude_self(self, client, seed_data):
        resp = client.get(f"/api/events/{seed_data['concert_id']}/related")
        assert resp.status_code == 200
        body = resp.get_json()
        assert [e["title"] for e in body["data"]] == ["Spring Jazz Night"]
        assert body["totalPages"] == 1

    def test_related_for_missing_event(self, client, seed_data):
        assert client.get("/api/events/nope/related").status_code == 404

    def test_profile_events(self, client, seed_data, auth_headers):
        resp = client.get("/api/profile/events", headers=auth_headers("sess_organizer"))
        assert resp.status_code == 200
        titles = [e["title"] for e in resp.get_json()["data"]]
        assert titles == ["Charity Football Match", "Summer Concert"]

    def test_profile_events_requires_authentication(self, client, seed_data):
        assert client.get("/api/profile/events").status_code == 401


class TestCategories:

    def test_list_categories(self, client, seed_data):
        resp = client.get("/api/categories")
        assert [c["name"] for c in resp.get_json()["data"]] == ["Music", "Sports"]

    def test_create_category(self, client, seed_data, auth_headers):
        resp = client.post("/api/categories", json={"name": "Theatre"}, headers=auth_headers())
        assert resp.status_code == 201
        assert Category.query.filter_by(name="Theatre").count() == 1

    def test_duplicate_category_case_insensitive(self, client, seed_data, auth_headers):
        resp = client.post("/api/categories", json={"name": "music"}, headers=auth_headers())
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Category 'Music' already exists."}

    def test_get_category_by_name_substring(self, app, seed_data):
        assert event_service.get_category_by_name("PORT").name == "Sports"
        assert event_service.get_category_by_name("opera") is None
