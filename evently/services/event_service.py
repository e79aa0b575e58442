"""Event service — event catalogue CRUD, search, and listings.

Every public function returns a `(value, failure)` tuple (see
evently.errors). Organizer details are never stored; listings that show
them are enriched through identity_service at read time.

Text input is sanitized with bleach.clean() to strip HTML tags.
"""

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

import bleach
from sqlalchemy import func

from evently import errors
from evently.extensions import db
from evently.models.event import Category, Event
from evently.services import identity_service
from evently.services.persistence import commit

logger = logging.getLogger(__name__)


def _sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return text
    return bleach.clean(str(text), tags=[], strip=True).strip()


def as_utc(value):
    """Treat naive datetimes (SQLite drops tzinfo) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_datetime(value, field):
    if isinstance(value, datetime):
        return as_utc(value), None
    if not value:
        return None, errors.validation(f"{field} is required.")
    try:
        return as_utc(datetime.fromisoformat(str(value))), None
    except ValueError:
        return None, errors.validation(f"{field} must be an ISO 8601 datetime.")


def _parse_price(value, is_free):
    if is_free:
        return "0", None
    if value is None or str(value).strip() == "":
        return None, errors.validation("Price is required unless the event is free.")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        return None, errors.validation("Price must be a number.")
    if not price.is_finite() or price < 0:
        return None, errors.validation("Price must be zero or more.")
    return format(price, "f"), None


def _current_input(event):
    """An event's stored values in request-body form, for partial updates."""
    return {
        "title": event.title,
        "description": event.description,
        "location": event.location,
        "imageUrl": event.image_url,
        "startDateTime": event.start_date_time,
        "endDateTime": event.end_date_time,
        "price": event.price,
        "isFree": event.is_free,
        "url": event.url,
        "categoryId": event.category_id,
    }


def _build_fields(data):
    """Validate a request body and map it to Event column values.

    Returns:
        tuple: (fields, failure)
    """
    title = _sanitize(data.get("title"))
    if not title:
        return None, errors.validation("Title is required.")

    start, failure = _parse_datetime(data.get("startDateTime"), "startDateTime")
    if failure:
        return None, failure
    end, failure = _parse_datetime(data.get("endDateTime"), "endDateTime")
    if failure:
        return None, failure
    if end < start:
        return None, errors.validation("endDateTime must not be before startDateTime.")

    is_free = data.get("isFree", False)
    if not isinstance(is_free, bool):
        return None, errors.validation("isFree must be true or false.")
    price, failure = _parse_price(data.get("price"), is_free)
    if failure:
        return None, failure

    category_id = data.get("categoryId")
    if not category_id:
        return None, errors.validation("categoryId is required.")
    if db.session.get(Category, category_id) is None:
        return None, errors.validation("Category not found.")

    return {
        "title": title,
        "description": _sanitize(data.get("description")),
        "location": _sanitize(data.get("location")),
        "image_url": _sanitize(data.get("imageUrl")),
        "start_date_time": start,
        "end_date_time": end,
        "price": price,
        "is_free": is_free,
        "url": _sanitize(data.get("url")),
        "category_id": category_id,
    }, None


def _page_window(page, limit, default_limit):
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else default_limit
    return page, limit


def _paginate(query, page, limit):
    """Newest first, skip/limit. Returns (events, total_pages)."""
    total = query.count()
    events = (
        query.order_by(Event.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return events, math.ceil(total / limit)


def _with_organizers(events):
    organizers, failure = identity_service.fetch_many(e.organizer for e in events)
    if failure:
        return None, failure
    return [e.to_dict(organizer=organizers.get(e.organizer)) for e in events], None


# ──────────────────────────────────────────────
# Categories
# ──────────────────────────────────────────────

def get_category_by_name(name):
    """Case-insensitive substring lookup. Returns a Category or None."""
    if not name:
        return None
    return Category.query.filter(Category.name.ilike(f"%{name}%")).first()


def get_all_categories():
    categories = Category.query.order_by(Category.name).all()
    return [c.to_dict() for c in categories], None


def create_category(name):
    name = _sanitize(name)
    if not name:
        return None, errors.validation("Category name is required.")

    existing = Category.query.filter(
        func.lower(Category.name) == name.lower()
    ).first()
    if existing:
        return None, errors.validation(f"Category '{existing.name}' already exists.")

    category = Category(name=name)
    db.session.add(category)
    failure = commit("create the category")
    if failure:
        return None, failure
    logger.info(f"Created category {category.id} ({name})")
    return category.to_dict(), None


# ──────────────────────────────────────────────
# Events
# ──────────────────────────────────────────────

def find_event(event_id):
    """Load an Event model. Returns (event, failure)."""
    if not event_id:
        return None, errors.validation("Event ID is required.")
    event = db.session.get(Event, event_id)
    if event is None:
        return None, errors.not_found("Event not found.")
    return event, None


def create_event(organizer_id, data):
    """Create an event owned by `organizer_id`.

    The organizer is looked up before anything is written so a failing
    identity API leaves no event behind.
    """
    fields, failure = _build_fields(data or {})
    if failure:
        return None, failure

    organizer, failure = identity_service.fetch_user_details(organizer_id)
    if failure:
        return None, failure

    event = Event(organizer=organizer_id, **fields)
    db.session.add(event)
    failure = commit("create the event")
    if failure:
        return None, failure

    logger.info(f"Event {event.id} created by {organizer_id}")
    return event.to_dict(organizer=organizer), None


def get_event_by_id(event_id):
    event, failure = find_event(event_id)
    if failure:
        return None, failure

    organizer = None
    if event.organizer:
        organizer, failure = identity_service.fetch_user_details(event.organizer)
        if failure:
            return None, failure
    return event.to_dict(organizer=organizer), None


def update_event(actor_id, event_id, data):
    """Update an event. Only its organizer may do this."""
    event, failure = find_event(event_id)
    if failure:
        return None, failure
    if event.organizer != actor_id:
        logger.warning(f"User {actor_id} tried to update event {event_id}")
        return None, errors.forbidden("Only the organizer can update this event.")

    fields, failure = _build_fields({**_current_input(event), **(data or {})})
    if failure:
        return None, failure

    for column, value in fields.items():
        setattr(event, column, value)
    failure = commit("update the event")
    if failure:
        return None, failure
    return event.to_dict(), None


def delete_event(actor_id, event_id):
    """Delete an event. Its orders are kept."""
    event, failure = find_event(event_id)
    if failure:
        return None, failure
    if event.organizer != actor_id:
        logger.warning(f"User {actor_id} tried to delete event {event_id}")
        return None, errors.forbidden("Only the organizer can delete this event.")

    db.session.delete(event)
    failure = commit("delete the event")
    if failure:
        return None, failure
    logger.info(f"Event {event_id} deleted by {actor_id}")
    return event_id, None


def get_all_events(query=None, category=None, page=1, limit=6):
    """Search events by title and category name, newest first.

    An unknown category name applies no category filter.
    """
    page, limit = _page_window(page, limit, 6)

    events_query = Event.query
    if query:
        events_query = events_query.filter(Event.title.ilike(f"%{query}%"))
    if category:
        match = get_category_by_name(category)
        if match:
            events_query = events_query.filter(Event.category_id == match.id)

    events, total_pages = _paginate(events_query, page, limit)
    data, failure = _with_organizers(events)
    if failure:
        return None, failure
    return {"data": data, "totalPages": total_pages}, None


def get_events_by_user(user_id, page=1, limit=6):
    """Events organized by `user_id`."""
    if not user_id:
        return None, errors.validation("A user id is required.")
    page, limit = _page_window(page, limit, 6)

    events, total_pages = _paginate(Event.query.filter_by(organizer=user_id), page, limit)
    return {"data": [e.to_dict() for e in events], "totalPages": total_pages}, None


def get_related_events_by_category(category_id, event_id, page=1, limit=3):
    """Other events in the same category."""
    if not category_id:
        return None, errors.validation("categoryId is required.")
    page, limit = _page_window(page, limit, 3)

    related = Event.query.filter(
        Event.category_id == category_id,
        Event.id != event_id,
    )
    events, total_pages = _paginate(related, page, limit)
    return {"data": [e.to_dict() for e in events], "totalPages": total_pages}, None
