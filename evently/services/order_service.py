"""Order service — order materialization and order listings.

Orders are created only by the Stripe webhook (see stripe_service). The
checkout session id is unique in the orders table, so a redelivered
webhook loses the insert race at the database and gets the existing order
back instead of a duplicate.
"""

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from evently import errors
from evently.extensions import db
from evently.models.order import Order
from evently.services import event_service, identity_service

logger = logging.getLogger(__name__)


class MaterializedOrder(NamedTuple):
    order: Order
    created: bool  # False when the session was already materialized


def total_amount_from_minor_units(amount_total):
    """Stripe minor units -> major units as an exact decimal string.

    1999 -> "19.99", 5000 -> "50", None -> "0".
    """
    if not amount_total:
        return "0"
    return str(Decimal(int(amount_total)) / 100)


def create_order(stripe_id, event_id="", buyer_id="", total_amount="0"):
    """Insert an Order for a checkout session, at most once per session.

    Returns:
        tuple: (MaterializedOrder, failure)
    """
    if not stripe_id:
        return None, errors.validation("Checkout session id is required.")

    order = Order(
        stripe_id=stripe_id,
        event_id=event_id or "",
        buyer_id=buyer_id or "",
        total_amount=total_amount,
        created_at=datetime.now(timezone.utc),
    )
    db.session.add(order)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = Order.query.filter_by(stripe_id=stripe_id).first()
        if existing is None:
            logger.error(f"Order insert for session {stripe_id} violated a constraint")
            return None, errors.downstream("Could not save the order")
        logger.info(f"Order for session {stripe_id} already exists, skipping")
        return MaterializedOrder(existing, False), None
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to save order for session {stripe_id}: {e}", exc_info=True)
        return None, errors.downstream("Could not save the order")

    logger.info(
        f"Order {order.id} created for session {stripe_id} "
        f"(event={order.event_id}, amount={order.total_amount})"
    )
    return MaterializedOrder(order, True), None


def get_orders_by_event(actor_id, event_id, search_string=""):
    """Orders for one event, optionally filtered by buyer id substring.

    Only the event's organizer may list them. Each row carries the buyer's
    display name fetched from the identity provider.
    """
    event, failure = event_service.find_event(event_id)
    if failure:
        return None, failure
    if event.organizer != actor_id:
        return None, errors.forbidden("Only the organizer can view orders for this event.")

    query = Order.query.filter_by(event_id=event.id)
    if search_string:
        query = query.filter(Order.buyer_id.ilike(f"%{search_string}%"))
    orders = query.order_by(Order.created_at.desc()).all()

    buyers, failure = identity_service.fetch_many(o.buyer_id for o in orders)
    if failure:
        return None, failure

    return [
        {
            "id": o.id,
            "totalAmount": o.total_amount,
            "createdAt": o.created_at.isoformat() if o.created_at else None,
            "eventTitle": event.title,
            "eventId": event.id,
            "buyerId": o.buyer_id,
            "buyer": (
                identity_service.display_name(buyers[o.buyer_id])
                if o.buyer_id in buyers else ""
            ),
        }
        for o in orders
    ], None


def get_orders_by_user(user_id, page=1, limit=3):
    """A buyer's orders, newest first, each with its event and organizer."""
    if not user_id:
        return None, errors.validation("A user id is required.")
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else 3

    query = Order.query.filter_by(buyer_id=user_id)
    total = query.count()
    orders = (
        query.order_by(Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    organizers, failure = identity_service.fetch_many(
        o.event.organizer for o in orders if o.event is not None
    )
    if failure:
        return None, failure

    data = []
    for o in orders:
        row = o.to_dict()
        row["event"] = None
        if o.event is not None:
            row["event"] = {
                "id": o.event.id,
                "title": o.event.title,
                "organizer": organizers.get(o.event.organizer),
            }
        data.append(row)

    return {"data": data, "totalPages": math.ceil(total / limit)}, None
