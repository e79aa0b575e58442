"""User service — local cleanup when an identity is deleted upstream.

Users are managed by the identity provider, so there is nothing to create
or update here. When a user is deleted, their subject id is detached from
the events they organized and the orders they bought.
"""

import logging

from evently import errors
from evently.models.event import Event
from evently.models.order import Order
from evently.services import identity_service
from evently.services.persistence import commit

logger = logging.getLogger(__name__)


def unlink_user(subject_id):
    """Clear `subject_id` from events and orders.

    Returns:
        tuple: ({"events": n, "orders": n}, failure)
    """
    if not subject_id:
        return None, errors.validation("A user id is required.")

    events = Event.query.filter_by(organizer=subject_id).update(
        {"organizer": None}, synchronize_session=False
    )
    orders = Order.query.filter_by(buyer_id=subject_id).update(
        {"buyer_id": None}, synchronize_session=False
    )
    failure = commit("unlink the user")
    if failure:
        return None, failure

    identity_service.get_cache().evict(subject_id)
    logger.info(f"Unlinked user {subject_id} from {events} events and {orders} orders")
    return {"events": events, "orders": orders}, None
