"""Commit helper shared by the services.

A failed commit is rolled back and reported as a downstream failure so the
caller can answer with a 5xx instead of a half-written session.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from evently import errors
from evently.extensions import db

logger = logging.getLogger(__name__)


def commit(action):
    """Commit the session. Returns a Failure, or None on success."""
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database error while trying to {action}: {e}", exc_info=True)
        return errors.downstream(f"Could not {action}")
    return None
