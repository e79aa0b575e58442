# Import every model here so Alembic can discover them.

from evently.models.event import Category, Event  # noqa: F401
from evently.models.order import Order  # noqa: F401
