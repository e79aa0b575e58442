"""Order model.

One row per purchase, written only by the Stripe webhook. `stripe_id` is
the Checkout Session id and carries a unique constraint: a second insert
for the same session fails at the database, which the materializer treats
as "already processed".

`event_id` is a soft reference (no foreign key). Session metadata may be
missing, in which case it is stored as an empty string, and deleting an
event must not take its orders with it.
"""

import uuid

from evently.extensions import db


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    stripe_id = db.Column(
        db.String(255), unique=True, nullable=False
    )  # e.g. "cs_test_a1B2..."
    event_id = db.Column(db.String(36), nullable=False, default="", index=True)
    buyer_id = db.Column(
        db.String(255), nullable=True, index=True
    )  # identity subject id, cleared when the user is unlinked
    total_amount = db.Column(db.String(32), nullable=False, default="0")
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now(), index=True
    )

    # --- Relationships ---
    event = db.relationship(
        "Event",
        primaryjoin="foreign(Order.event_id) == Event.id",
        viewonly=True,
        lazy="joined",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "stripeId": self.stripe_id,
            "eventId": self.event_id,
            "buyerId": self.buyer_id,
            "totalAmount": self.total_amount,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Order {self.stripe_id} ({self.total_amount})>"
