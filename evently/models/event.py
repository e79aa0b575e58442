"""Event catalogue models.

- Category: a label, looked up case-insensitively by name.
- Event: a ticketed event. `organizer` holds the identity-provider subject
  id of its creator; there is no local users table to point a foreign key at.
"""

import uuid

from evently.extensions import db


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name = db.Column(db.String(255), unique=True, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    events = db.relationship("Event", back_populates="category", lazy="dynamic")

    def to_dict(self):
        return {"id": self.id, "name": self.name}

    def __repr__(self):
        return f"<Category {self.name}>"


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    location = db.Column(db.String(255), nullable=True)
    image_url = db.Column(db.String(1000), nullable=True)
    start_date_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date_time = db.Column(db.DateTime(timezone=True), nullable=False)
    price = db.Column(db.String(32), nullable=True)  # decimal-as-string, e.g. "19.99"
    is_free = db.Column(db.Boolean, default=False)
    url = db.Column(db.String(1000), nullable=True)
    category_id = db.Column(
        db.String(36), db.ForeignKey("categories.id"), nullable=False, index=True
    )
    organizer = db.Column(
        db.String(255), nullable=True, index=True
    )  # identity subject id, cleared when the user is unlinked
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now(), index=True
    )

    # --- Relationships ---
    category = db.relationship("Category", back_populates="events")

    def to_dict(self, organizer=None):
        """Serialize for the JSON API.

        `organizer` is the identity record joined in memory by the caller;
        without it only the raw subject id is returned.
        """
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location,
            "imageUrl": self.image_url,
            "startDateTime": _iso(self.start_date_time),
            "endDateTime": _iso(self.end_date_time),
            "price": self.price,
            "isFree": bool(self.is_free),
            "url": self.url,
            "category": self.category.to_dict() if self.category else None,
            "organizer": organizer if organizer is not None else self.organizer,
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Event {self.title[:30]}>"


def _iso(value):
    return value.isoformat() if value else None
