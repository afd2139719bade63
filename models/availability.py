import json
from datetime import datetime
from models.db import db

class Availability(db.Model):
    __tablename__ = "availabilities"

    id = db.Column(db.Integer, primary_key=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    service = db.relationship("Service", back_populates="availability")
    working_hours = db.relationship(
        "WorkingHour",
        back_populates="availability",
        cascade="all, delete-orphan",
        order_by="WorkingHour.day_index",
    )
    exceptions = db.relationship(
        "AvailabilityException",
        back_populates="availability",
        cascade="all, delete-orphan",
        order_by="AvailabilityException.date",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "service": self.service_id,
            "workingHours": [w.to_dict() for w in self.working_hours],
            "exceptions": [e.to_dict() for e in self.exceptions],
            "updated_at": self.updated_at.isoformat(),
        }


class _SlotsMixin:
    # ordered list of {"start": "HH:MM", "end": "HH:MM"}
    slots_json = db.Column(db.Text, nullable=False, default="[]")

    @property
    def slots(self):
        return json.loads(self.slots_json or "[]")

    @slots.setter
    def slots(self, value):
        self.slots_json = json.dumps(list(value))


class WorkingHour(_SlotsMixin, db.Model):
    __tablename__ = "working_hours"

    id = db.Column(db.Integer, primary_key=True)
    availability_id = db.Column(db.Integer, db.ForeignKey("availabilities.id"), nullable=False, index=True)

    day = db.Column(db.String(10), nullable=False)  # monday..sunday
    day_index = db.Column(db.Integer, nullable=False)  # 0 = monday
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    availability = db.relationship("Availability", back_populates="working_hours")

    __table_args__ = (
        # One rule per weekday
        db.UniqueConstraint("availability_id", "day", name="uq_working_hours_day"),
    )

    def to_dict(self):
        return {"day": self.day, "isAvailable": self.is_available, "slots": self.slots}


class AvailabilityException(_SlotsMixin, db.Model):
    __tablename__ = "availability_exceptions"

    id = db.Column(db.Integer, primary_key=True)
    availability_id = db.Column(db.Integer, db.ForeignKey("availabilities.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False)
    is_available = db.Column(db.Boolean, default=False, nullable=False)

    availability = db.relationship("Availability", back_populates="exceptions")

    __table_args__ = (
        # One override per calendar date
        db.UniqueConstraint("availability_id", "date", name="uq_availability_exception_date"),
    )

    def to_dict(self):
        return {"date": self.date.isoformat(), "isAvailable": self.is_available, "slots": self.slots}
