from datetime import datetime
from models.db import db

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    customer_name = db.Column(db.String(120), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_phone = db.Column(db.String(30), nullable=True)

    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.String(5), nullable=False)  # HH:MM, zero padded
    end_time = db.Column(db.String(5), nullable=False)

    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_duration = db.Column(db.Integer, nullable=False)  # minutes

    status = db.Column(db.String(20), nullable=False, default="pending")
    # status values: pending, confirmed, cancelled, completed

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    status_changed_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    lines = db.relationship(
        "BookingLine",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingLine.position",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "customer": {
                "name": self.customer_name,
                "email": self.customer_email,
                "phone": self.customer_phone,
            },
            "services": [line.to_dict() for line in self.lines],
            "date": self.date.isoformat(),
            "startTime": self.start_time,
            "endTime": self.end_time,
            "totalPrice": float(self.total_price),
            "totalDuration": self.total_duration,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
        }


class BookingLine(db.Model):
    __tablename__ = "booking_lines"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    # captured when booked; later catalog edits do not touch committed bookings
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    unit_duration = db.Column(db.Integer, nullable=False)

    booking = db.relationship("Booking", back_populates="lines")
    service = db.relationship("Service")

    def to_dict(self):
        return {
            "service": self.service_id,
            "name": self.service.name if self.service else None,
            "quantity": self.quantity,
            "price": float(self.unit_price),
            "duration": self.unit_duration,
        }
