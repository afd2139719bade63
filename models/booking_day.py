from datetime import datetime
from models.db import db


class BookingDay(db.Model):
    """Ledger row for one calendar date.

    Every booking commit locks this row (``SELECT ... FOR UPDATE``) and bumps
    ``version``. ``version`` is the mapper's version counter, so the bump is an
    ``UPDATE ... WHERE version = ?`` and a commit built on a stale read fails
    with ``StaleDataError`` even on backends without row locks.
    """
    __tablename__ = "booking_days"

    date = db.Column(db.Date, primary_key=True)
    version = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}
