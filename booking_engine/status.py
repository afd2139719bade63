from datetime import datetime

from booking_engine.errors import InvalidStatus, InvalidStatusTransition

PENDING = "pending"
CONFIRMED = "confirmed"
CANCELLED = "cancelled"
COMPLETED = "completed"

ALL_STATUSES = (PENDING, CONFIRMED, CANCELLED, COMPLETED)

# bookings in these states occupy their span in the ledger
ACTIVE_STATUSES = (PENDING, CONFIRMED)

TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {CANCELLED, COMPLETED},
    CANCELLED: set(),
    COMPLETED: set(),
}


def normalize_status(value) -> str:
    if not isinstance(value, str) or value.strip().lower() not in ALL_STATUSES:
        raise InvalidStatus(value)
    return value.strip().lower()


def can_transition(current: str, new: str) -> bool:
    return current == new or new in TRANSITIONS.get(current, set())


def apply_status(booking, new_status) -> bool:
    """Move ``booking`` to ``new_status``.

    Returns False when the booking already has that status (nothing changes),
    True when the status was updated. Date, time, lines and price are never
    touched here.
    """
    new_status = normalize_status(new_status)
    if booking.status == new_status:
        return False
    if not can_transition(booking.status, new_status):
        raise InvalidStatusTransition(booking.status, new_status)

    now = datetime.utcnow()
    booking.status = new_status
    booking.status_changed_at = now
    if new_status == CANCELLED:
        booking.cancelled_at = now
    return True
