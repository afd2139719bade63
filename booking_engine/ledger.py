"""Booking ledger: the only place bookings are created or change status.

For every date the active (pending/confirmed) bookings never overlap. A
commit first checks each requested service's calendar against the whole
aggregated span, then, holding the per-date lock and the ``booking_days``
row lock, re-reads that date's active bookings, rejects on any overlap and
inserts the new booking in the same transaction.

The ``booking_days`` row is also version-checked on write. Where the
backend ignores ``FOR UPDATE`` (SQLite) a second process that read the same
version fails with ``StaleDataError`` and re-validates on retry.
"""
import time
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from booking_engine.aggregate import (
    AggregatedLine,
    AggregatedRequest,
    aggregate,
    merge_lines,
    parse_lines,
)
from booking_engine.availability import day_name, find_calendar, parse_date, resolve
from booking_engine.catalog import coerce_id, get_service
from booking_engine.errors import (
    CalendarNotConfigured,
    InvalidRequest,
    InvalidStatus,
    NotFound,
    ServiceNotFound,
    ServiceUnavailable,
    SlotConflict,
    Unavailable,
)
from booking_engine.locks import LockTimeout, date_lock
from booking_engine.status import ACTIVE_STATUSES, CANCELLED, PENDING, apply_status, normalize_status
from booking_engine.timespan import overlaps, to_minutes
from models import db
from models.booking import Booking, BookingLine
from models.booking_day import BookingDay


def _parse_day(value):
    try:
        return parse_date(value)
    except ValueError:
        raise InvalidRequest("Invalid date. Use YYYY-MM-DD", date=value)


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def validate_customer(customer) -> dict:
    if not isinstance(customer, dict):
        raise InvalidRequest("customer is required")
    name = customer.get("name")
    email = customer.get("email")
    phone = customer.get("phone")

    name = name.strip() if isinstance(name, str) else ""
    email = email.strip() if isinstance(email, str) else ""
    if not name:
        raise InvalidRequest("customer.name is required")
    if not _is_valid_email(email):
        raise InvalidRequest("customer.email is invalid")
    if phone is not None and not isinstance(phone, str):
        raise InvalidRequest("customer.phone must be a string")

    return {"name": name[:120], "email": email, "phone": (phone or "").strip()[:30] or None}


# ---------- step 1: calendars ----------

def ensure_open(req: AggregatedRequest) -> None:
    for service_id in req.service_ids:
        availability = find_calendar(service_id)
        if availability is None:
            raise CalendarNotConfigured(service_id)
        decision = resolve(availability, req.date, req.start, req.end)
        if not decision.open:
            raise ServiceUnavailable(
                service_id,
                decision.day,
                decision.reason,
                f"{req.start_time}-{req.end_time}",
            )


def check_availability(raw_services, date_value, start_time):
    """Per-service availability of the aggregated span; never touches the ledger."""
    on_date = _parse_day(date_value)
    start = to_minutes(start_time)
    lines = merge_lines(parse_lines(raw_services))

    found, missing = [], set()
    for line in lines:
        try:
            found.append(AggregatedLine(get_service(line.service_id), line.quantity))
        except ServiceNotFound:
            missing.add(line.service_id)

    req = AggregatedRequest(on_date, start, found)
    requested = f"{req.start_time}-{req.end_time}"
    by_id = {l.service.id: l.service for l in found}

    results = []
    for line in lines:
        if line.service_id in missing:
            results.append({
                "service": line.service_id,
                "available": False,
                "reason": ServiceNotFound.code,
                "day": day_name(on_date),
                "requestedTime": requested,
            })
            continue
        service = by_id[coerce_id(line.service_id)]
        decision = resolve(find_calendar(service.id), on_date, req.start, req.end)
        results.append({
            "service": service.id,
            "available": decision.open,
            "reason": decision.reason or "",
            "day": decision.day,
            "requestedTime": requested,
        })
    return results


# ---------- steps 2-3: conflicts + commit ----------

def find_conflicts(on_date, start: int, end: int):
    rows = (
        Booking.query
        .filter(Booking.date == on_date, Booking.status.in_(ACTIVE_STATUSES))
        .all()
    )

    hold_minutes = current_app.config.get("CANCELLED_SLOT_HOLD_MINUTES", 0)
    if hold_minutes > 0:
        held_since = datetime.utcnow() - timedelta(minutes=hold_minutes)
        rows += (
            Booking.query
            .filter(
                Booking.date == on_date,
                Booking.status == CANCELLED,
                Booking.cancelled_at > held_since,
            )
            .all()
        )

    return [
        {"id": b.id, "time": f"{b.start_time}-{b.end_time}", "status": b.status}
        for b in sorted(rows, key=lambda b: (b.start_time, b.id))
        if overlaps(to_minutes(b.start_time), to_minutes(b.end_time), start, end)
    ]


def _lock_ledger_day(on_date):
    day = BookingDay.query.filter_by(date=on_date).with_for_update().first()
    if day is not None:
        return day, False
    day = BookingDay(date=on_date)
    db.session.add(day)
    # a concurrent insert of the same date fails here with IntegrityError
    db.session.flush()
    return day, True


def _commit_once(customer: dict, req: AggregatedRequest) -> Booking:
    day, created = _lock_ledger_day(req.date)

    conflicts = find_conflicts(req.date, req.start, req.end)
    if conflicts:
        db.session.rollback()
        raise SlotConflict(conflicts)

    booking = Booking(
        customer_name=customer["name"],
        customer_email=customer["email"],
        customer_phone=customer["phone"],
        date=req.date,
        start_time=req.start_time,
        end_time=req.end_time,
        total_price=req.total_price,
        total_duration=req.total_duration,
        status=PENDING,
    )
    for position, line in enumerate(req.lines):
        booking.lines.append(BookingLine(
            service_id=line.service.id,
            position=position,
            quantity=line.quantity,
            unit_price=line.service.price,
            unit_duration=line.service.duration,
        ))

    if not created:
        # UPDATE ... WHERE version = <read>; a stale read raises StaleDataError
        day.updated_at = datetime.utcnow()
    db.session.add(booking)
    db.session.commit()
    return booking


def commit_booking(customer: dict, req: AggregatedRequest) -> Booking:
    timeout = current_app.config.get("BOOKING_LOCK_TIMEOUT_SECONDS", 10)
    attempts = max(1, current_app.config.get("BOOKING_COMMIT_RETRIES", 3))
    backoff = current_app.config.get("BOOKING_RETRY_BACKOFF_SECONDS", 0.05)

    try:
        with date_lock(req.date, timeout):
            for attempt in range(1, attempts + 1):
                try:
                    return _commit_once(customer, req)
                except (OperationalError, IntegrityError, StaleDataError) as exc:
                    db.session.rollback()
                    current_app.logger.warning(
                        "booking commit attempt %s/%s for %s failed: %s",
                        attempt, attempts, req.date.isoformat(), exc,
                    )
                    if attempt == attempts:
                        raise Unavailable() from exc
                    time.sleep(backoff * attempt)
    except LockTimeout as exc:
        current_app.logger.warning("%s", exc)
        raise Unavailable() from exc


def create_booking(customer, services, date_value, start_time) -> Booking:
    customer = validate_customer(customer)
    on_date = _parse_day(date_value)
    req = aggregate(parse_lines(services), on_date, start_time)
    ensure_open(req)
    return commit_booking(customer, req)


# ---------- status + reads ----------

def get_booking(booking_id) -> Booking:
    bid = coerce_id(booking_id)
    booking = db.session.get(Booking, bid) if bid is not None else None
    if booking is None:
        raise NotFound("Booking not found", bookingId=booking_id)
    return booking


def update_status(booking_id, new_status):
    """Returns ``(booking, changed)``; repeating the current status is a no-op."""
    new_status = normalize_status(new_status)
    bid = coerce_id(booking_id)
    booking = db.session.get(Booking, bid, with_for_update=True) if bid is not None else None
    if booking is None:
        db.session.rollback()
        raise NotFound("Booking not found", bookingId=booking_id)

    try:
        changed = apply_status(booking, new_status)
    except InvalidStatus:
        db.session.rollback()
        raise
    db.session.commit()
    return booking, changed


def list_bookings(on_date=None, customer=None, service_id=None, status=None, limit=None):
    q = Booking.query

    if on_date:
        q = q.filter(Booking.date == _parse_day(on_date))

    if customer:
        like = f"%{customer.strip()}%"
        q = q.filter(or_(Booking.customer_email.ilike(like), Booking.customer_name.ilike(like)))

    if service_id is not None and service_id != "":
        sid = coerce_id(service_id)
        if sid is None:
            return []
        q = q.filter(Booking.lines.any(BookingLine.service_id == sid))

    if status:
        q = q.filter(Booking.status == normalize_status(status))

    q = q.order_by(Booking.date.asc(), Booking.start_time.asc(), Booking.id.asc())
    if limit:
        q = q.limit(limit)
    return q.all()
