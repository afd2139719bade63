"""Availability calendar: weekly working hours plus dated exceptions.

A service either has a calendar (one ``Availability`` row with its working
hours and exceptions) or it has none, and a service without a calendar is
never bookable. For any date an exception, when present, fully replaces the
weekday's working hours; the two are never merged.
"""
from datetime import date, datetime
from typing import NamedTuple, Optional

from sqlalchemy.exc import IntegrityError

from booking_engine.catalog import get_service
from booking_engine.errors import InvalidCalendar, MalformedTime
from booking_engine.timespan import TimeSpan, contains, overlaps
from models import db
from models.availability import Availability, WorkingHour, AvailabilityException

DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# reasons reported when a span is not open
CALENDAR_NOT_CONFIGURED = "CalendarNotConfigured"
EXCEPTION_CLOSED = "ExceptionDateNotAvailable"
OUTSIDE_EXCEPTION_SLOTS = "TimeNotAvailableInException"
DAY_CLOSED = "DayNotAvailable"
OUTSIDE_WORKING_HOURS = "TimeNotAvailable"


class AvailabilityDecision(NamedTuple):
    open: bool
    reason: Optional[str]
    day: str


def day_name(on_date: date) -> str:
    return DAYS[on_date.weekday()]


def parse_date(value) -> date:
    """Calendar date from ``YYYY-MM-DD`` or a full ISO timestamp (time ignored)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) < 10:
        raise ValueError(f"Invalid date {value!r}")
    return date.fromisoformat(value[:10])


def _parse_slots(raw, where: str):
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidCalendar(f"{where}: slots must be a list", where=where)

    spans = []
    for item in raw:
        if not isinstance(item, dict):
            raise InvalidCalendar(f"{where}: each slot needs start and end", where=where)
        try:
            span = TimeSpan.parse(item.get("start"), item.get("end"))
        except MalformedTime as exc:
            raise InvalidCalendar(f"{where}: {exc.message}", where=where) from exc
        if span.start >= span.end:
            raise InvalidCalendar(f"{where}: slot start must be before end", where=where, slot=item)
        spans.append(span)

    spans.sort()
    for prev, cur in zip(spans, spans[1:]):
        if overlaps(prev.start, prev.end, cur.start, cur.end):
            raise InvalidCalendar(f"{where}: slots overlap", where=where)
    return spans


def _flag(entry: dict, default: bool) -> bool:
    value = entry.get("isAvailable", entry.get("is_available", default))
    if not isinstance(value, bool):
        raise InvalidCalendar("isAvailable must be true or false")
    return value


def validate_calendar(working_hours, exceptions):
    """Normalize a complete calendar payload or raise ``InvalidCalendar``.

    Returns ``(rules, overrides)`` where ``rules`` maps day name to
    ``(is_available, [TimeSpan])`` and ``overrides`` maps ``date`` to the same
    pair. Malformed input is rejected, never repaired.
    """
    if working_hours is None:
        working_hours = []
    if exceptions is None:
        exceptions = []
    if not isinstance(working_hours, list) or not isinstance(exceptions, list):
        raise InvalidCalendar("workingHours and exceptions must be lists")

    rules = {}
    for entry in working_hours:
        if not isinstance(entry, dict):
            raise InvalidCalendar("workingHours entries must be objects")
        day = entry.get("day")
        day = day.strip().lower() if isinstance(day, str) else day
        if day not in DAYS:
            raise InvalidCalendar(f"Unknown day {entry.get('day')!r}", day=entry.get("day"))
        if day in rules:
            raise InvalidCalendar(f"Duplicate working hours for {day}", day=day)
        rules[day] = (_flag(entry, True), _parse_slots(entry.get("slots"), day))

    overrides = {}
    for entry in exceptions:
        if not isinstance(entry, dict):
            raise InvalidCalendar("exceptions entries must be objects")
        try:
            on_date = parse_date(entry.get("date"))
        except ValueError as exc:
            raise InvalidCalendar(f"Invalid exception date {entry.get('date')!r}") from exc
        if on_date in overrides:
            raise InvalidCalendar(f"Duplicate exception for {on_date.isoformat()}", date=on_date.isoformat())
        overrides[on_date] = (_flag(entry, False), _parse_slots(entry.get("slots"), on_date.isoformat()))

    return rules, overrides


def find_calendar(service_id) -> Optional[Availability]:
    return Availability.query.filter_by(service_id=service_id).first()


def _exception_for(availability: Availability, on_date: date):
    for exc in availability.exceptions:
        if exc.date == on_date:
            return exc
    return None


def _rule_for(availability: Availability, day: str):
    for rule in availability.working_hours:
        if rule.day == day:
            return rule
    return None


def _spans(row):
    return [TimeSpan.parse(s["start"], s["end"]) for s in row.slots]


def effective_slots(availability: Optional[Availability], on_date: date):
    """Open slots for ``on_date`` after exception precedence; [] when closed."""
    if availability is None:
        return []
    exc = _exception_for(availability, on_date)
    if exc is not None:
        return _spans(exc) if exc.is_available else []
    rule = _rule_for(availability, day_name(on_date))
    if rule is None or not rule.is_available:
        return []
    return _spans(rule)


def resolve(availability: Optional[Availability], on_date: date, start: int, end: int) -> AvailabilityDecision:
    day = day_name(on_date)
    if availability is None:
        return AvailabilityDecision(False, CALENDAR_NOT_CONFIGURED, day)

    exc = _exception_for(availability, on_date)
    if exc is not None:
        if not exc.is_available:
            return AvailabilityDecision(False, EXCEPTION_CLOSED, day)
        if any(contains(s.start, s.end, start, end) for s in _spans(exc)):
            return AvailabilityDecision(True, None, day)
        return AvailabilityDecision(False, OUTSIDE_EXCEPTION_SLOTS, day)

    rule = _rule_for(availability, day)
    if rule is None or not rule.is_available:
        return AvailabilityDecision(False, DAY_CLOSED, day)
    if any(contains(s.start, s.end, start, end) for s in _spans(rule)):
        return AvailabilityDecision(True, None, day)
    return AvailabilityDecision(False, OUTSIDE_WORKING_HOURS, day)


def is_open(availability: Optional[Availability], on_date: date, start: int, end: int) -> bool:
    return resolve(availability, on_date, start, end).open


def _write_calendar(service_id, rules, overrides) -> Availability:
    availability = find_calendar(service_id)
    if availability is None:
        availability = Availability(service_id=service_id)
        db.session.add(availability)
    else:
        availability.working_hours.clear()
        availability.exceptions.clear()
        # old rows must be gone before new rows reuse their unique keys
        db.session.flush()

    for day, (is_available, spans) in rules.items():
        wh = WorkingHour(day=day, day_index=DAYS.index(day), is_available=is_available)
        wh.slots = [s.to_dict() for s in spans]
        availability.working_hours.append(wh)

    for on_date, (is_available, spans) in overrides.items():
        ex = AvailabilityException(date=on_date, is_available=is_available)
        ex.slots = [s.to_dict() for s in spans]
        availability.exceptions.append(ex)

    availability.updated_at = datetime.utcnow()
    db.session.commit()
    return availability


def replace_calendar(service_id, working_hours, exceptions) -> Availability:
    """Swap the whole calendar of a service in one commit.

    There is no partial update: whatever is not in the payload is gone
    afterwards, including every earlier exception.
    """
    service = get_service(service_id)
    rules, overrides = validate_calendar(working_hours, exceptions)
    try:
        return _write_calendar(service.id, rules, overrides)
    except IntegrityError:
        # another request created the calendar first; replace theirs
        db.session.rollback()
        return _write_calendar(service.id, rules, overrides)
