import gc
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from booking_engine import ledger
from booking_engine.errors import (
    CalendarNotConfigured,
    InvalidRequest,
    InvalidStatus,
    InvalidStatusTransition,
    NotFound,
    ServiceNotFound,
    ServiceUnavailable,
    SlotConflict,
    Unavailable,
)
from booking_engine.ledger import (
    check_availability,
    create_booking,
    find_conflicts,
    get_booking,
    list_bookings,
    update_status,
)
from booking_engine.locks import _DATE_LOCKS, _lock_for, date_lock
from models import db
from models.booking import Booking
from models.booking_day import BookingDay
from conftest import MONDAY, SUNDAY, TUESDAY


def _book(customer, service, start, quantity=1, on_date=MONDAY):
    return create_booking(customer, [{"service": service.id, "quantity": quantity}], on_date.isoformat(), start)


def test_multi_service_booking_is_one_block(make_service, customer):
    a = make_service(name="Cut", price="20.00", duration=30)
    b = make_service(name="Wash", price="10.00", duration=15)

    booking = create_booking(
        customer,
        [{"service": a.id, "quantity": 2}, {"service": b.id, "quantity": 1}],
        MONDAY.isoformat(),
        "09:00",
    )

    assert booking.id is not None
    assert booking.status == "pending"
    assert booking.start_time == "09:00"
    assert booking.end_time == "10:15"
    assert booking.total_duration == 75
    assert booking.total_price == Decimal("50.00")
    assert [(l.service_id, l.quantity) for l in booking.lines] == [(a.id, 2), (b.id, 1)]
    assert db.session.get(BookingDay, MONDAY).version == 1


def test_back_to_back_bookings_do_not_conflict(make_service, customer):
    service = make_service(duration=60)
    _book(customer, service, "09:00")
    second = _book(customer, service, "10:00")
    assert second.start_time == "10:00"
    assert second.end_time == "11:00"


def test_overlap_rejected_with_conflicting_ids(make_service, customer):
    service = make_service(duration=60)
    first = _book(customer, service, "09:00")

    with pytest.raises(SlotConflict) as info:
        create_booking(customer, [{"service": service.id, "quantity": 1}], MONDAY.isoformat(), "09:30")

    assert info.value.details["conflictingBookingIds"] == [first.id]
    assert info.value.details["conflictingBookings"][0]["time"] == "09:00-10:00"
    assert Booking.query.count() == 1


def test_conflicts_span_services(make_service, customer):
    # the ledger is per date, not per service
    cut = make_service(name="Cut", duration=60)
    nails = make_service(name="Nails", duration=30)
    _book(customer, cut, "09:00")

    with pytest.raises(SlotConflict):
        _book(customer, nails, "09:30")


def test_same_time_on_another_date_is_free(make_service, customer):
    service = make_service(duration=60)
    _book(customer, service, "09:00", on_date=MONDAY)
    assert _book(customer, service, "09:00", on_date=TUESDAY).date == TUESDAY


def test_cancelled_and_completed_do_not_block(make_service, customer):
    service = make_service(duration=60)
    cancelled = _book(customer, service, "09:00")
    update_status(cancelled.id, "cancelled")

    done = _book(customer, service, "11:00")
    update_status(done.id, "confirmed")
    update_status(done.id, "completed")

    assert _book(customer, service, "09:00").status == "pending"
    assert _book(customer, service, "11:00").status == "pending"


def test_cancelled_slot_hold(app, make_service, customer):
    app.config["CANCELLED_SLOT_HOLD_MINUTES"] = 30
    service = make_service(duration=60)
    booking = _book(customer, service, "09:00")
    update_status(booking.id, "cancelled")

    with pytest.raises(SlotConflict):
        _book(customer, service, "09:00")

    booking.cancelled_at = datetime.utcnow() - timedelta(minutes=31)
    db.session.commit()
    assert _book(customer, service, "09:00").status == "pending"


def test_whole_span_checked_against_every_service(make_service, customer):
    long_hours = make_service(name="Massage", duration=60)
    short_hours = make_service(name="Sauna", duration=30, working_hours=[
        {"day": "monday", "isAvailable": True, "slots": [{"start": "09:00", "end": "10:00"}]},
    ])

    # 09:00-10:30 fits Massage but not Sauna's 09:00-10:00 window
    with pytest.raises(ServiceUnavailable) as info:
        create_booking(
            customer,
            [{"service": long_hours.id, "quantity": 1}, {"service": short_hours.id, "quantity": 1}],
            MONDAY.isoformat(),
            "09:00",
        )
    assert info.value.details["serviceId"] == short_hours.id
    assert info.value.details["day"] == "monday"
    assert info.value.details["requestedTime"] == "09:00-10:30"
    assert Booking.query.count() == 0


def test_closed_day_rejected(make_service, customer):
    service = make_service()
    with pytest.raises(ServiceUnavailable) as info:
        _book(customer, service, "10:00", on_date=SUNDAY)
    assert info.value.details["day"] == "sunday"


def test_span_running_past_slot_end_rejected(make_service, customer):
    service = make_service(duration=90)
    with pytest.raises(ServiceUnavailable):
        _book(customer, service, "16:00")


def test_service_without_calendar_rejected(make_service, customer):
    service = make_service(working_hours=None)
    with pytest.raises(CalendarNotConfigured):
        _book(customer, service, "10:00")


def test_unknown_or_inactive_service_rejected(make_service, customer):
    service = make_service()
    service.is_active = False
    db.session.commit()

    with pytest.raises(ServiceNotFound):
        _book(customer, service, "10:00")
    with pytest.raises(ServiceNotFound):
        create_booking(customer, [{"service": 999, "quantity": 1}], MONDAY.isoformat(), "10:00")


@pytest.mark.parametrize("bad_customer", [
    None,
    {},
    {"name": "Ada"},
    {"name": "", "email": "ada@example.com"},
    {"name": "Ada", "email": "not-an-email"},
])
def test_customer_validated(make_service, bad_customer):
    service = make_service()
    with pytest.raises(InvalidRequest):
        create_booking(bad_customer, [{"service": service.id, "quantity": 1}], MONDAY.isoformat(), "10:00")


def test_bad_date_rejected(make_service, customer):
    service = make_service()
    with pytest.raises(InvalidRequest):
        create_booking(customer, [{"service": service.id, "quantity": 1}], "19/10/2026", "10:00")


def test_status_update_is_idempotent(make_service, customer):
    service = make_service()
    booking = _book(customer, service, "10:00")

    first, changed = update_status(booking.id, "confirmed")
    second, changed_again = update_status(booking.id, "confirmed")

    assert changed is True
    assert changed_again is False
    assert second.status == "confirmed"
    assert (second.date, second.start_time, second.end_time, second.total_price) == (
        MONDAY, "10:00", "10:30", Decimal("20.00"),
    )


def test_status_update_errors(make_service, customer):
    service = make_service()
    booking = _book(customer, service, "10:00")

    with pytest.raises(InvalidStatus):
        update_status(booking.id, "archived")
    with pytest.raises(NotFound):
        update_status(4242, "confirmed")

    update_status(booking.id, "cancelled")
    with pytest.raises(InvalidStatusTransition):
        update_status(booking.id, "confirmed")
    assert get_booking(booking.id).status == "cancelled"


def test_get_booking_not_found(app):
    with pytest.raises(NotFound):
        get_booking(1)
    with pytest.raises(NotFound):
        get_booking("abc")


def test_list_bookings_filters_and_order(make_service, customer):
    cut = make_service(name="Cut", duration=30)
    wash = make_service(name="Wash", duration=30)
    other = {"name": "Grace Hopper", "email": "grace@navy.mil"}

    late_monday = _book(customer, cut, "15:00")
    tuesday = _book(other, wash, "09:00", on_date=TUESDAY)
    early_monday = _book(other, cut, "09:00")
    update_status(early_monday.id, "confirmed")

    assert [b.id for b in list_bookings()] == [early_monday.id, late_monday.id, tuesday.id]
    assert [b.id for b in list_bookings(on_date=MONDAY.isoformat())] == [early_monday.id, late_monday.id]
    assert [b.id for b in list_bookings(customer="GRACE")] == [early_monday.id, tuesday.id]
    assert [b.id for b in list_bookings(customer="lovelace")] == [late_monday.id]
    assert [b.id for b in list_bookings(service_id=str(wash.id))] == [tuesday.id]
    assert [b.id for b in list_bookings(status="confirmed")] == [early_monday.id]
    assert list_bookings(service_id="nope") == []
    with pytest.raises(InvalidStatus):
        list_bookings(status="gone")


def test_find_conflicts_half_open(make_service, customer):
    service = make_service(duration=60)
    booking = _book(customer, service, "09:00")

    assert find_conflicts(MONDAY, 600, 630) == []
    assert [c["id"] for c in find_conflicts(MONDAY, 570, 630)] == [booking.id]


def test_lock_timeout_reports_unavailable(app, make_service, customer):
    service = make_service()
    app.config["BOOKING_LOCK_TIMEOUT_SECONDS"] = 0.05

    lock = _lock_for(MONDAY)
    lock.acquire()
    try:
        with pytest.raises(Unavailable):
            _book(customer, service, "10:00")
    finally:
        lock.release()

    assert Booking.query.count() == 0
    assert _book(customer, service, "10:00").id is not None


def test_transient_failure_is_retried(app, make_service, customer, monkeypatch):
    service = make_service()
    real_commit = ledger._commit_once
    calls = []

    def flaky(cust, req):
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("INSERT INTO bookings", {}, Exception("database is locked"))
        return real_commit(cust, req)

    monkeypatch.setattr(ledger, "_commit_once", flaky)
    booking = _book(customer, service, "10:00")

    assert len(calls) == 2
    assert booking.id is not None


def test_retries_exhausted_reports_unavailable(app, make_service, customer, monkeypatch):
    service = make_service()
    app.config["BOOKING_COMMIT_RETRIES"] = 2

    def always_locked(cust, req):
        raise OperationalError("INSERT INTO bookings", {}, Exception("database is locked"))

    monkeypatch.setattr(ledger, "_commit_once", always_locked)
    with pytest.raises(Unavailable):
        _book(customer, service, "10:00")


def test_stale_day_version_is_retried(app, make_service, customer, monkeypatch):
    service = make_service()
    real_commit = ledger._commit_once
    calls = []

    def stale_once(cust, req):
        calls.append(1)
        if len(calls) == 1:
            raise StaleDataError("UPDATE statement on table 'booking_days' expected to update 1 row(s); 0 were matched.")
        return real_commit(cust, req)

    monkeypatch.setattr(ledger, "_commit_once", stale_once)
    booking = _book(customer, service, "10:00")

    assert len(calls) == 2
    assert booking.id is not None


def test_each_commit_bumps_day_version(make_service, customer):
    service = make_service(duration=60)
    _book(customer, service, "09:00")
    _book(customer, service, "10:00")
    _book(customer, service, "09:00", on_date=TUESDAY)

    assert db.session.get(BookingDay, MONDAY).version == 2
    assert db.session.get(BookingDay, TUESDAY).version == 1


def test_idle_date_locks_are_released():
    on_date = date(2027, 1, 4)
    with date_lock(on_date, 1):
        assert on_date in _DATE_LOCKS
    gc.collect()
    assert on_date not in _DATE_LOCKS

    held = _lock_for(on_date)
    gc.collect()
    assert _lock_for(on_date) is held


def test_check_availability_reports_each_service(make_service, customer):
    cut = make_service(name="Cut", duration=30)
    sauna = make_service(name="Sauna", duration=30, working_hours=[
        {"day": "monday", "isAvailable": True, "slots": [{"start": "09:00", "end": "09:30"}]},
    ])
    bare = make_service(name="Bare", working_hours=None)

    results = check_availability([cut.id, {"service": sauna.id, "quantity": 1}, bare.id, 999], MONDAY.isoformat(), "09:00")

    assert [r["service"] for r in results] == [cut.id, sauna.id, bare.id, 999]
    assert [r["available"] for r in results] == [True, False, False, False]
    assert results[1]["reason"] == "TimeNotAvailable"
    assert results[2]["reason"] == "CalendarNotConfigured"
    assert results[3]["reason"] == "ServiceNotFound"
    assert results[3]["day"] == "monday"
    assert all(set(r) == set(results[0]) for r in results)
    # span = cut + sauna + bare, 30 + 30 + 30
    assert results[0]["requestedTime"] == "09:00-10:30"


def test_check_availability_ignores_ledger(make_service, customer):
    service = make_service(duration=60)
    _book(customer, service, "09:00")

    results = check_availability([service.id], MONDAY.isoformat(), "09:00")
    assert results[0]["available"] is True
