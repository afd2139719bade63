from flask import Blueprint, request, jsonify, current_app

from booking_engine.errors import BookingError, InvalidRequest, Unavailable
from booking_engine.ledger import create_booking, get_booking, list_bookings, update_status
from utils.audit import log_event

booking_bp = Blueprint("booking", __name__, url_prefix="/api/bookings")


# ---------- CUSTOMERS: book one or more services (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("")
def create():
    data = request.get_json(silent=True) or {}
    customer = data.get("customer")
    services = data.get("services")
    date_str = data.get("date")
    start_time = data.get("startTime")

    if not customer or not services or not date_str or not start_time:
        raise InvalidRequest("Missing required fields")

    try:
        booking = create_booking(customer, services, date_str, start_time)
    except Unavailable:
        # the audit row would go to the same busy database
        raise
    except BookingError as exc:
        log_event(
            "BOOKING_REJECT",
            entity="booking",
            metadata={"code": exc.code, "date": date_str, "startTime": start_time, **exc.details},
        )
        raise

    log_event(
        "BOOKING_CREATE",
        entity="booking",
        entity_id=booking.id,
        metadata={"date": booking.date.isoformat(), "time": f"{booking.start_time}-{booking.end_time}"},
    )
    return jsonify(booking.to_dict()), 201


# ---------- OPERATOR: list bookings ----------
@booking_bp.get("")
def list_all():
    rows = list_bookings(
        on_date=request.args.get("date"),
        customer=request.args.get("customer"),
        service_id=request.args.get("service"),
        status=request.args.get("status"),
        limit=current_app.config.get("LIST_BOOKINGS_LIMIT", 500),
    )
    return jsonify([b.to_dict() for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
def get_single(booking_id: int):
    return jsonify(get_booking(booking_id).to_dict()), 200


# ---------- OPERATOR: confirm / cancel / complete ----------
@booking_bp.patch("/<int:booking_id>/status")
def change_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking, changed = update_status(booking_id, data.get("status"))

    if changed:
        log_event("BOOKING_STATUS", entity="booking", entity_id=booking.id, metadata={"status": booking.status})
    return jsonify(booking.to_dict()), 200
