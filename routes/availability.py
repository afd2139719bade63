from flask import Blueprint, request, jsonify

from booking_engine.availability import (
    day_name,
    effective_slots,
    find_calendar,
    parse_date,
    replace_calendar,
)
from booking_engine.catalog import get_service
from booking_engine.errors import InvalidRequest, NotFound
from booking_engine.ledger import check_availability
from utils.audit import log_event

availability_bp = Blueprint("availability", __name__, url_prefix="/api/availability")


@availability_bp.get("/service/<int:service_id>")
def get_calendar(service_id: int):
    service = get_service(service_id)
    availability = find_calendar(service.id)
    if availability is None:
        raise NotFound("Availability not found", serviceId=service.id)
    return jsonify(availability.to_dict()), 200


@availability_bp.post("/service/<int:service_id>")
def set_calendar(service_id: int):
    data = request.get_json(silent=True) or {}
    availability = replace_calendar(service_id, data.get("workingHours"), data.get("exceptions"))

    log_event(
        "CALENDAR_SET",
        entity="service",
        entity_id=service_id,
        metadata={
            "days": len(availability.working_hours),
            "exceptions": len(availability.exceptions),
        },
    )
    return jsonify(availability.to_dict()), 200


@availability_bp.get("/service/<int:service_id>/day")
def get_day(service_id: int):
    service = get_service(service_id)
    date_str = request.args.get("date")
    try:
        on_date = parse_date(date_str)
    except ValueError:
        raise InvalidRequest("Invalid date. Use YYYY-MM-DD", date=date_str)

    availability = find_calendar(service.id)
    return jsonify(
        service=service.id,
        date=on_date.isoformat(),
        day=day_name(on_date),
        configured=availability is not None,
        slots=[s.to_dict() for s in effective_slots(availability, on_date)],
    ), 200


@availability_bp.post("/check-availability")
def check():
    data = request.get_json(silent=True) or {}
    if not data.get("services") or not data.get("date") or not data.get("startTime"):
        raise InvalidRequest("services, date and startTime are required")

    results = check_availability(data["services"], data["date"], data["startTime"])
    return jsonify(results), 200
