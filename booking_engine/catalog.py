from decimal import Decimal, InvalidOperation

from booking_engine.errors import InvalidRequest, ServiceNotFound
from models import db
from models.service import Service


def coerce_id(value):
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def get_service(service_id) -> Service:
    """Active service by id, ``ServiceNotFound`` otherwise."""
    sid = coerce_id(service_id)
    service = db.session.get(Service, sid) if sid is not None else None
    if service is None or not service.is_active:
        raise ServiceNotFound(service_id)
    return service


def validate_service_fields(data: dict, partial: bool = False) -> dict:
    out = {}

    if "name" in data or not partial:
        name = (data.get("name") or "").strip() if isinstance(data.get("name"), str) else ""
        if not name:
            raise InvalidRequest("Service name required")
        out["name"] = name

    if "description" in data:
        desc = data.get("description")
        out["description"] = (desc.strip() or None) if isinstance(desc, str) else None

    if "price" in data or not partial:
        try:
            price = Decimal(str(data.get("price")))
        except (InvalidOperation, ValueError):
            raise InvalidRequest("price must be a number")
        if not price.is_finite() or price < 0:
            raise InvalidRequest("price must be a non-negative number")
        out["price"] = price.quantize(Decimal("0.01"))

    if "duration" in data or not partial:
        duration = data.get("duration")
        if isinstance(duration, str) and duration.strip().isdigit():
            duration = int(duration.strip())
        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            raise InvalidRequest("duration must be a positive whole number of minutes")
        out["duration"] = duration

    return out
