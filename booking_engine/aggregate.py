"""Turn a multi-service request into one contiguous, priced time block.

Services of one booking run back to back, so the booking occupies
``[start, start + sum(duration * quantity))``. Availability and conflicts are
checked against that whole block for every service in it.
"""
from datetime import date
from decimal import Decimal
from typing import NamedTuple

from booking_engine.catalog import coerce_id, get_service
from booking_engine.errors import InvalidRequest
from booking_engine.timespan import from_minutes, to_minutes


class RequestedLine(NamedTuple):
    service_id: int
    quantity: int


class AggregatedLine(NamedTuple):
    service: object  # anything with id, price and duration
    quantity: int


class AggregatedRequest:
    def __init__(self, on_date: date, start: int, lines):
        self.date = on_date
        self.start = start
        self.lines = lines
        self.total_duration = sum(l.service.duration * l.quantity for l in lines)
        self.total_price = sum((Decimal(l.service.price) * l.quantity for l in lines), Decimal("0"))
        self.end = start + self.total_duration

    @property
    def start_time(self) -> str:
        return from_minutes(self.start)

    @property
    def end_time(self) -> str:
        return from_minutes(self.end)

    @property
    def service_ids(self):
        return [l.service.id for l in self.lines]


def parse_lines(raw):
    """Validate ``[{service, quantity}, ...]`` into ``RequestedLine`` tuples.

    A bare id counts as quantity 1.
    """
    if not isinstance(raw, list) or not raw:
        raise InvalidRequest("Services must be a non-empty array")

    lines = []
    for item in raw:
        if isinstance(item, dict):
            service_id = item.get("service", item.get("serviceId"))
            quantity = item.get("quantity")
        else:
            service_id, quantity = item, 1
        if service_id is None or quantity is None:
            raise InvalidRequest("Each service must have service ID and quantity")
        if not isinstance(service_id, (int, str)) or isinstance(service_id, bool):
            raise InvalidRequest("service ID must be a number or string")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidRequest("quantity must be a positive whole number", service=service_id)
        lines.append(RequestedLine(service_id, quantity))
    return lines


def merge_lines(lines):
    """Sum quantities of lines for the same service, keeping first-seen order."""
    merged = {}
    for line in lines:
        key = coerce_id(line.service_id)
        key = line.service_id if key is None else key
        if key in merged:
            merged[key] = RequestedLine(merged[key].service_id, merged[key].quantity + line.quantity)
        else:
            merged[key] = RequestedLine(line.service_id, line.quantity)
    return list(merged.values())


def aggregate(lines, on_date: date, start_time: str, lookup=get_service) -> AggregatedRequest:
    start = to_minutes(start_time)
    resolved = [AggregatedLine(lookup(l.service_id), l.quantity) for l in merge_lines(lines)]
    return AggregatedRequest(on_date, start, resolved)
