"""Rejection reasons raised by the booking engine.

Every failure carries a stable ``code``, the HTTP status the API answers with
and a ``details`` dict with enough structure (service id, day name,
conflicting booking ids) for a caller to render its own message.
"""


class BookingError(Exception):
    code = "BookingError"
    http_status = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, **self.details}


class InvalidRequest(BookingError):
    code = "InvalidRequest"


class MalformedTime(BookingError):
    code = "MalformedTime"

    def __init__(self, value):
        super().__init__(f"Invalid time {value!r}. Use HH:MM (24-hour)", value=value)


class InvalidCalendar(BookingError):
    code = "InvalidCalendar"


class NotFound(BookingError):
    code = "NotFound"
    http_status = 404


class ServiceNotFound(NotFound):
    code = "ServiceNotFound"

    def __init__(self, service_id):
        super().__init__(f"Service {service_id} not found", serviceId=service_id)


class CalendarNotConfigured(BookingError):
    code = "CalendarNotConfigured"

    def __init__(self, service_id):
        super().__init__(f"Availability not set for service {service_id}", serviceId=service_id)


class ServiceUnavailable(BookingError):
    code = "ServiceUnavailable"

    def __init__(self, service_id, day: str, reason: str, requested_time: str):
        super().__init__(
            f"Service {service_id} not available on {day} at {requested_time}",
            serviceId=service_id,
            day=day,
            reason=reason,
            requestedTime=requested_time,
        )


class SlotConflict(BookingError):
    code = "SlotConflict"
    http_status = 409

    def __init__(self, conflicts):
        super().__init__(
            "Time slot already booked",
            conflictingBookingIds=[c["id"] for c in conflicts],
            conflictingBookings=conflicts,
        )


class InvalidStatus(BookingError):
    code = "InvalidStatus"

    def __init__(self, status, message=None, **details):
        super().__init__(message or f"Invalid status value {status!r}", status=status, **details)


class InvalidStatusTransition(InvalidStatus):
    code = "InvalidStatusTransition"
    http_status = 409

    def __init__(self, current: str, requested: str):
        super().__init__(
            requested,
            message=f"Cannot move booking from {current} to {requested}",
            current=current,
        )


class Unavailable(BookingError):
    code = "Unavailable"
    http_status = 503

    def __init__(self, message="Booking ledger busy, try again"):
        super().__init__(message)
