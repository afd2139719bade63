from .availability import replace_calendar as set_calendar
from .errors import BookingError
from .ledger import (
    check_availability,
    create_booking,
    get_booking,
    list_bookings,
    update_status,
)
