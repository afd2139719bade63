from .db import db
from .audit_log import AuditLog
from .service import Service
from .availability import Availability, WorkingHour, AvailabilityException
from .booking import Booking, BookingLine
from .booking_day import BookingDay
