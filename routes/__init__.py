from .health import health_bp
from .services import services_bp
from .availability import availability_bp
from .booking import booking_bp
