import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as bookings.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "bookings.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Per-date commit serialization
    BOOKING_LOCK_TIMEOUT_SECONDS = float(os.getenv("BOOKING_LOCK_TIMEOUT_SECONDS", "10"))

    # Transient persistence failures (lock timeouts, dropped connections)
    BOOKING_COMMIT_RETRIES = int(os.getenv("BOOKING_COMMIT_RETRIES", "3"))
    BOOKING_RETRY_BACKOFF_SECONDS = float(os.getenv("BOOKING_RETRY_BACKOFF_SECONDS", "0.05"))

    # Minutes a cancelled booking keeps blocking its span (0 = reusable at once)
    CANCELLED_SLOT_HOLD_MINUTES = int(os.getenv("CANCELLED_SLOT_HOLD_MINUTES", "0"))

    # Listing
    LIST_BOOKINGS_LIMIT = int(os.getenv("LIST_BOOKINGS_LIMIT", "500"))

    # Basic app settings
    DEBUG = False
