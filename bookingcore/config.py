import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./bookings.db")

# Connection pool (ignored for SQLite URLs)
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "30"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
DB_LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

# Create missing tables when the API starts
CREATE_TABLES_ON_STARTUP = os.getenv("CREATE_TABLES_ON_STARTUP", "true").lower() == "true"

# Payment bookkeeping - the gateway itself is external
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")
PAYMENT_PROVIDER = os.getenv("PAYMENT_PROVIDER", "STRIPE")

# Policy applied when an appointment type has no cancellation policy row
DEFAULT_CANCELLATION_DEADLINE_HOURS = int(os.getenv("DEFAULT_CANCELLATION_DEADLINE_HOURS", "24"))
DEFAULT_REFUND_PERCENTAGE = int(os.getenv("DEFAULT_REFUND_PERCENTAGE", "100"))

# Clamp refunds to zero when the cancellation fee exceeds the refundable portion
REFUND_FLOOR_AT_ZERO = os.getenv("REFUND_FLOOR_AT_ZERO", "true").lower() == "true"

# Booking events are POSTed here after commit; unset means log only
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL", "")
NOTIFICATION_WEBHOOK_TIMEOUT = float(os.getenv("NOTIFICATION_WEBHOOK_TIMEOUT", "10.0"))
