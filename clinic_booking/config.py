import os
from decimal import Decimal

DATABASE_URL = os.getenv("CLINIC_DB")
DB_ECHO = (os.getenv("DB_ECHO") or "false").lower() == "true"

JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM") or "HS256"

if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET environment variable is not set")

RABBIT_URL = os.getenv("RABBIT_URL")  # optional, events disabled without it
REDIS_URL = os.getenv("REDIS_URL")  # optional, rate limiting disabled without it
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE") or "120")

PENDING_BOOKING_TTL_SECONDS = int(os.getenv("PENDING_BOOKING_TTL_SECONDS") or "120")
EXPIRY_SWEEP_INTERVAL_SECONDS = float(os.getenv("EXPIRY_SWEEP_INTERVAL_SECONDS") or "0")

BOOKING_TOKEN_AMOUNT = Decimal(os.getenv("BOOKING_TOKEN_AMOUNT") or "100.00")
AVG_CONSULTATION_MINUTES = int(os.getenv("AVG_CONSULTATION_MINUTES") or "10")

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()
