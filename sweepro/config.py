import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./sweepro.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))  # 7 days

# Frontend origins allowed by CORS
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")

# Scheduled producers run inside the API process through an arq worker.
# Set NOTIFICATION_SCHEDULER_ENABLED=false when Redis is not available.
NOTIFICATION_SCHEDULER_ENABLED = (
    os.getenv("NOTIFICATION_SCHEDULER_ENABLED", "true").lower() == "true"
)

# Connection health monitor
HEALTH_SWEEP_INTERVAL_SECONDS = int(os.getenv("HEALTH_SWEEP_INTERVAL_SECONDS", "3600"))
CONNECTION_INACTIVITY_THRESHOLD_SECONDS = int(
    os.getenv("CONNECTION_INACTIVITY_THRESHOLD_SECONDS", "1800")
)  # 30 minutes

# Producer thresholds
SUBSCRIPTION_EXPIRY_LOOKAHEAD_DAYS = int(os.getenv("SUBSCRIPTION_EXPIRY_LOOKAHEAD_DAYS", "7"))
PAYMENT_REMINDER_AGE_HOURS = int(os.getenv("PAYMENT_REMINDER_AGE_HOURS", "24"))
PERFORMANCE_SCORE_FLOOR = float(os.getenv("PERFORMANCE_SCORE_FLOOR", "3.0"))
CANCELLATION_RATE_CEILING = float(os.getenv("CANCELLATION_RATE_CEILING", "0.2"))
