"""Shared time helpers"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns used across the models"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat_utc(value: datetime | None = None) -> str:
    """ISO-8601 string with a trailing Z for push frames and API payloads"""
    value = value or utcnow()
    return value.isoformat(timespec="milliseconds") + "Z"
