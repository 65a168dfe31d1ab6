from __future__ import annotations

from datetime import UTC, datetime

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Request-time format used by the OHLC endpoint, e.g. "Feb 03 2026 091500"
REQUEST_TIME_FORMAT = "%b %d %Y %H%M%S"


def epoch_to_datetime(seconds: int) -> datetime:
    """Convert seconds since 1970-01-01 UTC to a timezone-aware datetime (UTC)."""
    return datetime.fromtimestamp(seconds, tz=UTC)


def datetime_to_epoch(dt: datetime) -> int:
    """Convert a datetime to whole epoch seconds. Naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int((dt - _EPOCH).total_seconds())


def format_request_time(dt: datetime) -> str:
    return dt.strftime(REQUEST_TIME_FORMAT)


def parse_request_time(s: str) -> datetime:
    """Parse "Mon DD YYYY HHMMSS" into a naive datetime (exchange local time)."""
    return datetime.strptime(s.strip(), REQUEST_TIME_FORMAT)
