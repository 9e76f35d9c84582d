from datetime import date, datetime, time, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sheetsync.core.errors import ConfigError


def get_timezone(tz_name: str) -> ZoneInfo:
    """Resolve an IANA zone name, failing loudly instead of falling back to UTC."""
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"Unknown timezone: {tz_name}")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_datetime(value: date) -> datetime:
    # Bare dates are midnight of that day
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def to_zone(value: date, tz: tzinfo) -> datetime:
    """Convert an instant into ``tz``; naive values are taken to be in ``tz`` already."""
    moment = as_datetime(value)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)
