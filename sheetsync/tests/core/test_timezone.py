from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from sheetsync.core.errors import ConfigError
from sheetsync.core.timezone import get_timezone, to_zone, utc_now


def test_get_timezone_invalid_fails_loudly() -> None:
    with pytest.raises(ConfigError):
        get_timezone("Invalid/Timezone")


def test_get_timezone_valid() -> None:
    assert get_timezone("Asia/Kolkata") == ZoneInfo("Asia/Kolkata")


def test_utc_now_is_aware() -> None:
    now = utc_now()
    assert now.tzinfo is not None
    assert abs((now - datetime.now(timezone.utc)).total_seconds()) < 5


def test_to_zone() -> None:
    tz = ZoneInfo("Asia/Kolkata")
    assert to_zone(datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc), tz) == datetime(
        2024, 1, 1, 5, 30, tzinfo=tz
    )
    assert to_zone(datetime(2024, 1, 1, 8, 0), tz).hour == 8
    assert to_zone(date(2024, 1, 1), tz) == datetime(2024, 1, 1, tzinfo=tz)
