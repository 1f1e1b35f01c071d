from datetime import datetime, timedelta
from zoneinfo import ZoneInfo


def get_utc_now() -> datetime:
    """
    Get the current date and time in UTC.

    Returns:
        datetime: The current date and time, offset-aware with tzinfo set to ZoneInfo("UTC").
    """
    return datetime.now(ZoneInfo("UTC"))


def seconds_until(moment: datetime) -> int:
    """Whole seconds left until `moment`, never negative."""
    return max(0, int((moment - get_utc_now()) / timedelta(seconds=1)))
