from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def get_utc_now() -> datetime:
    """
    Get the current date and time in UTC.

    Returns:
        datetime: The current date and time with tzinfo set to ZoneInfo("UTC").
    """
    return datetime.now(ZoneInfo("UTC"))


def to_timestamp(moment: datetime) -> int:
    """
    Convert a datetime to whole UNIX seconds, as stored in JWT time claims.

    Naive datetimes are treated as UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def from_timestamp(value: int | float) -> datetime:
    return datetime.fromtimestamp(value, tz=ZoneInfo("UTC"))
