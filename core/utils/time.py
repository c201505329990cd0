"""
Time Utilities

Mt. Gox reports order and trade dates as seconds since the epoch. The
utilities in this module normalize those into timezone-aware UTC datetime
objects for use in our Pydantic schemas.
"""

from datetime import datetime, timezone
from typing import Union


def to_utc_datetime(timestamp: Union[int, float]) -> datetime:
    """
    Convert a Unix timestamp in seconds to a UTC datetime.

    Values are always read as seconds. A millisecond timestamp lands tens of
    thousands of years out and is rejected.

    Args:
        timestamp: Unix timestamp in seconds

    Returns:
        datetime: Timezone-aware datetime object in UTC

    Raises:
        ValueError: If timestamp is negative or invalid

    Examples:
        >>> to_utc_datetime(1704110400)
        datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
    """
    if timestamp < 0:
        raise ValueError(f"Timestamp cannot be negative: {timestamp}")

    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {timestamp}. Error: {e}")
