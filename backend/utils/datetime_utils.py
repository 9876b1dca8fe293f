"""
Datetime utility functions for epoch-millisecond audit timestamps
"""
from datetime import datetime, timezone
from typing import Optional
import logging
import time

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def epoch_ms_to_datetime(epoch_ms: int) -> datetime:
    """Epoch milliseconds -> timezone-aware UTC datetime."""
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)


def datetime_to_epoch_ms(dt: datetime) -> int:
    """Datetime -> epoch milliseconds. Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def parse_timestamp(value) -> Optional[int]:
    """
    Convert a stored timestamp to epoch milliseconds

    Handles multiple cases:
    - None -> None
    - int/float -> taken as epoch milliseconds
    - Python datetime -> converted
    - String ISO format (with trailing Z) -> parsed
    - Other -> None with warning

    Args:
        value: timestamp in any of the forms above

    Returns:
        Epoch milliseconds or None
    """
    if value is None:
        return None

    if isinstance(value, bool):
        logger.warning(f"Cannot convert bool to timestamp: {value}")
        return None

    if isinstance(value, (int, float)):
        return int(value)

    if isinstance(value, datetime):
        return datetime_to_epoch_ms(value)

    if isinstance(value, str):
        try:
            return datetime_to_epoch_ms(datetime.fromisoformat(value.replace('Z', '+00:00')))
        except ValueError as e:
            logger.warning(f"Failed to parse datetime string '{value}': {e}")
            return None

    logger.warning(f"Cannot convert {type(value)} to timestamp: {value}")
    return None


def gazette_date(dt: datetime) -> str:
    """Date stamp used by the gazette summary API (YYYYMMDD)."""
    return dt.strftime('%Y%m%d')
