"""
Date helpers for the serialized project tree.

Dates are written as ISO-8601 strings and rebuilt into timezone-aware
datetimes on read. Missing or unparsable values fall back to "now" (or to
None for optional dates) instead of aborting the whole load.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def parse_datetime(value: Any, default_now: bool = True) -> Optional[datetime]:
    """
    Rebuild a datetime from its serialized form.

    Args:
        value: ISO-8601 string (a trailing "Z" is accepted), a datetime, or None
        default_now: Return the current time when the value is missing or bad.
                     When False, return None instead.

    Returns:
        A timezone-aware datetime, or None for a missing optional date
    """
    fallback = utc_now() if default_now else None

    if value is None or value == "":
        return fallback
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.warning(f"Unparsable date {value!r}, using fallback")
            return fallback
    else:
        logger.warning(f"Unexpected date value {value!r}, using fallback")
        return fallback

    # Naive timestamps are treated as UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
