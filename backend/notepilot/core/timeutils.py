"""
Timezone helpers shared by the prompt, the tools and the scheduler.
"""

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from notepilot.config import get_settings

logger = logging.getLogger(__name__)


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Resolve an IANA timezone name, falling back to DEFAULT_TIMEZONE."""
    default = get_settings().DEFAULT_TIMEZONE
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone '{name}', falling back to {default}")
    return ZoneInfo(default)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def parse_instant(value: str | datetime | None, tz: ZoneInfo | None = None) -> datetime | None:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Naive values are interpreted in `tz` (UTC when not given).

    Raises:
        ValueError: If the string is not ISO-8601.
    """
    if value is None or value == "":
        return None
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz or timezone.utc)
    return dt.astimezone(timezone.utc)


def to_utc_iso(value: str | datetime | None, tz: ZoneInfo | None = None) -> str | None:
    dt = parse_instant(value, tz)
    return dt.isoformat() if dt else None
