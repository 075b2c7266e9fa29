from __future__ import annotations

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loanops.core.settings import settings

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes from clients as UTC so they sort against ours."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _display_zone():
    try:
        return ZoneInfo(settings.display_timezone)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown display timezone %s; using UTC", settings.display_timezone)
        return timezone.utc


def format_display(value: datetime) -> str:
    """Render a timestamp the way narrations show it, e.g. ``October 19, 2026, 03:05 PM``."""
    return as_utc(value).astimezone(_display_zone()).strftime("%B %d, %Y, %I:%M %p")
