"""
Datetime helpers.

Task dates are stored as naive datetimes in the configured timezone
(TIMESTAMP WITHOUT TIME ZONE). Anything arriving with an offset is
converted here before it is compared or persisted.
"""

from datetime import datetime
from typing import Optional

import pytz

from config import settings


def get_local_tz() -> pytz.BaseTzInfo:
    """Get the configured local timezone."""
    return pytz.timezone(settings.timezone)


def get_local_now() -> datetime:
    """Current time in the configured timezone (naive)."""
    return datetime.now(get_local_tz()).replace(tzinfo=None)


def to_naive_local(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Convert any datetime to naive local time for storage.

    Aware values are shifted into the configured timezone and stripped;
    naive values are assumed to be local already.
    """
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(get_local_tz()).replace(tzinfo=None)
