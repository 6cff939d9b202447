# src/tasknote/core/clock.py

from __future__ import annotations

import logging
import os
from datetime import datetime, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

_LOCALTIME_FILE = "/etc/localtime"


@lru_cache(maxsize=1)
def local_zone() -> tzinfo:
    """
    The host's IANA zone, so wall-clock arithmetic follows DST rules.

    Resolution order: $TZ, /etc/localtime, then the current fixed UTC offset.
    """
    name = os.environ.get("TZ", "").lstrip(":").strip()
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("TZ=%r is not an IANA zone name; ignoring", name)

    try:
        with open(_LOCALTIME_FILE, "rb") as f:
            return ZoneInfo.from_file(f, key="localtime")
    except (OSError, ValueError) as e:
        logger.debug("Cannot load %s: %s", _LOCALTIME_FILE, e)

    fallback = datetime.now().astimezone().tzinfo
    assert fallback is not None
    logger.warning("No IANA zone found; using fixed offset %s (no DST)", fallback)
    return fallback


class SystemClock:
    """Wall clock in the local zone (aware datetimes)."""

    def now(self) -> datetime:
        return datetime.now(local_zone())
