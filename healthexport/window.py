"""
Export time window resolution.

The export always covers the previous local calendar week: Monday 00:00
through the following Monday 00:00, exclusive. Instants are kept as aware
UTC datetimes; the local timezone only decides where the week boundaries
fall.
"""
import logging
import os
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from pathlib import Path
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

LOCALTIME = Path("/etc/localtime")
TIMEZONE_FILE = Path("/etc/timezone")


@dataclass(frozen=True)
class TimeWindow:
    """Half-open instant interval [start, end)"""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= as_utc(instant) < self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def to_dict(self) -> dict:
        return {"start": format_instant(self.start), "end": format_instant(self.end)}


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(raw: Any) -> datetime:
    """Parse an ISO-8601 instant (``Z`` suffix allowed) into aware UTC."""
    if isinstance(raw, datetime):
        return as_utc(raw)
    if isinstance(raw, str):
        return as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    raise ValueError(f"Cannot parse instant from {raw!r}")


def format_instant(value: datetime) -> str:
    """Render an instant as ISO-8601 UTC with a ``Z`` suffix."""
    return as_utc(value).isoformat().replace("+00:00", "Z")


def local_midnight(day: date, tz: tzinfo) -> datetime:
    """
    First instant of ``day`` in ``tz``, as UTC.

    When midnight falls inside a DST gap the wall time does not exist; the
    UTC round trip lands on the first valid instant after the gap.
    """
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def resolve_window(now: datetime, tz: tzinfo) -> TimeWindow:
    """
    Resolve the previous calendar week relative to ``now`` in ``tz``.

    Args:
        now: Reference instant (naive values are treated as UTC)
        tz: Timezone whose calendar defines the week

    Returns:
        TimeWindow spanning last week's Monday 00:00 to this week's Monday 00:00
    """
    today = as_utc(now).astimezone(tz).date()
    this_monday = today - timedelta(days=today.weekday())
    start_day = this_monday - timedelta(weeks=1)
    return TimeWindow(
        start=local_midnight(start_day, tz),
        end=local_midnight(start_day + timedelta(days=7), tz),
    )


def _zone_from_file(path: Path, key: str) -> Optional[tzinfo]:
    if not path.is_file():
        return None
    try:
        with path.open("rb") as f:
            return ZoneInfo.from_file(f, key=key)
    except ValueError:
        return None


def _zone_from_name(name: str) -> Optional[tzinfo]:
    if name.startswith("/"):
        return _zone_from_file(Path(name), key=name)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def host_timezone() -> tzinfo:
    """
    The host's IANA timezone, DST rules included.

    Checked in order: ``TZ``, the zone named by the ``/etc/localtime`` link,
    ``/etc/timezone``, then the ``/etc/localtime`` file itself. Only when none
    of these resolves does it fall back to the current fixed UTC offset.
    """
    tz_env = os.environ.get("TZ", "").lstrip(":")
    if tz_env:
        zone = _zone_from_name(tz_env)
        if zone is not None:
            return zone
        logger.warning(f"⚠️ TZ={tz_env} is not a known zone, checking {LOCALTIME}")

    if LOCALTIME.is_symlink():
        target = str(LOCALTIME.resolve())
        if "zoneinfo/" in target:
            zone = _zone_from_name(target.split("zoneinfo/", 1)[1])
            if zone is not None:
                return zone

    if TIMEZONE_FILE.is_file():
        zone = _zone_from_name(TIMEZONE_FILE.read_text().strip())
        if zone is not None:
            return zone

    zone = _zone_from_file(LOCALTIME, key="localtime")
    if zone is not None:
        return zone

    logger.warning("⚠️ Host timezone unknown, using the current UTC offset without DST rules")
    return datetime.now().astimezone().tzinfo
