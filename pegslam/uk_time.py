"""Competition status resolution in UK civil time."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

UK_TIMEZONE = "Europe/London"

DEFAULT_START_TIME = "00:00"
END_OF_DAY = "23:59"

STATUS_UPCOMING = "upcoming"
STATUS_LIVE = "live"
STATUS_COMPLETED = "completed"

_DATE_RE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")
_TIME_RE = re.compile(r"([0-9]{2}):([0-9]{2})")


class ValidationError(ValueError):
    """Raised when stored schedule fields cannot be resolved to an instant."""


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class CompetitionSchedule:
    """Civil date/time fields of a competition, all in UK local time.

    ``time`` falls back to midnight when a record has none; empty end fields
    are treated as absent.
    """

    date: str
    time: str = DEFAULT_START_TIME
    end_date: Optional[str] = None
    end_time: Optional[str] = None

    def __post_init__(self) -> None:
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "time", _blank_to_none(self.time) or DEFAULT_START_TIME)
        object.__setattr__(self, "end_date", _blank_to_none(self.end_date))
        object.__setattr__(self, "end_time", _blank_to_none(self.end_time))

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CompetitionSchedule":
        """Build a schedule from a competition record.

        Accepts the JSON spelling (``endDate``/``endTime``) as served by the
        API as well as the column spelling (``end_date``/``end_time``).
        """
        date = _blank_to_none(record.get("date"))
        if date is None:
            raise ValidationError("competition has no date")
        end_date = record.get("endDate", record.get("end_date"))
        end_time = record.get("endTime", record.get("end_time"))
        return cls(date=date, time=record.get("time"), end_date=end_date, end_time=end_time)


def _parse_date(value: str) -> tuple[int, int, int]:
    match = _DATE_RE.fullmatch(value or "")
    if not match:
        raise ValidationError(f"invalid date {value!r}: expected YYYY-MM-DD")
    year, month, day = (int(part) for part in match.groups())
    try:
        datetime(year, month, day)
    except ValueError as exc:
        raise ValidationError(f"invalid date {value!r}: {exc}") from exc
    return year, month, day


def _parse_time(value: str) -> tuple[int, int]:
    match = _TIME_RE.fullmatch(value or "")
    if not match:
        raise ValidationError(f"invalid time {value!r}: expected HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(f"invalid time {value!r}: out of range")
    return hour, minute


def resolve_civil_datetime(date: str, time: str, tz: str = UK_TIMEZONE) -> datetime:
    """Resolve a wall-clock date and time in ``tz`` to a UTC instant.

    Args:
        date: Civil date in ``YYYY-MM-DD`` form.
        time: Civil time in ``HH:MM`` (24 hour) form.
        tz: IANA timezone name the fields are expressed in.

    Returns:
        Timezone-aware ``datetime`` in UTC.

    Raises:
        ValidationError: If either component is malformed.

    Wall times skipped by a spring-forward transition are read with the
    offset in force before the change; repeated fall-back times resolve to
    their first occurrence.
    """
    year, month, day = _parse_date(date)
    hour, minute = _parse_time(time)
    local = datetime(year, month, day, hour, minute, tzinfo=ZoneInfo(tz))
    return local.astimezone(timezone.utc)


def resolve_competition_start(schedule: CompetitionSchedule) -> datetime:
    return resolve_civil_datetime(schedule.date, schedule.time)


def resolve_competition_end(schedule: CompetitionSchedule) -> datetime:
    """Return the instant a competition finishes.

    An explicit end date without an end time runs to the end of that day;
    an end time without an end date ends on the start day. With neither the
    competition closes at the end of its start day.
    """
    if schedule.end_date and schedule.end_time:
        return resolve_civil_datetime(schedule.end_date, schedule.end_time)
    if schedule.end_date:
        return resolve_civil_datetime(schedule.end_date, END_OF_DAY)
    if schedule.end_time:
        return resolve_civil_datetime(schedule.date, schedule.end_time)
    return resolve_civil_datetime(schedule.date, END_OF_DAY)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def uk_now() -> datetime:
    return utc_now().astimezone(ZoneInfo(UK_TIMEZONE))


def get_status(schedule: CompetitionSchedule, now: Optional[datetime] = None) -> str:
    """Classify a competition relative to ``now``.

    Both ends of the window are inclusive: a competition is live at exactly
    its start and at exactly its end. A naive ``now`` is taken as UTC.
    """
    if now is None:
        now = utc_now()
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    start = resolve_competition_start(schedule)
    end = resolve_competition_end(schedule)
    if now < start:
        return STATUS_UPCOMING
    if now <= end:
        return STATUS_LIVE
    return STATUS_COMPLETED


__all__ = [
    "CompetitionSchedule",
    "ValidationError",
    "get_status",
    "resolve_civil_datetime",
    "resolve_competition_end",
    "resolve_competition_start",
    "uk_now",
    "utc_now",
]
