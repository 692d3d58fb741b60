"""Competition listings with derived status.

Everything here works on plain competition records (dicts as served by the
API) and never raises for bad schedule data: a record whose date or time
cannot be resolved is reported as ``unknown`` and logged, so one bad row
cannot break a listing.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from . import uk_time
from .uk_time import CompetitionSchedule, ValidationError

logger = logging.getLogger(__name__)

STATUS_UNKNOWN = "unknown"
ACTIVE_STATUSES = frozenset({uk_time.STATUS_UPCOMING, uk_time.STATUS_LIVE})


def competition_status(record: Dict[str, Any], now: Optional[datetime] = None) -> str:
    try:
        return uk_time.get_status(CompetitionSchedule.from_record(record), now)
    except ValidationError as exc:
        logger.warning("competition %s has an unresolvable schedule: %s", record.get("id"), exc)
        return STATUS_UNKNOWN


def schedule_issues(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Return ``{id, name, error}`` for every record needing correction."""
    issues: List[Dict[str, Any]] = []
    for record in records:
        try:
            schedule = CompetitionSchedule.from_record(record)
            uk_time.resolve_competition_start(schedule)
            uk_time.resolve_competition_end(schedule)
        except ValidationError as exc:
            issues.append({"id": record.get("id"), "name": record.get("name"), "error": str(exc)})
    return issues


def annotate_competitions(records: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Return copies of ``records`` with ``status`` derived at one instant."""
    if now is None:
        now = uk_time.utc_now()
    return [{**record, "status": competition_status(record, now)} for record in records]


def filter_competitions(records: Iterable[Dict[str, Any]], status: Optional[str]) -> List[Dict[str, Any]]:
    if not status or status == "all":
        return list(records)
    return [r for r in records if r.get("status") == status]


def _start_or_none(record: Dict[str, Any]) -> Optional[datetime]:
    try:
        return uk_time.resolve_competition_start(CompetitionSchedule.from_record(record))
    except ValidationError:
        return None


def sort_competitions(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Order by start instant; records without a usable start go last."""
    keyed = [(_start_or_none(r), r) for r in records]
    resolved = sorted((item for item in keyed if item[0] is not None), key=lambda item: item[0])
    unresolved = sorted(
        (item for item in keyed if item[0] is None),
        key=lambda item: str(item[1].get("name") or ""),
    )
    return [record for _start, record in resolved + unresolved]


def status_counts(records: Iterable[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, int]:
    """Count competitions per status at one instant.

    ``active`` is the number that are live or still to come.
    """
    if now is None:
        now = uk_time.utc_now()
    counts = {
        uk_time.STATUS_UPCOMING: 0,
        uk_time.STATUS_LIVE: 0,
        uk_time.STATUS_COMPLETED: 0,
        STATUS_UNKNOWN: 0,
    }
    for record in records:
        counts[competition_status(record, now)] += 1
    counts["active"] = sum(counts[s] for s in ACTIVE_STATUSES)
    return counts


__all__ = [
    "STATUS_UNKNOWN",
    "annotate_competitions",
    "competition_status",
    "status_counts",
    "filter_competitions",
    "schedule_issues",
    "sort_competitions",
]
