"""Leaderboard aggregation and angler statistics."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from .weights import format_weight, parse_weight, sum_weights

# Fields copied from an angler's most recent weigh-in onto the leaderboard row
_IDENTITY_FIELDS = (
    "competitionId",
    "userId",
    "teamId",
    "anglerName",
    "username",
    "club",
    "teamName",
)


def _participant_key(entry: Dict[str, Any]) -> Optional[str]:
    if entry.get("teamId"):
        return f"team:{entry['teamId']}"
    if entry.get("userId"):
        return f"user:{entry['userId']}"
    if entry.get("id"):
        return f"entry:{entry['id']}"
    return None


def _peg_sort_value(peg: Any) -> int:
    try:
        return int(peg)
    except (TypeError, ValueError):
        return 10**9


def aggregate_leaderboard(entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Collapse weigh-ins into one ranked row per angler or team.

    Args:
        entries: Weigh-in records in the order they were recorded. Team
            competitions group on ``teamId``; individual ones on ``userId``.

    Returns:
        Rows sorted by total weight (heaviest first) with sequential
        ``position`` values. Each row carries the formatted ``weight``, the
        ``totalOunces`` it was ranked on and the number of ``weighIns``.
        Equal totals are ordered by peg number.
    """
    weights: Dict[str, List[Any]] = {}
    latest: Dict[str, Dict[str, Any]] = {}
    for entry in entries:
        key = _participant_key(entry)
        if key is None:
            continue
        weights.setdefault(key, []).append(entry.get("weight"))
        latest[key] = entry

    rows: List[Dict[str, Any]] = []
    for key, values in weights.items():
        last = latest[key]
        total = sum_weights(v for v in values if v is not None)
        row = {field: last.get(field) for field in _IDENTITY_FIELDS if field in last}
        row.update(
            {
                "key": key,
                "pegNumber": last.get("pegNumber"),
                "totalOunces": total,
                "weight": format_weight(total),
                "weighIns": len(values),
            }
        )
        rows.append(row)

    rows.sort(key=lambda r: (-r["totalOunces"], _peg_sort_value(r.get("pegNumber")), r["key"]))

    for position, row in enumerate(rows, start=1):
        row["position"] = position

    return rows


def _display(total_ounces: int) -> str:
    return format_weight(total_ounces) if total_ounces > 0 else "-"


def angler_stats(entries: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Summarise an angler's weigh-ins across all competitions.

    Positions are the ones recorded against each weigh-in. Weight fields
    are display strings, ``"-"`` when the angler has no weight recorded.
    """
    entries = list(entries)
    positions = [e.get("position") for e in entries if isinstance(e.get("position"), int)]
    ounces = [parse_weight(e.get("weight")) for e in entries]
    ounces = [oz for oz in ounces if oz > 0]

    total = sum(ounces)
    best = max(ounces) if ounces else 0
    average = int(total / len(ounces) + 0.5) if ounces else 0
    competitions = {e.get("competitionId") for e in entries if e.get("competitionId")}

    return {
        "wins": sum(1 for p in positions if p == 1),
        "podiumFinishes": sum(1 for p in positions if 1 <= p <= 3),
        "bestCatch": _display(best),
        "averageWeight": _display(average),
        "totalWeight": _display(total),
        "totalCompetitions": len(competitions),
    }


__all__ = ["aggregate_leaderboard", "angler_stats"]
