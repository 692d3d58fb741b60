import logging
import os
import sys
from datetime import datetime, timezone

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pegslam.competitions import (
    annotate_competitions,
    competition_status,
    filter_competitions,
    schedule_issues,
    sort_competitions,
    status_counts,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)  # 13:00 in the UK

RECORDS = [
    {"id": "c-late", "name": "Autumn Open", "date": "2024-09-14", "time": "08:00"},
    {"id": "c-live", "name": "Summer Slam", "date": "2024-06-01", "time": "09:00", "endTime": "15:00"},
    {"id": "c-done", "name": "Spring Cup", "date": "2024-04-20", "time": "07:30", "endDate": "2024-04-21"},
    {"id": "c-bad", "name": "Broken", "date": "2024-06-01", "time": "9am"},
]


def test_competition_status_per_record():
    assert competition_status(RECORDS[0], NOW) == "upcoming"
    assert competition_status(RECORDS[1], NOW) == "live"
    assert competition_status(RECORDS[2], NOW) == "completed"


def test_unresolvable_schedule_is_unknown_and_logged(caplog):
    caplog.set_level(logging.WARNING, logger="pegslam.competitions")
    assert competition_status(RECORDS[3], NOW) == "unknown"
    assert competition_status({"id": "c-nodate", "name": "No date"}, NOW) == "unknown"
    messages = [r.getMessage() for r in caplog.records]
    assert any("c-bad" in m and "9am" in m for m in messages)
    assert any("c-nodate" in m for m in messages)


def test_annotate_does_not_mutate_input():
    source = [dict(r) for r in RECORDS]
    annotated = annotate_competitions(source, NOW)
    assert [r["status"] for r in annotated] == ["upcoming", "live", "completed", "unknown"]
    assert all("status" not in r for r in source)


def test_annotate_overwrites_stale_stored_status():
    stale = {**RECORDS[2], "status": "upcoming"}
    assert annotate_competitions([stale], NOW)[0]["status"] == "completed"


def test_filter_competitions():
    annotated = annotate_competitions(RECORDS, NOW)
    assert [r["id"] for r in filter_competitions(annotated, "live")] == ["c-live"]
    assert len(filter_competitions(annotated, "all")) == 4
    assert len(filter_competitions(annotated, None)) == 4
    assert filter_competitions(annotated, "upcoming")[0]["id"] == "c-late"


def test_sort_competitions_by_start_with_bad_records_last():
    extra = {"id": "c-bad-2", "name": "Another broken", "date": "not-a-date"}
    ordered = sort_competitions(RECORDS + [extra])
    assert [r["id"] for r in ordered] == ["c-done", "c-live", "c-late", "c-bad-2", "c-bad"]


def test_sort_across_clock_change_weekend():
    a = {"id": "a", "name": "a", "date": "2024-10-26", "time": "23:45"}
    b = {"id": "b", "name": "b", "date": "2024-10-27", "time": "00:30"}
    assert [r["id"] for r in sort_competitions([b, a])] == ["a", "b"]


def test_status_counts():
    counts = status_counts(RECORDS, NOW)
    assert counts == {
        "upcoming": 1,
        "live": 1,
        "completed": 1,
        "unknown": 1,
        "active": 2,
    }


def test_schedule_issues_lists_records_for_correction():
    issues = schedule_issues(RECORDS + [{"id": "c-end", "name": "Bad end", "date": "2024-06-01", "endTime": "25:00"}])
    assert [i["id"] for i in issues] == ["c-bad", "c-end"]
    assert "9am" in issues[0]["error"]
    assert issues[1]["name"] == "Bad end"
