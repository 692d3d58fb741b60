import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pegslam.standings import aggregate_leaderboard, angler_stats


def _weigh_in(entry_id, user, peg, weight, **extra):
    return {
        "id": entry_id,
        "competitionId": "comp-1",
        "userId": user,
        "pegNumber": peg,
        "weight": weight,
        "anglerName": user.title(),
        **extra,
    }


def test_weigh_ins_are_summed_per_angler_and_ranked():
    entries = [
        _weigh_in("e1", "alice", 4, "2 lb 3 oz"),
        _weigh_in("e2", "bob", 7, "5 lb 0 oz"),
        _weigh_in("e3", "alice", 4, "1 lb 15 oz"),
        _weigh_in("e4", "alice", 4, "5"),
        _weigh_in("e5", "carol", 9, "garbage"),
    ]
    rows = aggregate_leaderboard(entries)
    assert [r["userId"] for r in rows] == ["bob", "alice", "carol"]
    assert [r["position"] for r in rows] == [1, 2, 3]
    bob, alice, carol = rows
    assert bob["totalOunces"] == 80
    assert bob["weight"] == "5 lb 0 oz"
    assert alice["totalOunces"] == 71
    assert alice["weight"] == "4 lb 7 oz"
    assert alice["weighIns"] == 3
    assert alice["anglerName"] == "Alice"
    assert carol["weight"] == "0 lb 0 oz"


def test_latest_weigh_in_supplies_peg():
    entries = [
        _weigh_in("e1", "alice", 4, "1 lb 0 oz"),
        _weigh_in("e2", "alice", 12, "1 lb 0 oz"),
    ]
    rows = aggregate_leaderboard(entries)
    assert len(rows) == 1
    assert rows[0]["pegNumber"] == 12
    assert rows[0]["totalOunces"] == 32


def test_equal_totals_ordered_by_peg():
    entries = [
        _weigh_in("e1", "zed", 20, "3 lb 0 oz"),
        _weigh_in("e2", "amy", 3, "48"),
    ]
    rows = aggregate_leaderboard(entries)
    assert [r["userId"] for r in rows] == ["amy", "zed"]
    assert [r["position"] for r in rows] == [1, 2]


def test_team_entries_group_on_team():
    entries = [
        _weigh_in("e1", "alice", 1, "2 lb 0 oz", teamId="t1", teamName="Carp Crew"),
        _weigh_in("e2", "bob", 2, "3 lb 0 oz", teamId="t1", teamName="Carp Crew"),
        _weigh_in("e3", "carol", 3, "4 lb 0 oz", teamId="t2", teamName="Bream Team"),
    ]
    rows = aggregate_leaderboard(entries)
    assert [r["teamName"] for r in rows] == ["Carp Crew", "Bream Team"]
    assert rows[0]["weight"] == "5 lb 0 oz"
    assert rows[0]["weighIns"] == 2


def test_empty_leaderboard():
    assert aggregate_leaderboard([]) == []


def test_angler_stats():
    entries = [
        {"competitionId": "c1", "weight": "10 lb 0 oz", "position": 1},
        {"competitionId": "c2", "weight": "4 lb 8 oz", "position": 3},
        {"competitionId": "c3", "weight": "garbage", "position": 7},
        {"competitionId": "c3", "weight": "1 lb 8 oz", "position": None},
    ]
    stats = angler_stats(entries)
    assert stats["wins"] == 1
    assert stats["podiumFinishes"] == 2
    assert stats["bestCatch"] == "10 lb 0 oz"
    assert stats["totalWeight"] == "16 lb 0 oz"
    # 256 oz over three readable weigh-ins
    assert stats["averageWeight"] == "5 lb 5 oz"
    assert stats["totalCompetitions"] == 3


def test_angler_stats_without_weights():
    stats = angler_stats([])
    assert stats == {
        "wins": 0,
        "podiumFinishes": 0,
        "bestCatch": "-",
        "averageWeight": "-",
        "totalWeight": "-",
        "totalCompetitions": 0,
    }
