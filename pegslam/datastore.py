from typing import Any, Dict, List, Optional

# Thin proxy over the PostgreSQL datastore. Routes import from here and the
# calls resolve against datastore_pg at call time, so tests can monkeypatch
# the datastore_pg functions in place.

from . import datastore_pg as _pg


def ensure_schema() -> None:
    _pg.ensure_schema()


def list_competitions() -> List[Dict[str, Any]]:
    return _pg.list_competitions()


def get_competition(competition_id: str) -> Optional[Dict[str, Any]]:
    return _pg.get_competition(competition_id)


def list_leaderboard_entries(competition_id: str) -> List[Dict[str, Any]]:
    return _pg.list_leaderboard_entries(competition_id)


def list_angler_entries(user_id: str) -> List[Dict[str, Any]]:
    return _pg.list_angler_entries(user_id)


def get_leaderboard_entry(entry_id: str) -> Optional[Dict[str, Any]]:
    return _pg.get_leaderboard_entry(entry_id)


def create_leaderboard_entry(fields: Dict[str, Any]) -> Dict[str, Any]:
    return _pg.create_leaderboard_entry(fields)


def update_leaderboard_entry(entry_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _pg.update_leaderboard_entry(entry_id, fields)


def delete_leaderboard_entry(entry_id: str) -> bool:
    return _pg.delete_leaderboard_entry(entry_id)
