import os
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2 import pool as pg_pool
from psycopg2.extras import RealDictCursor


_POOL: Optional[pg_pool.AbstractConnectionPool] = None

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS competitions (
        id VARCHAR PRIMARY KEY DEFAULT gen_random_uuid()::text,
        name TEXT NOT NULL,
        date TEXT NOT NULL,
        end_date TEXT,
        time TEXT NOT NULL DEFAULT '00:00',
        end_time TEXT,
        venue TEXT NOT NULL DEFAULT '',
        pegs_total INTEGER NOT NULL DEFAULT 0,
        pegs_booked INTEGER NOT NULL DEFAULT 0,
        entry_fee TEXT NOT NULL DEFAULT '0',
        prize_pool TEXT NOT NULL DEFAULT '0',
        type TEXT NOT NULL DEFAULT '',
        competition_mode TEXT NOT NULL DEFAULT 'individual',
        created_at TIMESTAMP NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS anglers (
        id VARCHAR PRIMARY KEY DEFAULT gen_random_uuid()::text,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        username TEXT UNIQUE NOT NULL,
        club TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS teams (
        id VARCHAR PRIMARY KEY DEFAULT gen_random_uuid()::text,
        competition_id VARCHAR NOT NULL REFERENCES competitions(id) ON DELETE CASCADE,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS leaderboard_entries (
        id VARCHAR PRIMARY KEY DEFAULT gen_random_uuid()::text,
        competition_id VARCHAR NOT NULL REFERENCES competitions(id) ON DELETE CASCADE,
        user_id VARCHAR,
        team_id VARCHAR,
        peg_number INTEGER NOT NULL,
        weight TEXT NOT NULL,
        position INTEGER,
        created_at TIMESTAMP NOT NULL DEFAULT now(),
        updated_at TIMESTAMP NOT NULL DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_leaderboard_entries_competition ON leaderboard_entries (competition_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_leaderboard_entries_user ON leaderboard_entries (user_id)",
)

# API field -> column, for the writable parts of a weigh-in
_ENTRY_COLUMNS = {
    "competitionId": "competition_id",
    "userId": "user_id",
    "teamId": "team_id",
    "pegNumber": "peg_number",
    "weight": "weight",
    "position": "position",
}

_ENTRY_SELECT = """
    SELECT le.id, le.competition_id, le.user_id, le.team_id, le.peg_number,
           le.weight, le.position, le.created_at, le.updated_at,
           a.first_name, a.last_name, a.username, a.club,
           t.name AS team_name
    FROM leaderboard_entries le
    LEFT JOIN anglers a ON a.id = le.user_id
    LEFT JOIN teams t ON t.id = le.team_id
"""


def _env_int(name: str, default: Optional[int] = None) -> Optional[int]:
    val = os.environ.get(name)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _connect_kwargs() -> Dict[str, Any]:
    """psycopg2 connection kwargs from the environment.

    connect_timeout defaults to 10s (DB_CONNECT_TIMEOUT). TCP keepalives are
    on unless DB_KEEPALIVES is 0/false; the IDLE/INTERVAL/COUNT tunables are
    passed through only when set.
    """
    ka_env = os.environ.get("DB_KEEPALIVES")
    kwargs: Dict[str, Any] = {
        "connect_timeout": _env_int("DB_CONNECT_TIMEOUT", 10),
        "keepalives": 0 if ka_env is not None and ka_env.lower() in ("0", "false") else 1,
    }
    for env_name, key in (
        ("DB_KEEPALIVES_IDLE", "keepalives_idle"),
        ("DB_KEEPALIVES_INTERVAL", "keepalives_interval"),
        ("DB_KEEPALIVES_COUNT", "keepalives_count"),
    ):
        value = _env_int(env_name)
        if value is not None:
            kwargs[key] = value
    return kwargs


def init_pool(minconn: int = 1, maxconn: int = 10) -> None:
    """Create the process-wide pool from DATABASE_URL (first call wins)."""
    global _POOL
    if _POOL is not None:
        return
    url = os.environ.get("DATABASE_URL")
    if not url:
        # No pool: _get_conn falls back to direct connections
        return
    _POOL = pg_pool.ThreadedConnectionPool(minconn, maxconn, dsn=url, **_connect_kwargs())


def _ping(conn) -> bool:
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
        if not getattr(conn, "autocommit", False):
            conn.rollback()
    except (psycopg2.OperationalError, psycopg2.InterfaceError):
        return False
    return True


def _checkout(pool):
    """Take a live connection from ``pool``, replacing one stale connection."""
    for _ in range(2):
        conn = pool.getconn()
        if _ping(conn):
            return conn
        pool.putconn(conn, close=True)
    raise psycopg2.OperationalError("Failed to acquire healthy DB connection after retry")


def _rollback_quietly(conn) -> None:
    try:
        conn.rollback()
    except psycopg2.Error:
        pass


@contextmanager
def _get_conn():
    """Yield a psycopg2 connection, pooled when a pool exists.

    Any exception inside the block rolls the transaction back. Pooled
    connections are handed back idle; direct ones are closed.
    """
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL not set; configure a PostgreSQL connection string")
    pool = _POOL
    conn = _checkout(pool) if pool is not None else psycopg2.connect(url, **_connect_kwargs())
    try:
        yield conn
    except Exception:
        _rollback_quietly(conn)
        raise
    finally:
        if pool is not None:
            # status 1/2/3 = active / in transaction / in error
            if getattr(conn, "closed", 0) == 0 and not getattr(conn, "autocommit", False):
                if getattr(conn, "status", 0) in (1, 2, 3):
                    _rollback_quietly(conn)
            pool.putconn(conn)
        else:
            conn.close()


def ensure_schema() -> None:
    with _get_conn() as conn, conn.cursor() as cur:
        for statement in SCHEMA_STATEMENTS:
            cur.execute(statement)
        conn.commit()


def _iso(val) -> Optional[str]:
    if val is None:
        return None
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    return str(val)


def _competition_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row.get("id"),
        "name": row.get("name"),
        "date": row.get("date"),
        "time": row.get("time"),
        "endDate": row.get("end_date"),
        "endTime": row.get("end_time"),
        "venue": row.get("venue"),
        "pegsTotal": row.get("pegs_total"),
        "pegsBooked": row.get("pegs_booked"),
        "entryFee": row.get("entry_fee"),
        "prizePool": row.get("prize_pool"),
        "type": row.get("type"),
        "competitionMode": row.get("competition_mode"),
        "createdAt": _iso(row.get("created_at")),
    }


def _entry_from_row(row: Dict[str, Any]) -> Dict[str, Any]:
    first = row.get("first_name")
    last = row.get("last_name")
    name = " ".join(part for part in (first, last) if part) if (first or last) else None
    return {
        "id": row.get("id"),
        "competitionId": row.get("competition_id"),
        "userId": row.get("user_id"),
        "teamId": row.get("team_id"),
        "pegNumber": row.get("peg_number"),
        "weight": row.get("weight"),
        "position": row.get("position"),
        "createdAt": _iso(row.get("created_at")),
        "updatedAt": _iso(row.get("updated_at")),
        "anglerName": name or "Unknown",
        "username": row.get("username") or "",
        "club": row.get("club") or "",
        "teamName": row.get("team_name"),
    }


def list_competitions() -> List[Dict[str, Any]]:
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute("SELECT * FROM competitions ORDER BY date, time, name")
        return [_competition_from_row(r) for r in cur.fetchall() or []]


def get_competition(competition_id: str) -> Optional[Dict[str, Any]]:
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute("SELECT * FROM competitions WHERE id = %s", (competition_id,))
        row = cur.fetchone()
    return _competition_from_row(row) if row else None


def list_leaderboard_entries(competition_id: str) -> List[Dict[str, Any]]:
    """Weigh-ins for one competition, oldest first, with angler/team names."""
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            _ENTRY_SELECT + " WHERE le.competition_id = %s ORDER BY le.created_at, le.id",
            (competition_id,),
        )
        return [_entry_from_row(r) for r in cur.fetchall() or []]


def list_angler_entries(user_id: str) -> List[Dict[str, Any]]:
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(_ENTRY_SELECT + " WHERE le.user_id = %s ORDER BY le.created_at, le.id", (user_id,))
        return [_entry_from_row(r) for r in cur.fetchall() or []]


def get_leaderboard_entry(entry_id: str) -> Optional[Dict[str, Any]]:
    with _get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(_ENTRY_SELECT + " WHERE le.id = %s", (entry_id,))
        row = cur.fetchone()
    return _entry_from_row(row) if row else None


def create_leaderboard_entry(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a weigh-in. Accepted keys: competitionId, userId, teamId,
    pegNumber, weight, position."""
    cols: List[str] = []
    params: List[Any] = []
    for key, col in _ENTRY_COLUMNS.items():
        if key in fields:
            cols.append(col)
            params.append(fields.get(key))
    placeholders = ", ".join(["%s"] * len(cols))
    sql = f"INSERT INTO leaderboard_entries ({', '.join(cols)}) VALUES ({placeholders}) RETURNING id"
    with _get_conn() as conn, conn.cursor() as cur:
        cur.execute(sql, params)
        entry_id = cur.fetchone()[0]
        conn.commit()
    return get_leaderboard_entry(entry_id) or {"id": entry_id, **fields}


def update_leaderboard_entry(entry_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Update selected columns of a weigh-in; returns None when it does not exist.

    competitionId and userId are fixed once recorded and ignored here.
    """
    sets: List[str] = []
    params: List[Any] = []
    for key, col in _ENTRY_COLUMNS.items():
        if key in ("competitionId", "userId"):
            continue
        if key in fields:
            sets.append(f"{col} = %s")
            params.append(fields.get(key))
    sets.append("updated_at = now()")
    params.append(entry_id)
    sql = f"UPDATE leaderboard_entries SET {', '.join(sets)} WHERE id = %s"
    with _get_conn() as conn, conn.cursor() as cur:
        cur.execute(sql, params)
        updated = cur.rowcount
        conn.commit()
    if not updated:
        return None
    return get_leaderboard_entry(entry_id)


def delete_leaderboard_entry(entry_id: str) -> bool:
    with _get_conn() as conn, conn.cursor() as cur:
        cur.execute("DELETE FROM leaderboard_entries WHERE id = %s", (entry_id,))
        deleted = cur.rowcount
        conn.commit()
    return bool(deleted)
