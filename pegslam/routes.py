from flask import Blueprint, abort, current_app, jsonify, request
from contextlib import closing
import os
import time

from . import uk_time
from .competitions import (
    STATUS_UNKNOWN,
    annotate_competitions,
    status_counts,
    filter_competitions,
    schedule_issues,
    sort_competitions,
)
from .datastore import (
    ensure_schema as ds_ensure_schema,
    list_competitions as ds_list_competitions,
    get_competition as ds_get_competition,
    list_leaderboard_entries as ds_list_leaderboard_entries,
    list_angler_entries as ds_list_angler_entries,
    create_leaderboard_entry as ds_create_leaderboard_entry,
    update_leaderboard_entry as ds_update_leaderboard_entry,
    delete_leaderboard_entry as ds_delete_leaderboard_entry,
)
from .standings import aggregate_leaderboard, angler_stats
from .weights import format_weight, to_ounces, try_parse_weight


bp = Blueprint('main', __name__)

STATUS_FILTERS = {
    'all',
    uk_time.STATUS_UPCOMING,
    uk_time.STATUS_LIVE,
    uk_time.STATUS_COMPLETED,
    STATUS_UNKNOWN,
}

# Per-competition leaderboard cache: competition_id -> (expires_at, rows)
_LEADERBOARD_CACHE: dict[str, tuple[float, list[dict]]] = {}
_LEADERBOARD_TTL = int(os.environ.get('CACHE_TTL_LEADERBOARD', '60'))  # seconds


def _cache_get_leaderboard(competition_id: str) -> list[dict] | None:
    entry = _LEADERBOARD_CACHE.get(competition_id)
    if not entry:
        return None
    exp, rows = entry
    if exp < time.time():
        _LEADERBOARD_CACHE.pop(competition_id, None)
        return None
    return rows


def _cache_set_leaderboard(competition_id: str, rows: list[dict]) -> None:
    _LEADERBOARD_CACHE[competition_id] = (time.time() + _LEADERBOARD_TTL, rows)


def _cache_clear_all() -> None:
    _LEADERBOARD_CACHE.clear()


def _invalid(message: str, errors: list[str] | None = None):
    return {'message': message, 'errors': errors or []}, 400


@bp.route('/health/db')
def health_db():
    """Database connectivity health check.

    Always returns HTTP 200 with a JSON body describing connection status.
    """
    url = os.environ.get('DATABASE_URL')
    if not url:
        return {
            'connected': False,
            'status': 'no_database_url',
            'message': 'DATABASE_URL is not set.',
        }
    try:
        import psycopg2  # type: ignore
        with closing(psycopg2.connect(url, connect_timeout=5)) as conn:
            with conn.cursor() as cur:
                cur.execute('SELECT current_user, current_database(), version()')
                user, db, ver = cur.fetchone()
            return {
                'connected': True,
                'status': 'ok',
                'user': user,
                'database': db,
                'server_version': (ver or '').split('\n')[0],
            }
    except Exception as e:  # pragma: no cover - best-effort health output
        return {'connected': False, 'status': 'error', 'error': str(e)}


@bp.route('/admin/schema/upgrade', methods=['POST'])
def schema_upgrade():
    """Create any missing tables and indexes."""
    ds_ensure_schema()
    return {'ok': True}


def audit_competition_schedules() -> list[dict]:
    """Log every competition whose stored date/time cannot be resolved."""
    issues = schedule_issues(ds_list_competitions())
    for issue in issues:
        current_app.logger.warning(
            "schedule_issue competition=%s name=%r error=%s", issue['id'], issue['name'], issue['error']
        )
    current_app.logger.info("schedule_audit issues=%d", len(issues))
    return issues


@bp.route('/api/competitions')
def competitions():
    status = (request.args.get('status') or 'all').lower()
    if status not in STATUS_FILTERS:
        return _invalid(f"Unknown status filter: {status}")
    # One instant for the whole listing
    now = uk_time.utc_now()
    records = annotate_competitions(ds_list_competitions(), now)
    return jsonify(sort_competitions(filter_competitions(records, status)))


@bp.route('/api/competitions/<competition_id>')
def competition_detail(competition_id):
    record = ds_get_competition(competition_id)
    if not record:
        abort(404)
    return annotate_competitions([record], uk_time.utc_now())[0]


@bp.route('/api/competitions/<competition_id>/leaderboard')
def leaderboard(competition_id):
    cached = _cache_get_leaderboard(competition_id)
    if cached is not None:
        return jsonify(cached)
    if not ds_get_competition(competition_id):
        abort(404)
    rows = aggregate_leaderboard(ds_list_leaderboard_entries(competition_id))
    _cache_set_leaderboard(competition_id, rows)
    return jsonify(rows)


@bp.route('/api/anglers/<user_id>/stats')
def angler_statistics(user_id):
    return angler_stats(ds_list_angler_entries(user_id))


def _weight_from_payload(payload: dict, errors: list[str]) -> str | None:
    """Canonical display weight from ``weight`` or ``pounds``/``ounces``."""
    if 'pounds' in payload or 'ounces' in payload:
        parts = []
        for key in ('pounds', 'ounces'):
            try:
                value = int(payload.get(key) or 0)
            except (TypeError, ValueError):
                errors.append(f"{key} must be a whole number")
                return None
            if value < 0:
                errors.append(f"{key} must not be negative")
                return None
            parts.append(value)
        return format_weight(to_ounces(*parts))
    if 'weight' in payload:
        total = try_parse_weight(payload.get('weight'))
        if total is None:
            errors.append("weight must be '<lb> lb <oz> oz' or a number of ounces")
            return None
        return format_weight(total)
    return None


def _clean_entry_payload(payload: dict, creating: bool) -> tuple[dict, list[str]]:
    fields: dict = {}
    errors: list[str] = []

    if creating:
        for key in ('competitionId', 'userId', 'teamId'):
            value = payload.get(key)
            if value not in (None, ''):
                fields[key] = str(value)
        if 'competitionId' not in fields:
            errors.append("competitionId is required")
    elif 'teamId' in payload:
        fields['teamId'] = payload.get('teamId') or None

    if 'pegNumber' in payload or creating:
        try:
            peg = int(payload.get('pegNumber'))
        except (TypeError, ValueError):
            peg = 0
        if peg < 1:
            errors.append("pegNumber must be a positive whole number")
        else:
            fields['pegNumber'] = peg

    weight = _weight_from_payload(payload, errors)
    if weight is not None:
        fields['weight'] = weight
    elif creating and not any(k in payload for k in ('weight', 'pounds', 'ounces')):
        errors.append("weight is required")

    if 'position' in payload:
        pos = payload.get('position')
        if pos in (None, ''):
            fields['position'] = None
        else:
            try:
                fields['position'] = int(pos)
            except (TypeError, ValueError):
                errors.append("position must be a whole number")

    return fields, errors


@bp.route('/api/admin/leaderboard', methods=['POST'])
def create_leaderboard_entry():
    payload = request.get_json(silent=True) or {}
    fields, errors = _clean_entry_payload(payload, creating=True)
    if errors:
        return _invalid("Invalid data", errors)
    if not ds_get_competition(fields['competitionId']):
        return {'message': 'Competition not found'}, 404
    entry = ds_create_leaderboard_entry(fields)
    current_app.logger.info(
        "weigh_in created competition=%s peg=%s weight=%s",
        fields['competitionId'], fields['pegNumber'], fields['weight'],
    )
    _cache_clear_all()
    return entry


@bp.route('/api/admin/leaderboard/<entry_id>', methods=['PUT'])
def update_leaderboard_entry(entry_id):
    payload = request.get_json(silent=True) or {}
    fields, errors = _clean_entry_payload(payload, creating=False)
    if errors:
        return _invalid("Invalid data", errors)
    entry = ds_update_leaderboard_entry(entry_id, fields)
    if not entry:
        return {'message': 'Leaderboard entry not found'}, 404
    _cache_clear_all()
    return entry


@bp.route('/api/admin/leaderboard/<entry_id>', methods=['DELETE'])
def delete_leaderboard_entry(entry_id):
    if not ds_delete_leaderboard_entry(entry_id):
        return {'message': 'Leaderboard entry not found'}, 404
    _cache_clear_all()
    return {'message': 'Leaderboard entry deleted successfully'}


@bp.route('/api/admin/dashboard/stats')
def dashboard_stats():
    records = ds_list_competitions()
    counts = status_counts(records, uk_time.utc_now())
    return {
        'totalCompetitions': len(records),
        'activeCompetitions': counts['active'],
        'liveCompetitions': counts[uk_time.STATUS_LIVE],
        'scheduleIssues': counts[STATUS_UNKNOWN],
    }


@bp.route('/api/admin/competitions/schedule-issues')
def competition_schedule_issues():
    return jsonify(schedule_issues(ds_list_competitions()))
