"""
FitArc — Supabase (PostgREST) Client

Column-projecting, filtered reads and the per-date plan write.
The orchestrator uses this module as its default store.
"""
import time

import requests

from src.config import SUPABASE_URL, SUPABASE_KEY, normalize_key, table
from src.errors import ConfigError
from src.schedule import parse_days_per_week

# Rate limiting: keep bursts from a generation run polite
RATE_LIMIT_DELAY = 0.1  # seconds between requests
MAX_RETRIES = 3
RETRY_BACKOFF = 2  # exponential backoff multiplier
REQUEST_TIMEOUT = 15

UNDEFINED_COLUMN = "42703"

TEMPLATE_SELECT = """
    id,
    title,
    difficulty,
    equipment_level,
    goal_tags,
    exercises:{exercises} (
        id,
        exercise_id,
        exercise_name,
        movement_pattern,
        body_parts,
        sets,
        reps,
        display_order,
        notes
    )
"""

EXERCISE_SELECT = """
    id,
    name,
    movement_pattern,
    equipment,
    muscle_links:{links} (
        role,
        muscle:{muscles} ( name )
    )
"""

SESSION_SELECT = """
    id,
    user_id,
    plan_id,
    performed_at,
    notes,
    complete,
    session_exercises:{session_exercises} (
        id,
        display_order,
        notes,
        complete,
        exercise:{exercises} (
            id,
            name,
            movement_pattern,
            muscle_links:{links} (
                role,
                muscle:{muscles} ( name )
            )
        ),
        sets:{sets} (
            set_number,
            reps,
            weight,
            rpe,
            rest_seconds
        )
    )
"""


def _compact(select: str) -> str:
    return "".join(select.split())


def _headers(prefer: str = None) -> dict:
    if not SUPABASE_URL or not SUPABASE_KEY:
        raise ConfigError("SUPABASE_URL and SUPABASE_KEY must be set")
    headers = {
        "apikey": SUPABASE_KEY,
        "Authorization": f"Bearer {SUPABASE_KEY}",
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if prefer:
        headers["Prefer"] = prefer
    return headers


def _request(method: str, path: str, params=None, body=None, prefer: str = None):
    """REST call with retry on 429 / 5xx / timeouts. Returns decoded JSON or None."""
    headers = _headers(prefer)
    url = f"{SUPABASE_URL}/rest/v1/{path.lstrip('/')}"
    time.sleep(RATE_LIMIT_DELAY)
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            r = requests.request(
                method, url, headers=headers, params=params, json=body, timeout=REQUEST_TIMEOUT,
            )
            if r.status_code == 429:
                wait = RETRY_BACKOFF ** attempt
                print(f"  ⏳ Supabase rate limit, retrying in {wait}s (attempt {attempt}/{MAX_RETRIES})")
                time.sleep(wait)
                continue
            r.raise_for_status()
            return r.json() if r.content else None
        except requests.exceptions.Timeout:
            if attempt < MAX_RETRIES:
                print(f"  ⏳ Supabase timeout, retrying (attempt {attempt}/{MAX_RETRIES})")
                time.sleep(RETRY_BACKOFF ** attempt)
            else:
                raise
        except requests.exceptions.HTTPError:
            if attempt < MAX_RETRIES and r.status_code >= 500:
                print(f"  ⏳ Supabase {r.status_code}, retrying (attempt {attempt}/{MAX_RETRIES})")
                time.sleep(RETRY_BACKOFF ** attempt)
            else:
                raise
    raise requests.exceptions.RetryError(f"Supabase request failed after {MAX_RETRIES} attempts")


def _error_code(exc: requests.exceptions.HTTPError) -> str | None:
    try:
        return exc.response.json().get("code")
    except (AttributeError, ValueError):
        return None


# ═══════════════════════════════════════════════════════════════════════
# READS
# ═══════════════════════════════════════════════════════════════════════

def fetch_template_catalog(user_id: str) -> list[dict]:
    """Non-deprecated templates that are public or authored by the user, exercises embedded."""
    select = TEMPLATE_SELECT.format(exercises=table("workout_template_exercises"))
    params = {
        "select": _compact(select),
        "is_deprecated": "eq.false",
        "or": f"(is_public.eq.true,created_by.eq.{user_id})",
    }
    return _request("GET", table("workout_templates"), params=params) or []


def _split_muscles(links: list) -> tuple[list[str], list[str]]:
    primary, secondary = [], []
    for link in links or []:
        name = ((link or {}).get("muscle") or {}).get("name")
        if not name:
            continue
        bucket = secondary if (link.get("role") or "").lower() == "secondary" else primary
        if name not in bucket:
            bucket.append(name)
    return primary, secondary


def fetch_exercise_catalog() -> list[dict]:
    select = EXERCISE_SELECT.format(links=table("exercise_muscle_groups"), muscles=table("muscle_groups"))
    rows = _request("GET", table("exercises"), params={"select": _compact(select), "order": "name.asc"}) or []
    catalog = []
    for row in rows:
        primary, secondary = _split_muscles(row.get("muscle_links"))
        catalog.append({
            "id": row["id"],
            "name": row["name"],
            "movement_pattern": row.get("movement_pattern"),
            "equipment": row.get("equipment"),
            "primary_muscles": primary,
            "secondary_muscles": secondary,
        })
    return catalog


def fetch_workout_sessions(user_id: str, plan_id: str = None, start_iso: str = None, end_iso: str = None) -> list[dict]:
    """Nested session rows with performed_at in [start_iso, end_iso), newest first."""
    select = SESSION_SELECT.format(
        session_exercises=table("workout_session_exercises"),
        exercises=table("exercises"),
        links=table("exercise_muscle_groups"),
        muscles=table("muscle_groups"),
        sets=table("workout_sets"),
    )
    params = [("select", _compact(select)), ("user_id", f"eq.{user_id}")]
    if plan_id:
        params.append(("plan_id", f"eq.{plan_id}"))
    if start_iso:
        params.append(("performed_at", f"gte.{start_iso}"))
    if end_iso:
        params.append(("performed_at", f"lt.{end_iso}"))
    params.append(("order", "performed_at.desc"))
    return _request("GET", table("workout_sessions"), params=params) or []


def fetch_user_profile(user_id: str) -> dict | None:
    """Profile fields the generator needs, with plan preferences flattened in."""
    params = {
        "select": "user_id,experience_level,training_split,goal_type,plan_preferences",
        "user_id": f"eq.{user_id}",
        "limit": "1",
    }
    rows = _request("GET", table("user_profiles"), params=params) or []
    if not rows:
        return None
    row = rows[0]
    prefs = row.get("plan_preferences") or {}
    return {
        "user_id": row.get("user_id"),
        "experience_level": normalize_key(row.get("experience_level")) or None,
        "training_split": normalize_key(row.get("training_split")) or None,
        "goal_type": normalize_key(row.get("goal_type")) or None,
        "preferences": {
            "primary_goal": normalize_key(prefs.get("primary_goal")) or None,
            "equipment_level": normalize_key(prefs.get("equipment_level")) or None,
            "days_per_week": parse_days_per_week(prefs.get("days_per_week")),
        },
    }


def fetch_stored_template_map(plan_id: str) -> dict:
    """Pinned tag -> template id map of a plan. Empty when the column does not exist yet."""
    try:
        rows = _request(
            "GET", table("workout_plans"),
            params={"select": "template_map", "id": f"eq.{plan_id}", "limit": "1"},
        ) or []
    except requests.exceptions.HTTPError as e:
        if _error_code(e) == UNDEFINED_COLUMN:
            return {}
        raise
    if not rows:
        return {}
    return rows[0].get("template_map") or {}


# ═══════════════════════════════════════════════════════════════════════
# WRITES
# ═══════════════════════════════════════════════════════════════════════

def store_template_map(user_id: str, plan_id: str, template_map: dict) -> None:
    _request(
        "PATCH", table("workout_plans"),
        params={"id": f"eq.{plan_id}", "user_id": f"eq.{user_id}"},
        body={"template_map": template_map},
        prefer="return=minimal",
    )


def _plan_exercise_row(exercise: dict, index: int) -> dict:
    return {
        "exercise_id": exercise["exercise_id"],
        "exercise_name": exercise.get("name"),
        "movement_pattern": exercise.get("movement_pattern"),
        "body_parts": exercise.get("muscle_groups") or [],
        "sets": exercise.get("sets"),
        "reps": exercise.get("reps"),
        "display_order": exercise.get("display_order") or index + 1,
        "notes": exercise.get("notes"),
        "source_template_exercise_id": exercise.get("source_template_exercise_id"),
    }


def replace_plan_exercises_for_date(
    user_id: str,
    plan_id: str,
    date: str,
    exercises: list[dict],
    source_template_id: str = None,
    source_template_title: str = None,
) -> None:
    """
    Replace the whole exercise set of one plan day.

    Runs server-side as a single RPC (one transaction: ensure day + workout,
    delete existing exercises, insert new ones, stamp the source template)
    so readers never see a half-replaced day.
    """
    missing = [e for e in exercises if not e.get("exercise_id")]
    if missing:
        raise ValueError(f"plan exercise missing exercise_id for {date}: {[e.get('name') for e in missing]}")

    body = {
        "p_user_id": user_id,
        "p_plan_id": plan_id,
        "p_day_date": str(date),
        "p_exercises": [_plan_exercise_row(e, i) for i, e in enumerate(exercises)],
        "p_source_template_id": source_template_id,
        "p_title": source_template_title,
    }
    _request("POST", "rpc/replace_plan_exercises_for_date", body=body, prefer="return=minimal")
