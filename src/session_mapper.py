"""
FitArc — Session Mapper

Turns the nested session rows returned by the store
(session → session_exercises → exercise / sets) into session entries
with a calendar date resolved in the user's time zone.
"""
import math
import numbers
import re

import pandas as pd

from src.config import (
    APP_TIME_ZONE,
    DEFAULT_TARGET_REPS,
    DEFAULT_TARGET_SETS,
    MOVEMENT_PATTERNS,
    normalize_key,
)
from src.classifiers import muscle_groups_for

SET_FIELDS = ("set_number", "weight", "reps", "rpe", "rest_seconds")

_UTC_OFFSET = re.compile(r"(Z|\+00(:?00)?)$", re.IGNORECASE)


# ═══════════════════════════════════════════════════════════════════════
# DATES
# ═══════════════════════════════════════════════════════════════════════

def today_in_time_zone(time_zone: str = None) -> str:
    return pd.Timestamp.now(tz=time_zone or APP_TIME_ZONE).strftime("%Y-%m-%d")


def format_date_in_time_zone(value, time_zone: str = None) -> str:
    """
    Calendar date of a timestamp as seen in `time_zone`.

    Naive timestamps are wall-clock already and keep their own date.
    """
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        return ts.strftime("%Y-%m-%d")
    return ts.tz_convert(time_zone or APP_TIME_ZONE).strftime("%Y-%m-%d")


def resolve_session_date(performed_at, time_zone: str = None) -> str:
    """
    Resolve a session's `YYYY-MM-DD` date.

    - date-only value                       -> used verbatim
    - exactly 00:00:00 with a UTC offset    -> literal date part (a date
      that was stored as UTC midnight, shifting it would move it a day)
    - any other timestamp                   -> converted into `time_zone`
    - missing                               -> today in `time_zone`
    """
    if performed_at is None or (isinstance(performed_at, str) and not performed_at.strip()):
        return today_in_time_zone(time_zone)
    if not isinstance(performed_at, str):
        return format_date_in_time_zone(performed_at, time_zone)

    raw = performed_at.strip()
    if "T" in raw:
        date_part, time_with_zone = raw.split("T", 1)
    elif " " in raw:
        date_part, time_with_zone = raw.split(" ", 1)
    else:
        return raw

    time_part = time_with_zone.split(".")[0]
    if time_part.startswith("00:00:00") and _UTC_OFFSET.search(time_with_zone.strip()):
        return date_part
    return format_date_in_time_zone(raw, time_zone)


# ═══════════════════════════════════════════════════════════════════════
# ROWS
# ═══════════════════════════════════════════════════════════════════════

def optional_number(value):
    """Numeric value or None. Never coerces a missing value to 0."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        return None if math.isnan(value) else value
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if math.isnan(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def _map_set(raw_set) -> dict:
    raw_set = raw_set if isinstance(raw_set, dict) else {}
    return {field: optional_number(raw_set.get(field)) for field in SET_FIELDS}


def _muscle_names(exercise: dict) -> list:
    names = []
    for link in exercise.get("muscle_links") or []:
        muscle = (link or {}).get("muscle") or {}
        names.append(muscle.get("name"))
    return names


def _map_exercise(raw: dict, session_id) -> dict:
    exercise = raw.get("exercise") or {}
    name = exercise.get("name") or "Unknown"

    set_details = []
    for i, raw_set in enumerate(raw.get("sets") or [], start=1):
        entry = _map_set(raw_set)
        if all(entry[f] is None for f in SET_FIELDS):
            print(f"  ⚠️ Session {session_id}: set {i} of '{name}' has no numeric fields, kept as placeholder")
        set_details.append(entry)

    notes = raw.get("notes")
    reps_note = notes.strip() if isinstance(notes, str) and notes.strip() else None
    first_reps = next((s["reps"] for s in set_details if s["reps"] is not None), None)
    if reps_note:
        target_reps = reps_note
    elif first_reps is not None:
        target_reps = f"{first_reps:g}"
    else:
        target_reps = DEFAULT_TARGET_REPS

    movement = normalize_key(exercise.get("movement_pattern"))

    return {
        "id": raw.get("id"),
        "exercise_id": exercise.get("id"),
        "name": name,
        "muscle_groups": muscle_groups_for(_muscle_names(exercise)),
        "movement_pattern": movement if movement in MOVEMENT_PATTERNS else None,
        "sets": len(set_details) or DEFAULT_TARGET_SETS,
        "reps": target_reps,
        "completed": bool(raw.get("complete")),
        "display_order": optional_number(raw.get("display_order")),
        "notes": notes,
        "set_details": set_details,
    }


def _display_sort_key(exercise: dict):
    # sorted() is stable, so equal orders keep their source position
    order = exercise["display_order"]
    return (order is None, order if order is not None else 0)


def map_session_row(session: dict, fallback_plan_id=None, time_zone: str = None) -> dict:
    """Normalize one raw session row into a session entry."""
    session_id = session.get("id")
    exercises = [_map_exercise(se or {}, session_id) for se in session.get("session_exercises") or []]
    return {
        "id": session_id,
        "plan_id": fallback_plan_id if fallback_plan_id is not None else session.get("plan_id"),
        "date": resolve_session_date(session.get("performed_at"), time_zone),
        "exercises": sorted(exercises, key=_display_sort_key),
        "completed": bool(session.get("complete")),
        "notes": session.get("notes"),
    }


def map_session_rows(rows: list[dict], fallback_plan_id=None, time_zone: str = None) -> list[dict]:
    return [map_session_row(row, fallback_plan_id, time_zone) for row in rows or []]
