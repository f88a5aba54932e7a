"""
FitArc — Progress Loader

Recent sessions for a plan, mapped and turned into workout logs,
strength snapshots and the consistency summary.
"""
import pandas as pd

from src import supabase_client
from src.config import APP_TIME_ZONE, CONSISTENCY_WINDOW_DAYS
from src.session_mapper import map_session_rows, today_in_time_zone
from src.analytics import build_workout_analytics
from src.consistency import build_consistency_summary


def _local_midnight_utc(day: pd.Timestamp, tz: str) -> str:
    # A midnight skipped by a DST jump becomes the first valid instant of that day
    local = day.tz_localize(tz, nonexistent="shift_forward", ambiguous=False)
    return local.tz_convert("UTC").isoformat()


def lookback_bounds(lookback_days: int, time_zone: str = None, today=None) -> tuple[str, str]:
    """
    [start, end) as UTC ISO instants covering the last `lookback_days`
    calendar days in `time_zone`, today included.
    """
    tz = time_zone or APP_TIME_ZONE
    # Localize after the date arithmetic: bounds stay on local midnight across DST changes
    day = pd.Timestamp(str(today or today_in_time_zone(tz))[:10])
    start = day - pd.Timedelta(days=max(lookback_days, 1) - 1)
    end = day + pd.Timedelta(days=1)
    return _local_midnight_utc(start, tz), _local_midnight_utc(end, tz)


def load_recent_sessions(
    user_id: str,
    plan_id: str,
    time_zone: str = None,
    lookback_days: int = CONSISTENCY_WINDOW_DAYS,
    cache=None,
    store=None,
) -> list[dict]:
    """Mapped sessions newest first. A hit in `cache` skips the store."""
    if cache is not None:
        cached = cache.get(user_id, plan_id)
        if cached is not None:
            return cached

    store = store or supabase_client
    start_iso, end_iso = lookback_bounds(lookback_days, time_zone)
    rows = store.fetch_workout_sessions(user_id, plan_id, start_iso, end_iso)
    sessions = map_session_rows(rows, fallback_plan_id=plan_id, time_zone=time_zone)

    if cache is not None:
        cache.put(user_id, plan_id, sessions)
    return sessions


def build_progress_report(sessions: list[dict], today=None, time_zone: str = None) -> dict:
    if today is None:
        today = today_in_time_zone(time_zone)
    today = str(today)[:10]
    analytics = build_workout_analytics(sessions)
    return {
        "sessions": sessions,
        "today_session": next((s for s in sessions if s["date"] == today), None),
        "workout_logs": analytics["workout_logs"],
        "strength_snapshots": analytics["strength_snapshots"],
        "consistency": build_consistency_summary(sessions, today=today, time_zone=time_zone),
    }
