"""
FitArc — Consistency

Current streak and two-week adherence, recomputed from session dates on
every query. "Today" is the calendar date in the app time zone.
"""
from datetime import date, datetime, timedelta

from src.config import CONSISTENCY_WINDOW_DAYS
from src.session_mapper import today_in_time_zone


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def session_dates(sessions: list[dict]) -> set[str]:
    return {s["date"] for s in sessions if s.get("date")}


def current_streak(dates: set[str], today, window_days: int = CONSISTENCY_WINDOW_DAYS) -> int:
    """Consecutive days with a session counting back from today. No session today -> 0."""
    start = _as_date(today)
    streak = 0
    for offset in range(window_days):
        if (start - timedelta(days=offset)).isoformat() not in dates:
            break
        streak += 1
    return streak


def build_consistency_summary(sessions: list[dict], today=None, time_zone: str = None) -> dict:
    dates = session_dates(sessions)
    if today is None:
        today = today_in_time_zone(time_zone)
    adherence = min(100.0, len(dates) / CONSISTENCY_WINDOW_DAYS * 100) if sessions else 0
    return {
        "streak": current_streak(dates, today),
        "adherence_percent": adherence,
    }


def longest_streak(sessions: list[dict]) -> int:
    """Longest run of consecutive session days ever logged."""
    days = sorted({_as_date(d) for d in session_dates(sessions)})
    longest = 0
    run = 0
    prev = None
    for day in days:
        run = run + 1 if prev is not None and (day - prev).days == 1 else 1
        longest = max(longest, run)
        prev = day
    return longest
