"""
Tests for streak and adherence.
Run: pytest tests/ -v
"""
from datetime import date, timedelta

import pytest

TODAY = date(2026, 3, 10)


def _sessions_on(*offsets):
    return [{"id": f"s{o}", "date": (TODAY - timedelta(days=o)).isoformat()} for o in offsets]


class TestCurrentStreak:

    def test_three_day_streak_stops_at_gap(self):
        from src.consistency import build_consistency_summary
        summary = build_consistency_summary(_sessions_on(0, 1, 2, 4, 5), today=TODAY)
        assert summary["streak"] == 3

    def test_no_session_today_is_zero(self):
        from src.consistency import build_consistency_summary
        assert build_consistency_summary(_sessions_on(1, 2, 3), today=TODAY)["streak"] == 0

    def test_same_day_sessions_count_once(self):
        from src.consistency import build_consistency_summary
        sessions = _sessions_on(0, 0, 1)
        assert build_consistency_summary(sessions, today=TODAY)["streak"] == 2

    def test_streak_capped_by_window(self):
        from src.consistency import current_streak
        dates = {(TODAY - timedelta(days=o)).isoformat() for o in range(30)}
        assert current_streak(dates, TODAY) == 14

    def test_today_as_string(self):
        from src.consistency import current_streak
        assert current_streak({"2026-03-10", "2026-03-09"}, "2026-03-10") == 2


class TestAdherence:

    def test_seven_distinct_days_is_fifty(self):
        from src.consistency import build_consistency_summary
        summary = build_consistency_summary(_sessions_on(0, 1, 3, 5, 7, 9, 11), today=TODAY)
        assert summary["adherence_percent"] == pytest.approx(50.0)

    def test_capped_at_hundred(self):
        from src.consistency import build_consistency_summary
        summary = build_consistency_summary(_sessions_on(*range(20)), today=TODAY)
        assert summary["adherence_percent"] == 100.0

    def test_no_sessions(self):
        from src.consistency import build_consistency_summary
        assert build_consistency_summary([], today=TODAY) == {"streak": 0, "adherence_percent": 0}

    def test_today_from_time_zone(self, monkeypatch):
        from src import consistency
        monkeypatch.setattr(consistency, "today_in_time_zone", lambda tz: "2026-03-10")
        summary = consistency.build_consistency_summary(_sessions_on(0), time_zone="Europe/Madrid")
        assert summary["streak"] == 1


class TestLongestStreak:

    def test_longest_run(self):
        from src.consistency import longest_streak
        assert longest_streak(_sessions_on(0, 1, 5, 6, 7, 8, 12)) == 4

    def test_empty(self):
        from src.consistency import longest_streak
        assert longest_streak([]) == 0
