"""
FitArc — Schedule Builder

Fixed weekday heuristics per cadence. Not a constraint solver.
"""
from datetime import date

import pandas as pd

from src.config import (
    DEFAULT_SPLIT,
    SPLIT_DAYS_PER_WEEK,
    SPLIT_ROTATION_TAGS,
    TRAINING_WEEKDAYS,
    normalize_key,
)
from src.session_mapper import optional_number


def _to_date(value) -> date:
    return pd.Timestamp(value).date()


def parse_days_per_week(value) -> int | None:
    """Cadence as a positive int. Stored preferences may hold "4" or 4.0; junk and non-positive values are None."""
    number = optional_number(value)
    if number is None or number <= 0:
        return None
    return int(number)


def training_weekdays(days_per_week: int = None) -> frozenset:
    days_per_week = parse_days_per_week(days_per_week)
    if days_per_week is None or days_per_week >= 7:
        return TRAINING_WEEKDAYS[7]
    if days_per_week <= 3:
        return TRAINING_WEEKDAYS[3]
    return TRAINING_WEEKDAYS[days_per_week]


def should_train_on(day, days_per_week: int = None) -> bool:
    return _to_date(day).weekday() in training_weekdays(days_per_week)


def build_schedule_dates(start, total_days: int, days_per_week: int = None) -> list[date]:
    """Training dates within [start, start + total_days) for the weekly cadence."""
    if total_days <= 0:
        return []
    weekdays = training_weekdays(days_per_week)
    days = pd.date_range(_to_date(start), periods=total_days, freq="D")
    return [d.date() for d in days if d.weekday() in weekdays]


def rotation_tags_for_split(split) -> list[str]:
    key = normalize_key(split)
    return list(SPLIT_ROTATION_TAGS.get(key, SPLIT_ROTATION_TAGS[DEFAULT_SPLIT]))


def rotation_tag(split, scheduled_index: int) -> str:
    tags = rotation_tags_for_split(split)
    return tags[scheduled_index % len(tags)]


def infer_days_per_week(split) -> int:
    """Default cadence for a split when the user has not chosen one."""
    return SPLIT_DAYS_PER_WEEK.get(normalize_key(split), 5)


def resolve_scheduled_index(phase_start, target, days_per_week: int = None) -> int | None:
    """
    Position of `target` among the plan's training dates (0-based), or None
    when it is before the plan start or the plan has not trained yet.
    """
    start, end = _to_date(phase_start), _to_date(target)
    if end < start:
        return None
    total = (end - start).days + 1
    index = len(build_schedule_dates(start, total, days_per_week)) - 1
    return index if index >= 0 else None
