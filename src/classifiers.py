"""
FitArc — Classifiers

Pure lookups from free text to the closed enums in config.py.
Callers must never default a None result.
"""
from src.config import (
    MUSCLE_ALIASES,
    MUSCLE_GROUPS,
    MOVEMENT_PATTERNS,
    MOVEMENT_PATTERN_MATCHERS,
    LIFT_MATCHERS,
)


def map_muscle_name_to_group(name) -> str | None:
    if not name or not isinstance(name, str):
        return None
    return MUSCLE_ALIASES.get(name.strip().lower())


def _first_match(matchers: list, name) -> str | None:
    if not name or not isinstance(name, str):
        return None
    for result, pattern in matchers:
        if pattern.search(name):
            return result
    return None


def infer_movement_pattern(name) -> str | None:
    """Movement pattern from an exercise name, e.g. "Barbell Back Squat" -> "squat"."""
    return _first_match(MOVEMENT_PATTERN_MATCHERS, name)


def infer_lift_id(name) -> str | None:
    """Tracked lift from an exercise name, e.g. "Flat Bench Press" -> "bench_press"."""
    return _first_match(LIFT_MATCHERS, name)


def muscle_groups_for(names) -> list[str]:
    """Deduplicated muscle groups for a list of muscle names, first-seen order, unknowns dropped."""
    groups = []
    for name in names or []:
        group = map_muscle_name_to_group(name)
        if group and group not in groups:
            groups.append(group)
    return groups


def empty_muscle_volume() -> dict:
    return {group: 0 for group in MUSCLE_GROUPS}


def empty_movement_volume() -> dict:
    return {pattern: 0 for pattern in MOVEMENT_PATTERNS}


def estimate_one_rep_max(weight: float, reps: float) -> float:
    """Epley e1RM. A single rep is the weight itself; 0 when either side is non-positive."""
    if not weight or not reps or weight <= 0 or reps <= 0:
        return 0
    if reps == 1:
        return weight
    return round(weight * (1 + reps / 30), 1)
