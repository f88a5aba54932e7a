"""
FitArc — Configuration

Rule tables for classification, template matching and scheduling live here.
Everything else (mapper, analytics, selector, orchestrator) reads from
these tables and never hard-codes its own copy.
"""
import os
import re

# ── Supabase ─────────────────────────────────────────────────────────
SUPABASE_URL = os.environ.get("SUPABASE_URL", "").rstrip("/")
SUPABASE_KEY = os.environ.get("SUPABASE_KEY", "")
SUPABASE_TABLE_PREFIX = os.environ.get("SUPABASE_TABLE_PREFIX", "fitarc_")

# ── App ──────────────────────────────────────────────────────────────
APP_TIME_ZONE = os.environ.get("APP_TIME_ZONE", "").strip() or "UTC"

DEFAULT_TARGET_SETS = 4
DEFAULT_TARGET_REPS = "8-12"
DEFAULT_PLAN_DAYS = 28
CONSISTENCY_WINDOW_DAYS = 14  # streak lookback and adherence denominator


def table(name: str) -> str:
    """Prefixed table name, e.g. table("workout_sessions") -> fitarc_workout_sessions."""
    return f"{SUPABASE_TABLE_PREFIX}{name}"


# ═════════════════════════════════════════════════════════════════════
# CLOSED ENUMERATIONS
# ═════════════════════════════════════════════════════════════════════

MUSCLE_GROUPS = ("chest", "back", "legs", "shoulders", "arms", "core")

MOVEMENT_PATTERNS = (
    "squat",
    "hinge",
    "horizontal_push",
    "vertical_push",
    "horizontal_pull",
    "vertical_pull",
)

LIFT_IDS = ("bench_press", "squat", "deadlift")

# Free-text muscle name (lowercase, trimmed) -> muscle group.
# Anything not listed maps to nothing.
MUSCLE_ALIASES = {
    "chest": "chest",
    "back": "back",
    "lats": "back",
    "legs": "legs",
    "quads": "legs",
    "hamstrings": "legs",
    "glutes": "legs",
    "calves": "legs",
    "shoulders": "shoulders",
    "delts": "shoulders",
    "rear delts": "shoulders",
    "arms": "arms",
    "triceps": "arms",
    "biceps": "arms",
    "forearms": "arms",
    "core": "core",
    "abs": "core",
    "obliques": "core",
    "hip flexors": "core",
}

# ── Name matchers: ORDER MATTERS, first match wins ──────────────────
# "Overhead Press" hits horizontal_push before vertical_push and
# "Hip Thrust" hits hinge before anything press/pull related.
MOVEMENT_PATTERN_MATCHERS = [
    ("squat", re.compile(r"squat|lunge|leg press", re.IGNORECASE)),
    ("hinge", re.compile(r"deadlift|hip thrust|rdl|good morning", re.IGNORECASE)),
    ("horizontal_push", re.compile(r"bench|push-up|dip|press", re.IGNORECASE)),
    ("vertical_push", re.compile(r"overhead|military|shoulder press", re.IGNORECASE)),
    ("horizontal_pull", re.compile(r"row|pullover", re.IGNORECASE)),
    ("vertical_pull", re.compile(r"pull-up|pulldown|chin-up", re.IGNORECASE)),
]

LIFT_MATCHERS = [
    ("bench_press", re.compile(r"bench|press", re.IGNORECASE)),
    ("squat", re.compile(r"squat", re.IGNORECASE)),
    ("deadlift", re.compile(r"deadlift|hip thrust|rdl", re.IGNORECASE)),
]


# ═════════════════════════════════════════════════════════════════════
# TEMPLATE MATCHING
# ═════════════════════════════════════════════════════════════════════

EQUIPMENT_RANK = {
    "bodyweight": 0,
    "dumbbells": 1,
    "full_gym": 2,
}

EQUIPMENT_SYNONYMS = {
    "full_gym": "full_gym",
    "gym": "full_gym",
    "dumbbells": "dumbbells",
    "dumbbell": "dumbbells",
    "bodyweight": "bodyweight",
    "body_weight": "bodyweight",
}

EXPERIENCE_RANK = {
    "beginner": 0,
    "intermediate": 1,
    "advanced": 2,
}

# Each stated goal expands to the template goal tags that satisfy it.
GOAL_ALIASES = {
    "hypertrophy": ["hypertrophy", "build_muscle", "muscle", "general"],
    "strength": ["strength", "get_stronger", "power", "general"],
    "fat_loss": ["fat_loss", "lose_fat", "conditioning", "general_fitness", "general"],
    "endurance": ["endurance", "conditioning", "general_fitness"],
    "general": ["general", "general_fitness", "conditioning", "full_body"],
}
DEFAULT_GOAL = "general"


# ═════════════════════════════════════════════════════════════════════
# SCHEDULING
# ═════════════════════════════════════════════════════════════════════

SPLIT_ROTATION_TAGS = {
    "full_body": ["full_body"],
    "upper_lower": ["upper", "lower"],
    "push_pull_legs": ["push", "pull", "legs"],
    "bro_split": ["chest", "back", "shoulders", "arms", "legs"],
}
DEFAULT_SPLIT = "full_body"

SPLIT_DAYS_PER_WEEK = {
    "full_body": 3,
    "upper_lower": 4,
    "push_pull_legs": 5,
    "bro_split": 5,
}

# Cadence -> training weekdays (Python weekday(): Monday=0 ... Sunday=6).
# 7+ or unset trains every day; anything at or below 3 uses Mon/Wed/Fri.
TRAINING_WEEKDAYS = {
    7: frozenset(range(7)),
    6: frozenset({0, 1, 2, 3, 4, 5}),
    5: frozenset({0, 1, 2, 3, 4}),
    4: frozenset({0, 1, 3, 5}),
    3: frozenset({0, 2, 4}),
}


def normalize_key(value) -> str:
    """Trim, lowercase and collapse whitespace to underscores ("Full Body" -> "full_body")."""
    if value is None:
        return ""
    return re.sub(r"\s+", "_", str(value).strip().lower())


def normalize_equipment_level(value) -> str | None:
    """Map an equipment label onto the ordinal scale, None when unrecognized."""
    key = normalize_key(value)
    if not key:
        return None
    return EQUIPMENT_SYNONYMS.get(key)


def goal_aliases(goal) -> list[str]:
    """Template tags that satisfy a stated goal. Unknown or missing goals use the general aliases."""
    return GOAL_ALIASES.get(normalize_key(goal), GOAL_ALIASES[DEFAULT_GOAL])
