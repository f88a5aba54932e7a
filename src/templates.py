"""
FitArc — Template Normalizer & Candidate Selector

Selection runs a fixed cascade from most to least specific match
(goal, equipment, difficulty). The cascade is the SELECTION_TIERS table;
each tier names the predicates that must all hold.
"""
from src.config import (
    EQUIPMENT_RANK,
    EXPERIENCE_RANK,
    goal_aliases,
    normalize_key,
    normalize_equipment_level,
)

SELECTION_TIERS = [
    ("goal+equipment+difficulty", ("goal", "equipment", "difficulty")),
    ("goal+equipment", ("goal", "equipment")),
    ("goal", ("goal",)),
    ("equipment+difficulty", ("equipment", "difficulty")),
    ("equipment", ("equipment",)),
    ("difficulty", ("difficulty",)),
]


# ═══════════════════════════════════════════════════════════════════════
# 1. NORMALIZATION
# ═══════════════════════════════════════════════════════════════════════

def _order_key(exercise: dict):
    order = exercise.get("display_order")
    return (order is None, order if order is not None else 0)


def normalize_template(raw: dict) -> dict:
    title = raw.get("title") or raw.get("id")
    exercises = []
    for ex in raw.get("exercises") or []:
        if not ex or not ex.get("exercise_id"):
            print(f"  ⚠️ Template '{title}': dropping exercise {(ex or {}).get('id')} without exercise_id")
            continue
        exercises.append(ex)

    tags = []
    for tag in raw.get("goal_tags") or []:
        key = normalize_key(tag)
        if key and key not in tags:
            tags.append(key)

    return {
        "id": raw.get("id"),
        "title": raw.get("title"),
        "difficulty": normalize_key(raw.get("difficulty")) or None,
        "equipment_level": normalize_key(raw.get("equipment_level")) or None,
        "goal_tags": tags,
        "exercises": sorted(exercises, key=_order_key),
    }


def normalize_templates(raw_templates: list[dict]) -> list[dict]:
    return [normalize_template(raw) for raw in raw_templates or [] if raw]


def index_templates_by_tag(templates: list[dict]) -> dict:
    """Goal tag -> templates carrying it, catalog order preserved."""
    index = {}
    for template in templates:
        for tag in template["goal_tags"]:
            index.setdefault(tag, []).append(template)
    return index


# ═══════════════════════════════════════════════════════════════════════
# 2. MATCHING PREDICATES
# ═══════════════════════════════════════════════════════════════════════

def resolve_goal(profile: dict = None, preferences: dict = None):
    preferences = preferences or {}
    profile = profile or {}
    return preferences.get("primary_goal") or profile.get("goal_type") or profile.get("primary_goal")


def matches_goal(template: dict, aliases: list[str]) -> bool:
    if not aliases:
        return True
    return any(tag in aliases for tag in template["goal_tags"])


def matches_equipment(template: dict, available) -> bool:
    """Template equipment must not exceed what the user has. Undeclared always matches."""
    user_level = normalize_equipment_level(available)
    if not user_level:
        return True
    level = normalize_equipment_level(template.get("equipment_level"))
    if not level:
        return True
    return EQUIPMENT_RANK[level] <= EQUIPMENT_RANK[user_level]


def matches_difficulty(template: dict, experience) -> bool:
    """Within one tier of the user's experience. Undeclared or unknown difficulty always matches."""
    user_rank = EXPERIENCE_RANK.get(normalize_key(experience))
    if user_rank is None:
        return True
    rank = EXPERIENCE_RANK.get(normalize_key(template.get("difficulty")))
    if rank is None:
        return True
    return abs(rank - user_rank) <= 1


def build_predicates(profile: dict = None, preferences: dict = None) -> dict:
    profile = profile or {}
    preferences = preferences or {}
    aliases = goal_aliases(resolve_goal(profile, preferences))
    equipment = preferences.get("equipment_level") or profile.get("equipment_level")
    experience = profile.get("experience_level") or preferences.get("experience_level")
    return {
        "goal": lambda t: matches_goal(t, aliases),
        "equipment": lambda t: matches_equipment(t, equipment),
        "difficulty": lambda t: matches_difficulty(t, experience),
    }


def run_cascade(pool: list[dict], predicates: dict) -> tuple[str | None, list[dict]]:
    """First tier with at least one match in `pool` -> (tier name, matches)."""
    for name, required in SELECTION_TIERS:
        matched = [t for t in pool if all(predicates[p](t) for p in required)]
        if matched:
            return name, matched
    return None, []


# ═══════════════════════════════════════════════════════════════════════
# 3. SELECTION
# ═══════════════════════════════════════════════════════════════════════

def select_candidates_with_tier(
    tag: str,
    templates_by_tag: dict,
    all_templates: list[dict],
    profile: dict = None,
    preferences: dict = None,
) -> tuple[str, list[dict]]:
    """
    Candidates for one rotation slot plus where they came from:
    "tag:<tier>", "catalog:<tier>", "goal_fallback", "tag_pool", "catalog"
    or "empty". Only an empty catalog yields no candidates.
    """
    predicates = build_predicates(profile, preferences)
    tag_pool = templates_by_tag.get(normalize_key(tag), [])

    tier, matched = run_cascade(tag_pool, predicates)
    if matched:
        return f"tag:{tier}", matched

    tier, matched = run_cascade(all_templates, predicates)
    if matched:
        return f"catalog:{tier}", matched

    aliases = goal_aliases(resolve_goal(profile, preferences))
    if aliases:
        goal_matched = [t for t in all_templates if matches_goal(t, aliases)]
        if goal_matched:
            return "goal_fallback", goal_matched

    if tag_pool:
        return "tag_pool", list(tag_pool)
    if all_templates:
        return "catalog", list(all_templates)
    return "empty", []


def select_candidates(
    tag: str,
    templates_by_tag: dict,
    all_templates: list[dict],
    profile: dict = None,
    preferences: dict = None,
) -> list[dict]:
    return select_candidates_with_tier(tag, templates_by_tag, all_templates, profile, preferences)[1]


def pick_candidate(candidates: list[dict], day_index: int) -> dict | None:
    """Round-robin so repeated slots cycle through candidates."""
    if not candidates:
        return None
    return candidates[day_index % len(candidates)]


# ═══════════════════════════════════════════════════════════════════════
# 4. PLAN TEMPLATE MAP
# ═══════════════════════════════════════════════════════════════════════

def build_template_map(
    rotation_tags: list[str],
    templates: list[dict],
    profile: dict = None,
    preferences: dict = None,
) -> dict:
    """Rotation tag -> id of its first candidate. Stored on the plan to pin later resolutions."""
    by_tag = index_templates_by_tag(templates)
    template_map = {}
    for tag in rotation_tags:
        candidates = select_candidates(tag, by_tag, templates, profile, preferences)
        if candidates and candidates[0].get("id"):
            template_map[normalize_key(tag)] = candidates[0]["id"]
    return template_map


def normalize_template_map(value) -> dict:
    """Keep only string template ids under normalized tag keys."""
    if not isinstance(value, dict):
        return {}
    return {
        normalize_key(tag): template_id
        for tag, template_id in value.items()
        if normalize_key(tag) and isinstance(template_id, str) and template_id
    }


def resolve_template(
    tag: str,
    scheduled_index: int,
    templates_by_tag: dict,
    all_templates: list[dict],
    profile: dict = None,
    preferences: dict = None,
    template_map: dict = None,
) -> dict | None:
    """Pinned template for the tag when the plan has one, else the round-robin candidate."""
    pinned_id = (template_map or {}).get(normalize_key(tag))
    if pinned_id:
        for template in all_templates:
            if template.get("id") == pinned_id:
                return template
    candidates = select_candidates(tag, templates_by_tag, all_templates, profile, preferences)
    return pick_candidate(candidates, scheduled_index)
