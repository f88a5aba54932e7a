"""
FitArc — Generic Blueprints

Fallback used when the template catalog is empty: group the exercise
catalog by primary muscle, chunk the muscles into up to four generic
sessions and fill each session from the muscle buckets.
"""
from src.config import normalize_key

DEFAULT_TARGET_EXERCISES = 5
MAX_GENERIC_BLUEPRINTS = 4


def _muscle_key(name) -> str:
    return (name or "").strip().lower()


def build_muscle_index(catalog: list[dict]) -> dict:
    """Primary muscle -> exercises, each bucket sorted by name."""
    index = {}
    for exercise in catalog:
        for muscle in exercise.get("primary_muscles") or []:
            key = _muscle_key(muscle)
            if key:
                index.setdefault(key, []).append(exercise)
    for bucket in index.values():
        bucket.sort(key=lambda e: e["name"])
    return index


def build_generic_blueprints(catalog: list[dict]) -> list[dict]:
    muscles = []
    for exercise in catalog:
        for muscle in exercise.get("primary_muscles") or []:
            key = _muscle_key(muscle)
            if key and key not in muscles:
                muscles.append(key)
    if not muscles:
        return []

    chunk_size = max(3, len(muscles) // 3)
    chunks = [muscles[i:i + chunk_size] for i in range(0, len(muscles), chunk_size)]
    return [
        {
            "key": f"auto_{i + 1}",
            "title": f"Session {i + 1}",
            "primary_muscles": group,
            "accessory_muscles": [],
            "target_exercises": DEFAULT_TARGET_EXERCISES,
        }
        for i, group in enumerate(chunks[:MAX_GENERIC_BLUEPRINTS])
    ]


def _select_from_bucket(bucket: list[dict], used_ids: set, seed: int) -> dict | None:
    for i in range(len(bucket)):
        candidate = bucket[(i + seed) % len(bucket)]
        if candidate["id"] not in used_ids:
            used_ids.add(candidate["id"])
            return candidate
    return None


def pick_exercises_for_blueprint(blueprint: dict, muscle_index: dict, catalog: list[dict], day_seed: int) -> list[dict]:
    """
    Primary muscles first, then accessories, then top up from the whole
    catalog (sorted by name). `day_seed` rotates picks so consecutive days differ.
    """
    target = blueprint.get("target_exercises") or DEFAULT_TARGET_EXERCISES
    selection = []
    used_ids = set()

    for muscles in (blueprint.get("primary_muscles"), blueprint.get("accessory_muscles")):
        for muscle in muscles or []:
            if len(selection) >= target:
                break
            bucket = muscle_index.get(_muscle_key(muscle), [])
            pick = _select_from_bucket(bucket, used_ids, day_seed + len(selection)) if bucket else None
            if pick:
                selection.append(pick)

    if len(selection) < target and catalog:
        ordered = sorted(catalog, key=lambda e: e["name"])
        for i in range(len(ordered)):
            if len(selection) >= target:
                break
            candidate = ordered[(i + day_seed) % len(ordered)]
            if candidate["id"] not in used_ids:
                used_ids.add(candidate["id"])
                selection.append(candidate)

    return selection


def blueprint_to_template(blueprint: dict, exercises: list[dict]) -> dict:
    """Shape a filled blueprint like a normalized template so the orchestrator treats both alike."""
    return {
        "id": None,
        "title": blueprint["title"],
        "difficulty": None,
        "equipment_level": None,
        "goal_tags": [normalize_key(blueprint["key"])],
        "exercises": [
            {
                "id": None,
                "exercise_id": ex["id"],
                "exercise_name": ex["name"],
                "movement_pattern": ex.get("movement_pattern"),
                "body_parts": list(ex.get("primary_muscles") or []),
                "sets": None,
                "reps": None,
                "display_order": i + 1,
                "notes": None,
            }
            for i, ex in enumerate(exercises)
        ],
    }
