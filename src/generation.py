"""
FitArc — Plan Generation Orchestrator

Schedule dates → rotation tag → template → plan exercises → store write.
A failed date is reported and counted; the run carries on.

Usage from code:
    from src.generation import generate_plan_workouts
    result = generate_plan_workouts(user_id, plan_id, "2026-03-02", 28, profile, preferences)
"""
import threading
from concurrent.futures import ThreadPoolExecutor

from src import supabase_client
from src.config import (
    DEFAULT_PLAN_DAYS,
    DEFAULT_SPLIT,
    DEFAULT_TARGET_REPS,
    DEFAULT_TARGET_SETS,
    MOVEMENT_PATTERNS,
    normalize_key,
)
from src.classifiers import infer_movement_pattern, muscle_groups_for
from src.errors import CatalogFetchError, NoCandidateAvailable, PersistenceError
from src.schedule import (
    build_schedule_dates,
    infer_days_per_week,
    parse_days_per_week,
    rotation_tag,
    rotation_tags_for_split,
)
from src.templates import (
    build_template_map,
    index_templates_by_tag,
    normalize_template_map,
    normalize_templates,
    resolve_template,
)
from src.blueprints import (
    blueprint_to_template,
    build_generic_blueprints,
    build_muscle_index,
    pick_exercises_for_blueprint,
)


class PlanDayLocks:
    """One lock per (plan, date) for the lifetime of a single generation run."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def get(self, plan_id, date: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault((plan_id, date), threading.Lock())

    def __len__(self) -> int:
        return len(self._locks)


def template_to_plan_exercises(template: dict) -> list[dict]:
    exercises = []
    for i, ex in enumerate(template.get("exercises") or []):
        name = ex.get("exercise_name") or "Exercise"
        pattern = normalize_key(ex.get("movement_pattern"))
        order = ex.get("display_order")
        exercises.append({
            "exercise_id": ex["exercise_id"],
            "name": name,
            "muscle_groups": muscle_groups_for(ex.get("body_parts")),
            "movement_pattern": pattern if pattern in MOVEMENT_PATTERNS else infer_movement_pattern(name),
            "sets": ex.get("sets") or DEFAULT_TARGET_SETS,
            "reps": ex.get("reps") or DEFAULT_TARGET_REPS,
            "display_order": order if order is not None else i + 1,
            "notes": ex.get("notes"),
            "source_template_exercise_id": ex.get("id"),
        })
    return exercises


def _resolve_split(profile: dict, preferences: dict) -> str:
    return normalize_key(preferences.get("training_split") or profile.get("training_split")) or DEFAULT_SPLIT


def _template_jobs(dates, split, templates, profile, preferences, template_map) -> list[dict]:
    by_tag = index_templates_by_tag(templates)
    jobs = []
    for i, day in enumerate(dates):
        tag = rotation_tag(split, i)
        template = resolve_template(tag, i, by_tag, templates, profile, preferences, template_map)
        jobs.append({"date": day.isoformat(), "tag": tag, "template": template})
    return jobs


def _blueprint_jobs(dates, catalog: list[dict]) -> list[dict]:
    blueprints = build_generic_blueprints(catalog)
    if not blueprints:
        return []
    muscle_index = build_muscle_index(catalog)
    jobs = []
    for i, day in enumerate(dates):
        blueprint = blueprints[i % len(blueprints)]
        picked = pick_exercises_for_blueprint(blueprint, muscle_index, catalog, i)
        jobs.append({"date": day.isoformat(), "tag": blueprint["key"], "template": blueprint_to_template(blueprint, picked)})
    return jobs


def generate_plan_workouts(
    user_id: str,
    plan_id: str,
    start_date,
    total_days: int = DEFAULT_PLAN_DAYS,
    profile: dict = None,
    preferences: dict = None,
    store=None,
    template_map: dict = None,
    pin_templates: bool = False,
    cancel_event: threading.Event = None,
    max_workers: int = 1,
) -> dict:
    """
    Generate and persist one workout per scheduled date.

    `store` is anything exposing fetch_template_catalog, fetch_exercise_catalog,
    replace_plan_exercises_for_date (and store_template_map when
    pin_templates=True); defaults to the Supabase client module.

    Raises CatalogFetchError when a catalog read fails and
    NoCandidateAvailable when neither catalog has anything to schedule.
    Per-date write failures are counted in the returned tally instead.
    """
    store = store or supabase_client
    profile = profile or {}
    preferences = preferences or {}
    split = _resolve_split(profile, preferences)
    days_per_week = (
        parse_days_per_week(preferences.get("days_per_week"))
        or parse_days_per_week(profile.get("days_per_week"))
        or infer_days_per_week(split)
    )

    print(f"🏋️ Generating workouts for plan {plan_id}, split: {split}, {days_per_week} days/week")

    # 1. Catalog
    print("\n📥 Fetching template catalog...")
    try:
        raw_templates = store.fetch_template_catalog(user_id)
    except Exception as e:
        raise CatalogFetchError(f"Template catalog fetch failed for user {user_id}: {e}") from e
    templates = normalize_templates(raw_templates)
    print(f"   {len(templates)} templates available")

    # 2. Dates
    dates = build_schedule_dates(start_date, total_days, days_per_week)
    print(f"   {len(dates)} training dates over {total_days} days")

    # 3. Assign a workout to each date
    if templates:
        if pin_templates:
            template_map = build_template_map(rotation_tags_for_split(split), templates, profile, preferences)
            store.store_template_map(user_id, plan_id, template_map)
            print(f"   📌 Pinned templates: {template_map}")
        jobs = _template_jobs(dates, split, templates, profile, preferences, normalize_template_map(template_map))
    else:
        print("   ⚠️ Template catalog is empty, falling back to generic blueprints")
        try:
            catalog = store.fetch_exercise_catalog()
        except Exception as e:
            raise CatalogFetchError(f"Exercise catalog fetch failed: {e}") from e
        if not catalog:
            raise NoCandidateAvailable("Template and exercise catalogs are both empty, nothing to schedule")
        jobs = _blueprint_jobs(dates, catalog)
        if not jobs and dates:
            raise NoCandidateAvailable("Exercise catalog has no primary muscles to build blueprints from")

    results = []
    to_write = []
    for job in jobs:
        exercises = template_to_plan_exercises(job["template"]) if job["template"] else []
        entry = {
            "date": job["date"],
            "tag": job["tag"],
            "template_id": (job["template"] or {}).get("id"),
            "template_title": (job["template"] or {}).get("title"),
            "n_exercises": len(exercises),
            "status": "pending",
            "error": None,
        }
        results.append(entry)
        if not exercises:
            entry["status"] = "skipped"
            print(f"   ⏭️ {job['date']}: template '{entry['template_title']}' has no exercises")
            continue
        to_write.append((entry, exercises))

    # 4. Persist
    day_locks = PlanDayLocks()

    def write(entry: dict, exercises: list[dict]) -> dict:
        if cancel_event is not None and cancel_event.is_set():
            entry["status"] = "cancelled"
            return entry
        try:
            with day_locks.get(plan_id, entry["date"]):
                store.replace_plan_exercises_for_date(
                    user_id, plan_id, entry["date"], exercises,
                    entry["template_id"], entry["template_title"],
                )
        except Exception as e:
            err = PersistenceError(entry["date"], e)
            entry["status"] = "failed"
            entry["error"] = str(err)
            print(f"   ❌ {err}")
            return entry
        entry["status"] = "created"
        print(f"   ✅ {entry['date']} | {entry['tag']} | {entry['template_title']} ({entry['n_exercises']} exercises)")
        return entry

    print(f"\n📤 Writing {len(to_write)} plan days...")
    if max_workers and max_workers > 1 and len(to_write) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(write, entry, exercises) for entry, exercises in to_write]
            for f in futures:
                f.result()
    else:
        for entry, exercises in to_write:
            write(entry, exercises)

    succeeded = sum(1 for r in results if r["status"] == "created")
    summary = {
        "plan_id": plan_id,
        "succeeded": succeeded,
        "total": len(to_write),
        "failed": sum(1 for r in results if r["status"] == "failed"),
        "skipped": sum(1 for r in results if r["status"] == "skipped"),
        "cancelled": sum(1 for r in results if r["status"] == "cancelled"),
        "results": results,
    }
    print(f"\n🎉 Generated {succeeded}/{len(to_write)} workouts")
    return summary
