"""
Tests for the plan generation orchestrator and the generic blueprint fallback.
Run: pytest tests/ -v
"""
import threading
from datetime import date

import pytest

MONDAY = date(2024, 3, 4)


class FakeStore:
    """In-memory stand-in for the Supabase client module."""

    def __init__(self, templates=None, exercises=None, fail_dates=(), catalog_error=None):
        self.templates = templates or []
        self.exercises = exercises or []
        self.fail_dates = set(fail_dates)
        self.catalog_error = catalog_error
        self.writes = []
        self.pinned = None
        self.exercise_catalog_calls = 0
        self._lock = threading.Lock()

    def fetch_template_catalog(self, user_id):
        if self.catalog_error:
            raise self.catalog_error
        return self.templates

    def fetch_exercise_catalog(self):
        self.exercise_catalog_calls += 1
        return self.exercises

    def store_template_map(self, user_id, plan_id, template_map):
        self.pinned = template_map

    def replace_plan_exercises_for_date(self, user_id, plan_id, date, exercises,
                                        source_template_id=None, source_template_title=None):
        if date in self.fail_dates:
            raise ConnectionError("socket closed")
        with self._lock:
            self.writes.append({
                "user_id": user_id, "plan_id": plan_id, "date": date, "exercises": exercises,
                "template_id": source_template_id, "title": source_template_title,
            })


def _template(tid, tags=("full_body",), exercises=None):
    if exercises is None:
        exercises = [
            {"id": f"{tid}-2", "exercise_id": "ex-rdl", "exercise_name": "Romanian Deadlift",
             "body_parts": ["Hamstrings", "Glutes"], "display_order": 2, "sets": 3, "reps": "6-8"},
            {"id": f"{tid}-1", "exercise_id": "ex-squat", "exercise_name": "Back Squat",
             "movement_pattern": "squat", "body_parts": ["Quads", "Glutes", "Core"], "display_order": 1},
        ]
    return {"id": tid, "title": f"Template {tid}", "goal_tags": list(tags),
            "equipment_level": None, "difficulty": None, "exercises": exercises}


def _catalog_exercise(eid, name, muscles):
    return {"id": eid, "name": name, "movement_pattern": None, "equipment": None,
            "primary_muscles": muscles, "secondary_muscles": []}


def _generate(store, **kwargs):
    from src.generation import generate_plan_workouts
    params = dict(
        user_id="user-1", plan_id="plan-1", start_date=MONDAY, total_days=14,
        profile={}, preferences={"days_per_week": 3}, store=store,
    )
    params.update(kwargs)
    return generate_plan_workouts(**params)


# ═══════════════════════════════════════════════════════════════════════
# PAYLOAD MAPPING
# ═══════════════════════════════════════════════════════════════════════

class TestTemplateToPlanExercises:

    def test_payload_fields(self):
        from src.generation import template_to_plan_exercises
        from src.templates import normalize_template
        rows = template_to_plan_exercises(normalize_template(_template("a")))
        squat, rdl = rows
        assert squat["exercise_id"] == "ex-squat"
        assert squat["muscle_groups"] == ["legs", "core"]
        assert squat["movement_pattern"] == "squat"
        assert squat["sets"] == 4
        assert squat["reps"] == "8-12"
        assert squat["display_order"] == 1
        assert squat["source_template_exercise_id"] == "a-1"
        assert rdl["movement_pattern"] == "hinge"
        assert rdl["sets"] == 3
        assert rdl["reps"] == "6-8"

    def test_display_order_defaults_to_position(self):
        from src.generation import template_to_plan_exercises
        rows = template_to_plan_exercises({"exercises": [{"exercise_id": "x"}, {"exercise_id": "y"}]})
        assert [r["display_order"] for r in rows] == [1, 2]
        assert rows[0]["name"] == "Exercise"


# ═══════════════════════════════════════════════════════════════════════
# ORCHESTRATOR
# ═══════════════════════════════════════════════════════════════════════

class TestGeneratePlanWorkouts:

    def test_one_write_per_scheduled_date(self):
        store = FakeStore(templates=[_template("a"), _template("b"), _template("c")])
        result = _generate(store)
        assert result["succeeded"] == 6
        assert result["total"] == 6
        assert result["failed"] == 0
        dates = [w["date"] for w in store.writes]
        assert dates == ["2024-03-04", "2024-03-06", "2024-03-08", "2024-03-11", "2024-03-13", "2024-03-15"]

    def test_round_robin_across_scheduled_days(self):
        store = FakeStore(templates=[_template("a"), _template("b"), _template("c")])
        _generate(store)
        assert [w["template_id"] for w in store.writes] == ["a", "b", "c", "a", "b", "c"]
        assert store.writes[0]["title"] == "Template a"

    def test_split_rotation_tags(self):
        store = FakeStore(templates=[_template("up", ("upper",)), _template("low", ("lower",))])
        _generate(store, total_days=7, preferences={"training_split": "upper_lower", "days_per_week": 4})
        assert [w["template_id"] for w in store.writes] == ["up", "low", "up", "low"]

    def test_cadence_inferred_from_split(self):
        store = FakeStore(templates=[_template("a")])
        result = _generate(store, total_days=7, preferences={}, profile={"training_split": "full_body"})
        assert result["total"] == 3

    def test_string_cadence_accepted(self):
        store = FakeStore(templates=[_template("a")])
        result = _generate(store, total_days=7, preferences={"days_per_week": "5"})
        assert result["total"] == 5

    def test_failed_date_counted_and_run_continues(self, capsys):
        store = FakeStore(templates=[_template("a")], fail_dates={"2024-03-06"})
        result = _generate(store)
        assert result["succeeded"] == 5
        assert result["failed"] == 1
        assert result["total"] == 6
        failed = [r for r in result["results"] if r["status"] == "failed"]
        assert failed[0]["date"] == "2024-03-06"
        assert "socket closed" in failed[0]["error"]
        assert "❌" in capsys.readouterr().out

    def test_empty_template_skipped(self):
        store = FakeStore(templates=[_template("empty", exercises=[])])
        result = _generate(store)
        assert result["skipped"] == 6
        assert result["total"] == 0
        assert store.writes == []

    def test_catalog_fetch_failure_propagates(self):
        from src.errors import CatalogFetchError
        store = FakeStore(catalog_error=TimeoutError("read timed out"))
        with pytest.raises(CatalogFetchError, match="read timed out"):
            _generate(store)
        assert store.writes == []

    def test_nothing_to_schedule(self):
        from src.errors import NoCandidateAvailable
        with pytest.raises(NoCandidateAvailable):
            _generate(FakeStore())

    def test_cancelled_before_dispatch(self):
        store = FakeStore(templates=[_template("a")])
        cancel = threading.Event()
        cancel.set()
        result = _generate(store, cancel_event=cancel)
        assert result["cancelled"] == 6
        assert result["succeeded"] == 0
        assert store.writes == []

    def test_cancelled_mid_run_keeps_finished_writes(self):
        cancel = threading.Event()

        class CancellingStore(FakeStore):
            def replace_plan_exercises_for_date(self, *args, **kwargs):
                super().replace_plan_exercises_for_date(*args, **kwargs)
                cancel.set()

        store = CancellingStore(templates=[_template("a")])
        result = _generate(store, cancel_event=cancel)
        assert result["succeeded"] == 1
        assert result["cancelled"] == 5
        assert [w["date"] for w in store.writes] == ["2024-03-04"]

    def test_concurrent_writes(self):
        store = FakeStore(templates=[_template("a"), _template("b")], fail_dates={"2024-03-13"})
        result = _generate(store, max_workers=4)
        assert result["succeeded"] == 5
        assert result["failed"] == 1
        assert sorted(w["date"] for w in store.writes) == [
            "2024-03-04", "2024-03-06", "2024-03-08", "2024-03-11", "2024-03-15",
        ]
        assert [r["date"] for r in result["results"]][0] == "2024-03-04"

    def test_plan_day_locks_scoped_to_run(self):
        from src import generation
        assert not hasattr(generation, "_plan_day_locks")
        locks = generation.PlanDayLocks()
        assert locks.get("p1", "2024-03-04") is locks.get("p1", "2024-03-04")
        assert locks.get("p1", "2024-03-04") is not locks.get("p1", "2024-03-06")
        assert locks.get("p2", "2024-03-04") is not locks.get("p1", "2024-03-04")
        assert len(locks) == 3
        assert len(generation.PlanDayLocks()) == 0

    def test_pin_templates(self):
        store = FakeStore(templates=[_template("a"), _template("b")])
        _generate(store, pin_templates=True)
        assert store.pinned == {"full_body": "a"}
        assert {w["template_id"] for w in store.writes} == {"a"}

    def test_stored_template_map_used(self):
        store = FakeStore(templates=[_template("a"), _template("b")])
        _generate(store, template_map={"full_body": "b"})
        assert {w["template_id"] for w in store.writes} == {"b"}

    def test_zero_days(self):
        store = FakeStore(templates=[_template("a")])
        result = _generate(store, total_days=0)
        assert result["total"] == 0
        assert result["results"] == []


# ═══════════════════════════════════════════════════════════════════════
# GENERIC BLUEPRINT FALLBACK
# ═══════════════════════════════════════════════════════════════════════

CATALOG = [
    _catalog_exercise("e1", "Back Squat", ["Quads", "Glutes"]),
    _catalog_exercise("e2", "Bench Press", ["Chest"]),
    _catalog_exercise("e3", "Barbell Row", ["Lats"]),
    _catalog_exercise("e4", "Overhead Press", ["Shoulders"]),
    _catalog_exercise("e5", "Leg Curl", ["Hamstrings"]),
    _catalog_exercise("e6", "Push-up", ["Chest"]),
    _catalog_exercise("e7", "Plank", ["Core"]),
]


class TestBlueprints:

    def test_muscle_index(self):
        from src.blueprints import build_muscle_index
        index = build_muscle_index(CATALOG)
        assert [e["id"] for e in index["chest"]] == ["e2", "e6"]
        assert [e["id"] for e in index["glutes"]] == ["e1"]

    def test_generic_blueprints_chunk_muscles(self):
        from src.blueprints import build_generic_blueprints
        blueprints = build_generic_blueprints(CATALOG)
        # 7 distinct muscles in chunks of 3
        assert [b["key"] for b in blueprints] == ["auto_1", "auto_2", "auto_3"]
        assert blueprints[0]["primary_muscles"] == ["quads", "glutes", "chest"]
        assert blueprints[2]["primary_muscles"] == ["core"]
        assert blueprints[0]["title"] == "Session 1"

    def test_no_muscles_no_blueprints(self):
        from src.blueprints import build_generic_blueprints
        assert build_generic_blueprints([_catalog_exercise("e1", "Mystery", [])]) == []

    def test_pick_fills_target_without_repeats(self):
        from src.blueprints import build_generic_blueprints, build_muscle_index, pick_exercises_for_blueprint
        blueprint = build_generic_blueprints(CATALOG)[0]
        picked = pick_exercises_for_blueprint(blueprint, build_muscle_index(CATALOG), CATALOG, 0)
        ids = [e["id"] for e in picked]
        assert len(ids) == 5
        assert len(set(ids)) == 5
        assert ids[:2] == ["e1", "e6"]

    def test_seed_rotates_bucket_choice(self):
        from src.blueprints import build_muscle_index, pick_exercises_for_blueprint
        blueprint = {"primary_muscles": ["chest"], "accessory_muscles": [], "target_exercises": 1}
        index = build_muscle_index(CATALOG)
        assert pick_exercises_for_blueprint(blueprint, index, CATALOG, 0)[0]["id"] == "e2"
        assert pick_exercises_for_blueprint(blueprint, index, CATALOG, 1)[0]["id"] == "e6"

    def test_orchestrator_falls_back_to_blueprints(self):
        store = FakeStore(exercises=CATALOG)
        result = _generate(store)
        assert store.exercise_catalog_calls == 1
        assert result["succeeded"] == 6
        assert [w["title"] for w in store.writes[:4]] == ["Session 1", "Session 2", "Session 3", "Session 1"]
        assert store.writes[0]["template_id"] is None
        assert all(e["exercise_id"] for w in store.writes for e in w["exercises"])

    def test_template_catalog_preferred(self):
        store = FakeStore(templates=[_template("a")], exercises=CATALOG)
        _generate(store)
        assert store.exercise_catalog_calls == 0
