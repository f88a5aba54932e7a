"""
FitArc — Command-line Pipeline
Run manually or from a scheduled job:
    python -m src.pipeline generate --user <uid> --plan <plan_id> --start 2026-03-02 --days 28
    python -m src.pipeline progress --user <uid> --plan <plan_id>
"""
import argparse
import sys
from datetime import datetime

from src import supabase_client
from src.config import APP_TIME_ZONE, DEFAULT_PLAN_DAYS
from src.generation import generate_plan_workouts
from src.progress import build_progress_report, load_recent_sessions
from src.analytics import (
    lift_progression,
    movement_balance,
    pr_table,
    snapshots_to_dataframe,
    workout_logs_to_dataframe,
)
from src.session_mapper import today_in_time_zone


class DryRunStore:
    """Reads go to Supabase; plan writes are printed instead of sent."""

    def __init__(self, store=supabase_client):
        self._store = store
        self.writes = []

    def fetch_template_catalog(self, user_id):
        return self._store.fetch_template_catalog(user_id)

    def fetch_exercise_catalog(self):
        return self._store.fetch_exercise_catalog()

    def store_template_map(self, user_id, plan_id, template_map):
        print(f"   🏃 DRY RUN: would pin {template_map}")

    def replace_plan_exercises_for_date(self, user_id, plan_id, date, exercises,
                                        source_template_id=None, source_template_title=None):
        self.writes.append({"date": date, "template_id": source_template_id, "exercises": exercises})
        names = ", ".join(e["name"] for e in exercises)
        print(f"   🏃 DRY RUN: {date} → {names}")


def resolve_profile(args, store=supabase_client) -> tuple[dict, dict]:
    """Stored profile with command-line overrides on top."""
    profile = {}
    if args.use_profile:
        profile = store.fetch_user_profile(args.user) or {}
    preferences = dict(profile.pop("preferences", None) or {})
    if args.split:
        preferences["training_split"] = args.split
    if args.days_per_week:
        preferences["days_per_week"] = args.days_per_week
    if args.goal:
        preferences["primary_goal"] = args.goal
    if args.equipment:
        preferences["equipment_level"] = args.equipment
    if args.experience:
        profile["experience_level"] = args.experience
    return profile, preferences


def run_generate(args) -> dict:
    print("🔄 FitArc Generate — Starting...")
    print(f"   {datetime.now().isoformat()}")

    profile, preferences = resolve_profile(args)
    store = DryRunStore() if args.dry_run else supabase_client
    template_map = {} if args.no_pin else supabase_client.fetch_stored_template_map(args.plan)

    result = generate_plan_workouts(
        args.user,
        args.plan,
        args.start or today_in_time_zone(args.tz),
        total_days=args.days,
        profile=profile,
        preferences=preferences,
        store=store,
        template_map=template_map,
        pin_templates=args.pin,
        max_workers=args.workers,
    )

    print(f"\n{'='*50}")
    print(f"📊 {result['succeeded']} of {result['total']} workouts generated")
    if result["skipped"]:
        print(f"   ⏭️ Skipped (empty template): {result['skipped']}")
    if result["failed"]:
        print(f"   ❌ Failed: {result['failed']}")
        for r in result["results"]:
            if r["status"] == "failed":
                print(f"      {r['date']}: {r['error']}")
    return result


def run_progress(args) -> dict:
    print("📈 FitArc Progress — Starting...")
    print(f"\n📥 Fetching the last {args.lookback} days of sessions...")
    sessions = load_recent_sessions(args.user, args.plan, args.tz, lookback_days=args.lookback)
    print(f"   Found {len(sessions)} sessions")

    report = build_progress_report(sessions, time_zone=args.tz)
    consistency = report["consistency"]
    logs_df = workout_logs_to_dataframe(report["workout_logs"])
    snaps_df = snapshots_to_dataframe(report["strength_snapshots"])

    print(f"\n{'='*50}")
    print(f"🔥 Streak: {consistency['streak']} days")
    print(f"🎯 Adherence: {consistency['adherence_percent']:.0f}%")
    if report["today_session"]:
        print(f"✅ Trained today: {len(report['today_session']['exercises'])} exercises")

    if not logs_df.empty:
        balance = movement_balance(logs_df)
        print(f"\n⚖️ Push/pull: {balance['push_pull_ratio']} | Squat/hinge: {balance['squat_hinge_ratio']}")

    prs = pr_table(snaps_df)
    if not prs.empty:
        print(f"\n🏆 Top lifts:")
        progression = lift_progression(snaps_df)
        for _, row in prs.iterrows():
            slope = progression.get(row["lift"], {}).get("trend_slope")
            trend = f", trend {slope:+.1f}/session" if slope is not None else ""
            print(f"   {row['lift']}: {row['weight']}kg x{row['reps']} (e1RM {row['e1rm']}{trend})")
    return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FitArc plan generation and progress")
    sub = parser.add_subparsers(dest="command")

    for cmd in ("generate", "progress"):
        p = sub.add_parser(cmd)
        p.add_argument("--user", required=True, help="User id")
        p.add_argument("--plan", required=True, help="Plan id")
        p.add_argument("--tz", default=APP_TIME_ZONE, help="IANA time zone for calendar dates")

    p = sub.choices["generate"]
    p.add_argument("--start", default=None, help="First plan date, YYYY-MM-DD (default: today)")
    p.add_argument("--days", type=int, default=DEFAULT_PLAN_DAYS, help="Number of calendar days to cover")
    p.add_argument("--split", default=None, help="full_body | upper_lower | push_pull_legs | bro_split")
    p.add_argument("--days-per-week", type=int, default=None, dest="days_per_week")
    p.add_argument("--goal", default=None)
    p.add_argument("--equipment", default=None, help="bodyweight | dumbbells | full_gym")
    p.add_argument("--experience", default=None, help="beginner | intermediate | advanced")
    p.add_argument("--workers", type=int, default=1, help="Concurrent plan-day writes")
    p.add_argument("--no-profile", action="store_false", dest="use_profile",
                   help="Ignore the stored profile, use only the flags given")
    p.add_argument("--pin", action="store_true", help="Pin the chosen template per rotation tag on the plan")
    p.add_argument("--no-pin", action="store_true", dest="no_pin", help="Ignore templates already pinned on the plan")
    p.add_argument("--dry-run", action="store_true", dest="dry_run", help="Print plan days instead of writing them")

    p = sub.choices["progress"]
    p.add_argument("--lookback", type=int, default=14, help="Days of history to load")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2

    try:
        if args.command == "generate":
            run_generate(args)
        else:
            run_progress(args)
    except Exception as e:
        print(f"\n❌ {args.command} FAILED: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
