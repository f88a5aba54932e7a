"""
FitArc — Workout Analytics

build_workout_analytics() is the per-session derivation (volume maps,
tracked-lift bests, strength snapshots). The DataFrame views below it
aggregate those logs for progress screens.
"""
import pandas as pd
import numpy as np

from src.config import MUSCLE_GROUPS, MOVEMENT_PATTERNS
from src.classifiers import (
    infer_lift_id,
    infer_movement_pattern,
    empty_muscle_volume,
    empty_movement_volume,
    estimate_one_rep_max,
)


def _weight(set_entry: dict) -> float:
    # Missing weight counts as bodyweight (0) so it can still be the heaviest set
    return set_entry.get("weight") or 0


def _reps(set_entry: dict) -> float:
    return set_entry.get("reps") or 0


def heaviest_set(set_details: list[dict]) -> dict | None:
    """Heaviest set by weight, first occurrence wins ties."""
    best = None
    for s in set_details:
        if best is None or _weight(s) > _weight(best):
            best = s
    return best


# ═══════════════════════════════════════════════════════════════════════
# 1. CORE: per-session logs and strength snapshots
# ═══════════════════════════════════════════════════════════════════════

def build_workout_analytics(sessions: list[dict]) -> dict:
    """
    Derive one workout log per session (even when empty) and zero or more
    strength snapshots per session.

    Set count for volume is the number of logged sets, or 1 when nothing
    was logged. Every muscle group of the exercise and its movement pattern
    (stored, else inferred from the name) get +set_count.
    """
    workout_logs = []
    strength_snapshots = []

    for session in sessions:
        muscle_volume = empty_muscle_volume()
        movement_volume = empty_movement_volume()
        muscles_hit = []
        patterns_hit = []
        best_by_lift = {}
        total_sets = 0
        total_volume = 0

        for idx, exercise in enumerate(session.get("exercises") or []):
            set_details = exercise.get("set_details") or []
            set_count = len(set_details) or 1
            total_sets += set_count

            for group in exercise.get("muscle_groups") or []:
                if group not in muscle_volume:
                    continue
                muscle_volume[group] += set_count
                if group not in muscles_hit:
                    muscles_hit.append(group)

            pattern = exercise.get("movement_pattern")
            if pattern not in MOVEMENT_PATTERNS:
                pattern = infer_movement_pattern(exercise.get("name"))
            if pattern:
                movement_volume[pattern] += set_count
                if pattern not in patterns_hit:
                    patterns_hit.append(pattern)

            for s in set_details:
                if _weight(s) > 0 and _reps(s) > 0:
                    total_volume += _weight(s) * _reps(s)

            lift = infer_lift_id(exercise.get("name"))
            best = heaviest_set(set_details)
            if not lift or best is None:
                continue

            weight, reps = _weight(best), _reps(best)
            current = best_by_lift.get(lift)
            if current is None or weight > current["weight"]:
                best_by_lift[lift] = {"lift": lift, "weight": weight, "reps": reps}

            exercise_key = exercise.get("exercise_id") or idx
            strength_snapshots.append({
                "id": f"{session['id']}-{exercise_key}-{idx}-{lift}",
                "session_id": session["id"],
                "plan_id": session.get("plan_id"),
                "exercise_id": exercise.get("exercise_id"),
                "exercise_name": exercise.get("name"),
                "lift": lift,
                "date": session["date"],
                "weight": weight,
                "reps": reps,
                "total_sets": set_count,
                "total_reps": sum(_reps(s) for s in set_details),
                "e1rm": estimate_one_rep_max(weight, reps),
            })

        workout_logs.append({
            "id": session["id"],
            "session_id": session["id"],
            "plan_id": session.get("plan_id"),
            "date": session["date"],
            "muscle_volume": muscle_volume,
            "movement_volume": movement_volume,
            "lifts": list(best_by_lift.values()),
            "muscles_hit": muscles_hit,
            "patterns_hit": patterns_hit,
            "total_sets": total_sets,
            "total_volume": total_volume,
            "is_completed": total_sets > 0,
        })

    return {"workout_logs": workout_logs, "strength_snapshots": strength_snapshots}


# ═══════════════════════════════════════════════════════════════════════
# 2. FLAT VIEWS
# ═══════════════════════════════════════════════════════════════════════

def workout_logs_to_dataframe(workout_logs: list[dict]) -> pd.DataFrame:
    """One row per session: date, totals and one column per muscle group / pattern."""
    rows = []
    for log in workout_logs:
        row = {
            "session_id": log["session_id"],
            "plan_id": log.get("plan_id"),
            "date": pd.Timestamp(log["date"]),
            "total_sets": log["total_sets"],
            "total_volume": log["total_volume"],
        }
        row.update({f"muscle_{g}": log["muscle_volume"][g] for g in MUSCLE_GROUPS})
        row.update({f"pattern_{p}": log["movement_volume"][p] for p in MOVEMENT_PATTERNS})
        rows.append(row)

    df = pd.DataFrame(rows)
    if not df.empty:
        df = df.sort_values("date").reset_index(drop=True)
        df["week"] = df["date"].dt.to_period("W-SUN").dt.start_time
    return df


def snapshots_to_dataframe(strength_snapshots: list[dict]) -> pd.DataFrame:
    df = pd.DataFrame(strength_snapshots)
    if not df.empty:
        df["date"] = pd.to_datetime(df["date"])
        df = df.sort_values(["date", "lift"], kind="stable").reset_index(drop=True)
    return df


# ═══════════════════════════════════════════════════════════════════════
# 3. MUSCLE GROUP & MOVEMENT BALANCE
# ═══════════════════════════════════════════════════════════════════════

def muscle_volume_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Total sets per muscle group with share of all sets. Always all six groups."""
    totals = {g: int(df[f"muscle_{g}"].sum()) if not df.empty else 0 for g in MUSCLE_GROUPS}
    mg = pd.DataFrame({"muscle_group": list(totals), "total_sets": list(totals.values())})
    grand = mg["total_sets"].sum()
    mg["pct_sets"] = (mg["total_sets"] / grand * 100).round(1) if grand else 0.0
    return mg.sort_values("total_sets", ascending=False, kind="stable").reset_index(drop=True)


def weekly_muscle_volume(df: pd.DataFrame) -> pd.DataFrame:
    """Sets per muscle group per calendar week (weeks start Monday)."""
    if df.empty:
        return pd.DataFrame()
    cols = [f"muscle_{g}" for g in MUSCLE_GROUPS]
    weekly = df.groupby("week")[cols].sum()
    weekly.columns = list(MUSCLE_GROUPS)
    return weekly


def movement_balance(df: pd.DataFrame) -> dict:
    """
    Push/pull and squat/hinge balance from movement-pattern set counts.
    A ratio is None when its denominator is zero.
    """
    totals = {p: int(df[f"pattern_{p}"].sum()) if not df.empty else 0 for p in MOVEMENT_PATTERNS}
    push = totals["horizontal_push"] + totals["vertical_push"]
    pull = totals["horizontal_pull"] + totals["vertical_pull"]
    return {
        "totals": totals,
        "push_sets": push,
        "pull_sets": pull,
        "push_pull_ratio": round(push / pull, 2) if pull else None,
        "squat_hinge_ratio": round(totals["squat"] / totals["hinge"], 2) if totals["hinge"] else None,
    }


# ═══════════════════════════════════════════════════════════════════════
# 4. STRENGTH PROGRESSION
# ═══════════════════════════════════════════════════════════════════════

def lift_progression(snapshots_df: pd.DataFrame) -> dict:
    """
    Per tracked lift: best set per session date with a running max e1RM and
    the e1RM trend (kg per session, least squares over the last 6 dates).
    """
    if snapshots_df.empty:
        return {}
    result = {}
    for lift in snapshots_df["lift"].unique():
        ldf = snapshots_df[snapshots_df["lift"] == lift]
        idx = ldf.groupby("date")["weight"].idxmax()
        best = ldf.loc[idx, ["date", "exercise_name", "weight", "reps", "e1rm"]]
        best = best.sort_values("date").reset_index(drop=True)
        best["running_max"] = best["e1rm"].cummax()

        recent = best.tail(6)
        if len(recent) >= 2:
            x = np.arange(len(recent), dtype=float)
            y = recent["e1rm"].values.astype(float)
            slope = float(np.polyfit(x, y, 1)[0])
        else:
            slope = 0.0

        result[lift] = {
            "history": best,
            "best_e1rm": float(best["e1rm"].max()),
            "trend_slope": round(slope, 2),
        }
    return result


def pr_table(snapshots_df: pd.DataFrame) -> pd.DataFrame:
    """Best e1RM per lift, falling back to heaviest weight for bodyweight-only lifts."""
    if snapshots_df.empty:
        return pd.DataFrame()
    ranked = snapshots_df.sort_values(["e1rm", "weight", "date"], ascending=[False, False, True], kind="stable")
    prs = ranked.drop_duplicates("lift")[["lift", "exercise_name", "weight", "reps", "e1rm", "date"]]
    prs = prs.sort_values("e1rm", ascending=False, kind="stable").reset_index(drop=True)
    prs.index = prs.index + 1
    return prs
