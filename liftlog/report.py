"""
LiftLog Analytics — Progress Report
Run manually: python -m liftlog.report --history workout_history.json
"""
import argparse
import sys
from datetime import datetime
from pathlib import Path

from liftlog.analytics import (
    aggregate_window, classify_recovery, compare_last_two_sessions,
    compute_level, estimated_one_rep_max, history_summary, one_rep_max_trend,
)
from liftlog.config import (
    CUSTOM_EXERCISES_PATH, DEFAULT_WINDOW_DAYS, HISTORY_PATH,
    build_catalog, get_exercise_name,
)
from liftlog.history import HistoryRepository, history_to_dataframe, load_custom_exercises

STATUS_ICONS = {"Fatigued": "🔴", "Recovering": "🟠", "Fresh": "🟢"}


def run_report(
    history: dict,
    catalog: dict | None = None,
    exercise_id: str | None = None,
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: datetime | None = None,
) -> dict:
    """
    Print the progress report for a history snapshot:
    1. Level and lifetime totals
    2. Trailing window volume
    3. Muscle recovery
    4. Per-exercise 1RM trend and last-session delta
    """
    now = now or datetime.now()
    catalog = catalog or build_catalog()
    print("📊 LiftLog Report")
    print(f"   {now.isoformat(timespec='minutes')}")

    # 1. Level
    level = compute_level(history)
    summary = history_summary(history)
    print(f"\n🏆 Level {level['level']} — {level['xp']} XP "
          f"({level['progress']:.0f}% to {level['next_level_xp']} XP)")
    print(f"   Workouts: {summary['total_workouts']}")
    print(f"   Lifetime volume: {summary['total_volume']:,} kg")

    if not summary["total_workouts"]:
        print("\n   No workouts logged yet. Done.")
        return {"level": level, "summary": summary, "window": [], "recovery": {}, "exercises": {}}

    # 2. Window
    window = aggregate_window(history, window_days, now=now)
    print(f"\n📅 Last {window_days} days:")
    for day in window:
        if day["sets"]:
            print(f"   {day['date']} {day['label']} | {day['sets']} sets | "
                  f"{day['reps']} reps | {day['volume']:,} kg")
    if not any(day["sets"] for day in window):
        print("   Nothing logged in this window")

    # 3. Recovery
    recovery = classify_recovery(history, now=now, catalog=catalog)
    print("\n💪 Recovery:")
    for group, state in recovery.items():
        print(f"   {STATUS_ICONS.get(state, '⬜')} {group}: {state}")

    # 4. Exercises
    exercise_ids = [exercise_id] if exercise_id else sorted(history)
    exercises = {}
    print("\n📈 Progression:")
    for ex_id in exercise_ids:
        trend = one_rep_max_trend(history, ex_id)
        if not trend:
            print(f"   ⚠️  {get_exercise_name(ex_id, catalog)}: no sessions")
            continue
        delta = compare_last_two_sessions(history, ex_id)
        exercises[ex_id] = {"trend": trend, "delta": delta}
        best = max(point["value"] for point in trend)
        print(f"   {get_exercise_name(ex_id, catalog)}: e1RM {trend[-1]['value']} kg "
              f"(best {best}) over {len(trend)} sessions")
        if delta:
            vol = delta["diffs"]["volume"]
            arrow = "▲" if vol["is_positive"] else "▼"
            print(f"      last vs previous: {arrow} {abs(vol['diff']):,} kg volume ({vol['percent']}%)")

    return {"level": level, "summary": summary, "window": window,
            "recovery": recovery, "exercises": exercises}


def export_csv(history: dict, out_dir: str | Path, now: datetime | None = None) -> Path:
    """Write every logged set to out_dir/liftlog_<date>.csv."""
    now = now or datetime.now()
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    df = history_to_dataframe(history)
    df["e1rm"] = [estimated_one_rep_max(w, r) for w, r in zip(df["weight"], df["reps"])]
    path = out_dir / f"liftlog_{now.strftime('%Y-%m-%d')}.csv"
    df.drop(columns=["day"]).to_csv(path, index=False)
    print(f"💾 Export: {len(df)} sets → {path}")
    return path


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Print a LiftLog progress report")
    parser.add_argument("--history", default=HISTORY_PATH, help="History snapshot JSON")
    parser.add_argument("--custom-exercises", default=CUSTOM_EXERCISES_PATH,
                        help="User-defined exercises JSON")
    parser.add_argument("--exercise", help="Only report this exercise id")
    parser.add_argument("--window", type=int, default=DEFAULT_WINDOW_DAYS, help="Window size in days")
    parser.add_argument("--now", type=datetime.fromisoformat, help="Report as of this ISO timestamp")
    parser.add_argument("--export-csv", metavar="DIR", help="Also export every set as CSV")
    args = parser.parse_args(argv)

    if not Path(args.history).exists():
        print(f"❌ History not found: {args.history}", file=sys.stderr)
        return 1

    try:
        history = HistoryRepository(args.history).snapshot()
        catalog = build_catalog(load_custom_exercises(args.custom_exercises))
        run_report(history, catalog, exercise_id=args.exercise,
                   window_days=args.window, now=args.now)
        if args.export_csv:
            print()
            export_csv(history, args.export_csv, now=args.now)
    except (OSError, ValueError) as e:
        print(f"\n❌ Report FAILED: {e}", file=sys.stderr)
        return 1

    print("\nDone.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
