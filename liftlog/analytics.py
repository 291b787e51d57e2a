"""
LiftLog Analytics — Pandas Analytics Engine

Every function here is a pure function of (history, now): the history snapshot
is only read, and results are plain dicts/lists of Python scalars so they can
go straight to a chart, a summary card or an export.

Exercise matching uses the exercise id; names are only used for display.
"""
import copy
import math
from datetime import datetime

import numpy as np
import pandas as pd

from liftlog.config import (
    CONSISTENCY_GRID_DAYS,
    CONSISTENCY_THRESHOLDS,
    DEFAULT_END_TIME,
    DEFAULT_TREND_LIMIT,
    DEFAULT_WINDOW_DAYS,
    FATIGUED,
    FATIGUED_HOURS,
    FRESH,
    RECOVERING,
    RECOVERING_HOURS,
    RECOVERY_SEVERITY,
    VOLUME_PER_XP,
    XP_CURVE_FACTOR,
    get_exercise_name,
    get_muscle_groups,
)
from liftlog.history import chronological, parse_hhmm, sessions_to_dataframe, to_number


def _round_half(value: float, ndigits: int = 0) -> float:
    """Round to `ndigits` decimals, halves away from zero (2.5 → 3, 49.5 → 50)."""
    factor = 10 ** ndigits
    return math.copysign(math.floor(abs(value) * factor + 0.5), value) / factor


def _plain(value) -> int | float:
    """numpy/pandas scalar → int when integral, float otherwise."""
    value = float(value)
    return int(value) if value.is_integer() else value


def _resolve_now(now: datetime | None) -> pd.Timestamp:
    now = now or datetime.now()
    if getattr(now, "tzinfo", None) is not None:
        now = now.astimezone().replace(tzinfo=None)
    return pd.Timestamp(now)


def _fmt(day: pd.Timestamp) -> str:
    return day.strftime("%Y-%m-%d")


def _exercise_sessions(history: dict, exercise_id: str) -> pd.DataFrame:
    """Dated sessions of one exercise in date order, with per-session e1RM."""
    sessions = (history or {}).get(exercise_id) or []
    df = chronological(sessions_to_dataframe({exercise_id: sessions}))
    df["e1rm"] = [
        max((estimated_one_rep_max(w, r) for w, r in zip(weights, reps)), default=0)
        for weights, reps in zip(df["weights"], df["reps_list"])
    ]
    return df


# ═══════════════════════════════════════════════════════════════════════
# 1. AGGREGATION — trailing windows and the per-date volume map
# ═══════════════════════════════════════════════════════════════════════

def aggregate_window(
    history: dict,
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: datetime | None = None,
) -> list[dict]:
    """
    Daily totals for the `window_days` calendar days ending at `now`.

    Always returns exactly `window_days` entries, oldest first, zero-filled
    for rest days. Sessions outside the window are ignored.
    """
    if window_days <= 0:
        return []
    days = pd.date_range(end=_resolve_now(now).normalize(), periods=window_days, freq="D")

    df = sessions_to_dataframe(history).dropna(subset=["day"])
    daily = (
        df[df["day"].isin(days)]
        .groupby("day")
        .agg(volume=("volume_kg", "sum"), reps=("total_reps", "sum"), sets=("n_sets", "sum"))
        .reindex(days, fill_value=0)
    )
    return [
        {
            "date": _fmt(day),
            "label": day.strftime("%a"),
            "volume": _plain(row["volume"]),
            "reps": _plain(row["reps"]),
            "sets": int(row["sets"]),
        }
        for day, row in daily.iterrows()
    ]


def aggregate_by_date(history: dict) -> dict:
    """
    Total volume per calendar date across all exercises, unbounded.

    A date with a logged session is present even if its volume is 0.
    Sessions with an unparseable date are skipped.
    """
    df = sessions_to_dataframe(history).dropna(subset=["day"])
    if df.empty:
        return {}
    daily = df.groupby("day")["volume_kg"].sum().sort_index()
    return {_fmt(day): _plain(vol) for day, vol in daily.items()}


def consistency_intensity(volume: float) -> int:
    """Heat-map bucket 0-4 for a day's volume."""
    level = 0
    for i, threshold in enumerate(CONSISTENCY_THRESHOLDS, start=1):
        if volume > threshold:
            level = i
    return level


def consistency_grid(
    history: dict,
    days: int = CONSISTENCY_GRID_DAYS,
    now: datetime | None = None,
) -> list[dict]:
    """Trailing `days` cells of the consistency heat map, oldest first."""
    if days <= 0:
        return []
    by_date = aggregate_by_date(history)
    cells = []
    for day in pd.date_range(end=_resolve_now(now).normalize(), periods=days, freq="D"):
        volume = by_date.get(_fmt(day), 0)
        cells.append({"date": _fmt(day), "volume": volume, "intensity": consistency_intensity(volume)})
    return cells


def history_summary(history: dict) -> dict:
    """Lifetime totals shown on the dashboard and profile."""
    df = sessions_to_dataframe(history)
    if df.empty:
        return {"total_workouts": 0, "total_volume": 0, "total_sets": 0,
                "total_reps": 0, "exercises_trained": 0}
    return {
        "total_workouts": len(df),
        "total_volume": _plain(df["volume_kg"].sum()),
        "total_sets": int(df["n_sets"].sum()),
        "total_reps": _plain(df["total_reps"].sum()),
        "exercises_trained": int(df["exercise_id"].nunique()),
    }


def exercise_consistency(history: dict, exercise_id: str) -> dict:
    """Number of logged sessions per stored date for one exercise."""
    df = sessions_to_dataframe({exercise_id: (history or {}).get(exercise_id) or []})
    df = df.dropna(subset=["date"])
    if df.empty:
        return {}
    counts = df.groupby("date").size().sort_index()
    return {str(date): int(n) for date, n in counts.items()}


def workouts_on(history: dict, date: str, catalog: dict | None = None) -> list[dict]:
    """Every exercise session logged on `date` (calendar drill-down)."""
    workouts = []
    for exercise_id, sessions in (history or {}).items():
        for session in sessions or []:
            if isinstance(session, dict) and session.get("date") == date:
                workouts.append({
                    "exercise_id": exercise_id,
                    "exercise_name": get_exercise_name(exercise_id, catalog),
                    **copy.deepcopy(session),
                })
    return workouts


# ═══════════════════════════════════════════════════════════════════════
# 2. RECOVERY — per-muscle-group status from the latest session
# ═══════════════════════════════════════════════════════════════════════

def _end_offset(end_time) -> pd.Timedelta:
    hours, minutes = parse_hhmm(end_time, default=DEFAULT_END_TIME)
    return pd.Timedelta(hours=hours, minutes=minutes)


def classify_recovery(
    history: dict,
    now: datetime | None = None,
    catalog: dict | None = None,
) -> dict:
    """
    Recovery status per muscle group.

    Each exercise contributes the status of its most recent session (date +
    endTime, midday when endTime is missing) to every muscle group of its
    category; a group keeps the most severe status it receives. Exercises
    without muscle groups land in "Other".
    """
    now_ts = _resolve_now(now)
    df = sessions_to_dataframe(history).dropna(subset=["day"]).copy()
    if df.empty:
        return {}
    df["finished_at"] = df["day"] + df["end_time"].map(_end_offset)
    latest = df.loc[df.groupby("exercise_id", sort=False)["finished_at"].idxmax()].copy()
    elapsed = (now_ts - latest["finished_at"]) / pd.Timedelta(hours=1)
    latest["state"] = np.select(
        [elapsed < FATIGUED_HOURS, elapsed < RECOVERING_HOURS],
        [FATIGUED, RECOVERING],
        default=FRESH,
    )

    status = {}
    for exercise_id, state in zip(latest["exercise_id"], latest["state"]):
        state = str(state)
        for group in get_muscle_groups(exercise_id, catalog):
            current = status.get(group)
            if current is None or RECOVERY_SEVERITY[state] > RECOVERY_SEVERITY[current]:
                status[group] = state
    return status


# ═══════════════════════════════════════════════════════════════════════
# 3. PROGRESSION — e1RM, volume and max-weight series
# ═══════════════════════════════════════════════════════════════════════

def estimated_one_rep_max(weight, reps) -> int | float:
    """Epley: weight·(1 + reps/30), rounded; a single is its own 1RM."""
    weight, reps = to_number(weight), to_number(reps)
    if not weight or not reps:
        return 0
    if reps == 1:
        return _plain(weight)
    return int(_round_half(weight * (1 + reps / 30)))


def one_rep_max_trend(history: dict, exercise_id: str) -> list[dict]:
    """Best e1RM per session, ascending by date."""
    df = _exercise_sessions(history, exercise_id)
    return [{"date": row["date"], "value": _plain(row["e1rm"])} for _, row in df.iterrows()]


def _recent(df: pd.DataFrame, limit: int | None) -> pd.DataFrame:
    if limit is None:
        return df
    if limit <= 0:
        return df.iloc[0:0]
    return df.tail(limit)


def volume_trend(history: dict, exercise_id: str, limit: int | None = DEFAULT_TREND_LIMIT) -> list[dict]:
    """Session volume for the last `limit` sessions, oldest first."""
    df = _recent(_exercise_sessions(history, exercise_id), limit)
    return [{"date": row["date"], "volume": _plain(row["volume_kg"])} for _, row in df.iterrows()]


def max_weight_trend(history: dict, exercise_id: str, limit: int | None = DEFAULT_TREND_LIMIT) -> list[dict]:
    """Heaviest set weight for the last `limit` sessions, oldest first."""
    df = _recent(_exercise_sessions(history, exercise_id), limit)
    return [{"date": row["date"], "max_weight": _plain(row["max_weight"])} for _, row in df.iterrows()]


# ═══════════════════════════════════════════════════════════════════════
# 4. SESSION DELTA — last session vs the one before
# ═══════════════════════════════════════════════════════════════════════

def _session_metrics(row: pd.Series) -> dict:
    reps = float(row["total_reps"])
    volume = float(row["volume_kg"])
    return {
        "sets": int(row["n_sets"]),
        "reps": _plain(reps),
        "volume": _plain(volume),
        "avg_weight_per_rep": _plain(volume / reps) if reps else 0,
    }


def _delta(current: float, previous: float) -> dict:
    diff = _plain(current - previous)
    percent = 0.0 if previous == 0 else _round_half(diff / previous * 100, 1)
    return {"diff": diff, "percent": percent, "is_positive": diff >= 0}


def compare_last_two_sessions(history: dict, exercise_id: str) -> dict | None:
    """
    Compare the two most recent sessions of an exercise.

    Returns None with fewer than two sessions. Otherwise the current session's
    sets, reps, volume and average weight per rep, plus a diff/percent/
    is_positive entry per metric against the previous session.
    """
    df = _exercise_sessions(history, exercise_id)
    if len(df) < 2:
        return None
    previous, current = df.iloc[-2], df.iloc[-1]
    prev_metrics = _session_metrics(previous)
    curr_metrics = _session_metrics(current)
    return {
        "date": current["date"],
        "previous_date": previous["date"],
        **curr_metrics,
        "diffs": {k: _delta(curr_metrics[k], prev_metrics[k]) for k in curr_metrics},
    }


# ═══════════════════════════════════════════════════════════════════════
# 5. GAMIFICATION — lifetime volume → level
# ═══════════════════════════════════════════════════════════════════════

def xp_required(level: int) -> int:
    """XP needed to reach `level` on the quadratic curve."""
    return XP_CURVE_FACTOR * (level - 1) ** 2


def compute_level(history: dict) -> dict:
    """
    Level, XP and progress towards the next level from lifetime volume.

    100 kg of volume = 1 XP; level L starts at 25·(L−1)² XP.
    """
    df = sessions_to_dataframe(history)
    total_volume = _plain(df["volume_kg"].sum()) if not df.empty else 0
    xp = math.floor(total_volume / VOLUME_PER_XP)
    level = math.isqrt(max(xp, 0) // XP_CURVE_FACTOR) + 1

    floor_xp, next_level_xp = xp_required(level), xp_required(level + 1)
    progress = (xp - floor_xp) / (next_level_xp - floor_xp) * 100
    return {
        "level": level,
        "xp": xp,
        "total_volume": total_volume,
        "progress": min(100.0, max(0.0, progress)),
        "next_level_xp": next_level_xp,
    }
