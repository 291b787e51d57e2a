"""
LiftLog Analytics — History snapshots

Loads and persists the workout history, flattens it into pandas frames for the
analytics engine, and applies the set-level edits of the logging screen.
Every edit returns a new history; the input snapshot is never mutated.
"""
import copy
import hashlib
import json
import math
import re
from datetime import datetime
from pathlib import Path

import pandas as pd

from liftlog.config import HISTORY_PATH, CUSTOM_EXERCISES_PATH

_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")
_NUMBER_PREFIX = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

SESSION_COLUMNS = [
    "exercise_id", "date", "day", "start_time", "end_time", "session_index",
    "weights", "reps_list", "n_sets", "total_reps", "volume_kg", "max_weight",
]
SET_COLUMNS = [
    "exercise_id", "date", "day", "start_time", "end_time", "set_index",
    "weight", "reps", "volume_kg", "note", "time",
]


def to_number(value) -> float:
    """
    Lenient numeric parse. Strings count by their leading number ("60kg" → 60,
    " 62.5 " → 62.5); booleans, text without one and non-finite values are 0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        match = _NUMBER_PREFIX.match(value)
        if not match:
            return 0.0
        number = float(match.group(0))
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
    return number if math.isfinite(number) else 0.0


def parse_hhmm(value, default: str | None = None) -> tuple[int, int] | None:
    """Parse "HH:MM" into (hours, minutes); malformed values fall back to default."""
    match = _HHMM.match(value.strip()) if isinstance(value, str) else None
    if match:
        return int(match.group(1)), int(match.group(2))
    if default is not None:
        return parse_hhmm(default)
    return None


# ═════════════════════════════════════════════════════════════════════
# 1. SNAPSHOT STORAGE
# ═════════════════════════════════════════════════════════════════════

def load_history(path: str | Path = HISTORY_PATH, missing_ok: bool = False) -> dict:
    """Read a history snapshot from a JSON file."""
    path = Path(path)
    if missing_ok and not path.exists():
        return {}
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"History snapshot must be a JSON object, got {type(data).__name__}")
    return data


def save_history(history: dict, path: str | Path = HISTORY_PATH) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(history, f, ensure_ascii=False, indent=2)
    tmp.replace(path)


def load_custom_exercises(path: str | Path = CUSTOM_EXERCISES_PATH) -> list[dict]:
    """User-defined exercises ([{id, name, category}]); missing file → []."""
    path = Path(path)
    if not path.exists():
        return []
    with path.open(encoding="utf-8") as f:
        data = json.load(f)
    return [ex for ex in data if isinstance(ex, dict)] if isinstance(data, list) else []


class HistoryRepository:
    """File-backed history store handing out independent snapshots."""

    def __init__(self, path: str | Path = HISTORY_PATH):
        self.path = Path(path)

    def snapshot(self) -> dict:
        return copy.deepcopy(load_history(self.path, missing_ok=True))

    def commit(self, history: dict) -> None:
        save_history(history, self.path)


def snapshot_fingerprint(history: dict) -> str:
    """Stable hash of a history snapshot (key order does not matter)."""
    canonical = json.dumps(history, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def snapshot_key(history: dict, now: datetime | None = None, bucket_minutes: int = 5) -> tuple:
    """
    Memoization key for analytics results: snapshot fingerprint plus a coarse
    time bucket, so recovery status still refreshes as time passes.
    """
    now = now or datetime.now()
    bucket = int(now.timestamp() // (bucket_minutes * 60)) if bucket_minutes > 0 else 0
    return snapshot_fingerprint(history), bucket


# ═════════════════════════════════════════════════════════════════════
# 2. FLATTENING — history → DataFrames
# ═════════════════════════════════════════════════════════════════════

def _parse_day(date_str) -> pd.Timestamp:
    if not isinstance(date_str, str):
        return pd.NaT
    return pd.to_datetime(date_str, format="%Y-%m-%d", errors="coerce")


def sessions_to_dataframe(history: dict) -> pd.DataFrame:
    """
    One row per session per exercise.

    weight/reps are lenient-parsed (non-numeric → 0); `day` is NaT when the
    stored date is malformed. `session_index` is the position in the stored
    list and breaks ties between same-day rows.
    """
    rows = []
    for exercise_id, sessions in (history or {}).items():
        for idx, session in enumerate(sessions or []):
            if not isinstance(session, dict):
                continue
            sets = [s for s in session.get("sets") or [] if isinstance(s, dict)]
            weights = [to_number(s.get("weight")) for s in sets]
            reps_list = [to_number(s.get("reps")) for s in sets]
            date_str = session.get("date")
            rows.append({
                "exercise_id": exercise_id,
                "date": date_str,
                "day": _parse_day(date_str),
                "start_time": session.get("startTime"),
                "end_time": session.get("endTime"),
                "session_index": idx,
                "weights": weights,
                "reps_list": reps_list,
                "n_sets": len(sets),
                "total_reps": sum(reps_list),
                "volume_kg": sum(w * r for w, r in zip(weights, reps_list)),
                "max_weight": max(weights) if weights else 0.0,
            })
    df = pd.DataFrame(rows, columns=SESSION_COLUMNS)
    df["day"] = pd.to_datetime(df["day"])
    return df


def history_to_dataframe(history: dict) -> pd.DataFrame:
    """One row per logged set — the export-friendly view of the history."""
    rows = []
    for exercise_id, sessions in (history or {}).items():
        for session in sessions or []:
            if not isinstance(session, dict):
                continue
            for set_idx, s in enumerate(session.get("sets") or []):
                if not isinstance(s, dict):
                    continue
                rows.append({
                    "exercise_id": exercise_id,
                    "date": session.get("date"),
                    "start_time": session.get("startTime"),
                    "end_time": session.get("endTime"),
                    "set_index": set_idx,
                    "weight": s.get("weight"),
                    "reps": s.get("reps"),
                    "note": s.get("note"),
                    "time": s.get("time"),
                })
    df = pd.DataFrame(rows, columns=[c for c in SET_COLUMNS if c not in ("day", "volume_kg")])
    df["weight"] = df["weight"].map(to_number).astype(float)
    df["reps"] = df["reps"].map(to_number).astype(float)
    df["volume_kg"] = df["weight"] * df["reps"]
    df["day"] = pd.to_datetime(df["date"].map(_parse_day))
    return df[SET_COLUMNS]


def chronological(sessions_df: pd.DataFrame) -> pd.DataFrame:
    """Dated sessions sorted by calendar day; stored order breaks ties, undated rows are dropped."""
    dated = sessions_df.dropna(subset=["day"])
    if dated.empty:
        return dated.reset_index(drop=True)
    return dated.sort_values(["day", "session_index"], kind="stable").reset_index(drop=True)


# ═════════════════════════════════════════════════════════════════════
# 3. EDITS — new snapshot per call
# ═════════════════════════════════════════════════════════════════════

def _clock(now: datetime) -> str:
    return now.strftime("%H:%M")


def _find_session(sessions: list, date: str) -> int:
    for i, session in enumerate(sessions):
        if session.get("date") == date:
            return i
    return -1


def log_sets(
    history: dict,
    exercise_id: str,
    sets: list[dict],
    date: str | None = None,
    now: datetime | None = None,
) -> dict:
    """
    Log sets for an exercise on a date.

    A second log on the same date extends the existing session (and moves its
    endTime); otherwise a new session is appended. Sets without a `time` are
    stamped with the current clock time. Logging no sets changes nothing.
    """
    if not sets:
        return copy.deepcopy(history or {})
    now = now or datetime.now()
    date = date or now.date().isoformat()
    stamped = [{**s, "time": s.get("time") or _clock(now)} for s in sets]

    new_history = copy.deepcopy(history or {})
    sessions = new_history.setdefault(exercise_id, [])
    idx = _find_session(sessions, date)
    if idx >= 0:
        session = sessions[idx]
        session["sets"] = list(session.get("sets") or []) + stamped
        session["endTime"] = _clock(now)
    else:
        sessions.append({
            "date": date,
            "startTime": _clock(now),
            "endTime": _clock(now),
            "sets": stamped,
        })
    return new_history


def update_set(
    history: dict,
    exercise_id: str,
    date: str,
    set_index: int,
    weight=None,
    reps=None,
    note: str | None = None,
) -> dict:
    """Replace fields of one logged set. Raises KeyError/IndexError for unknown targets."""
    new_history = copy.deepcopy(history)
    sessions = new_history.get(exercise_id) or []
    idx = _find_session(sessions, date)
    if idx < 0:
        raise KeyError(f"No {exercise_id} session on {date}")
    sets = sessions[idx].get("sets") or []
    if not 0 <= set_index < len(sets):
        raise IndexError(f"Set {set_index} out of range for {exercise_id} on {date}")
    if weight is not None:
        sets[set_index]["weight"] = weight
    if reps is not None:
        sets[set_index]["reps"] = reps
    if note is not None:
        sets[set_index]["note"] = note
    return new_history


def remove_set(history: dict, exercise_id: str, date: str, set_index: int) -> dict:
    """
    Remove one logged set. The session goes with its last set, and the
    exercise key goes with its last session.
    """
    new_history = copy.deepcopy(history)
    sessions = new_history.get(exercise_id) or []
    idx = _find_session(sessions, date)
    if idx < 0:
        raise KeyError(f"No {exercise_id} session on {date}")
    sets = sessions[idx].get("sets") or []
    if not 0 <= set_index < len(sets):
        raise IndexError(f"Set {set_index} out of range for {exercise_id} on {date}")
    del sets[set_index]
    if not sets:
        del sessions[idx]
    if not sessions:
        new_history.pop(exercise_id, None)
    return new_history
