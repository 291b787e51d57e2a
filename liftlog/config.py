"""
LiftLog Analytics — Configuration

Exercise catalog, muscle-group mapping and every tuning constant used by the
analytics engine. History is keyed by exercise id; names are display-only.
"""
import os

# ── Storage paths ────────────────────────────────────────────────────
HISTORY_PATH = os.environ.get("LIFTLOG_HISTORY_PATH", "workout_history.json")
CUSTOM_EXERCISES_PATH = os.environ.get(
    "LIFTLOG_CUSTOM_EXERCISES_PATH", "custom_exercises.json"
)

# ═════════════════════════════════════════════════════════════════════
# EXERCISE DATABASE — keyed by exercise id
#
# Built-in exercises. User-defined exercises are merged on top of this
# with build_catalog(); a custom entry with the same id wins.
# ═════════════════════════════════════════════════════════════════════

CATEGORIES = ("Push", "Pull", "Legs", "Other")

EXERCISE_DB = {
    "bench_press": {"name": "Bench Press", "category": "Push"},
    "incline_dumbell_press": {"name": "Incline Dumbbell Press", "category": "Push"},
    "squat": {"name": "Squat", "category": "Legs"},
    "deadlift": {"name": "Deadlift", "category": "Pull"},
    "pull_up": {"name": "Pull Up", "category": "Pull"},
    "shoulder_press": {"name": "Overhead Press", "category": "Push"},
}

CATEGORY_MUSCLE_GROUPS = {
    "Push": ("Chest", "Triceps", "Shoulders"),
    "Pull": ("Back", "Biceps"),
    "Legs": ("Quads", "Hamstrings", "Calves", "Glutes"),
    "Other": (),
}

# Bucket for exercises whose category maps to no muscle group (or unknown ids)
OTHER_MUSCLE_GROUP = "Other"

# ── Recovery ─────────────────────────────────────────────────────────
FATIGUED = "Fatigued"
RECOVERING = "Recovering"
FRESH = "Fresh"
RECOVERY_SEVERITY = {FRESH: 0, RECOVERING: 1, FATIGUED: 2}

FATIGUED_HOURS = 24
RECOVERING_HOURS = 48
DEFAULT_END_TIME = "12:00"  # midday when a session has no endTime

# ── Gamification ─────────────────────────────────────────────────────
VOLUME_PER_XP = 100  # 100 kg lifted = 1 XP
XP_CURVE_FACTOR = 25  # xp_required(level) = 25 * (level - 1)^2

# ── Windows ──────────────────────────────────────────────────────────
DEFAULT_WINDOW_DAYS = 7
DEFAULT_TREND_LIMIT = 10
CONSISTENCY_GRID_DAYS = 126  # 18 weeks
CONSISTENCY_THRESHOLDS = (0, 5_000, 10_000, 20_000)


# ═════════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS — derive lookups from EXERCISE_DB
# ═════════════════════════════════════════════════════════════════════

def build_catalog(custom_exercises: list | None = None) -> dict:
    """Merge user-defined exercises into the built-in catalog."""
    catalog = {tid: dict(e) for tid, e in EXERCISE_DB.items()}
    for ex in custom_exercises or []:
        ex_id = ex.get("id")
        if not ex_id:
            continue
        catalog[ex_id] = {
            "name": ex.get("name") or ex_id,
            "category": ex.get("category") if ex.get("category") in CATEGORIES else "Other",
        }
    return catalog


def get_category(exercise_id: str, catalog: dict | None = None) -> str:
    """Category for an exercise id; unknown ids are "Other"."""
    entry = (catalog if catalog is not None else EXERCISE_DB).get(exercise_id)
    return entry["category"] if entry else "Other"


def get_muscle_groups(exercise_id: str, catalog: dict | None = None) -> tuple:
    """Muscle groups trained by an exercise, never empty."""
    groups = CATEGORY_MUSCLE_GROUPS.get(get_category(exercise_id, catalog), ())
    return groups or (OTHER_MUSCLE_GROUP,)


def get_exercise_name(exercise_id: str, catalog: dict | None = None) -> str:
    entry = (catalog if catalog is not None else EXERCISE_DB).get(exercise_id)
    return entry["name"] if entry else exercise_id
