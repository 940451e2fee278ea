import math

from generate import DIFFICULTIES, MODES

STATS_VERSION = 1


def _number(value, default):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return value


def _text(value, allowed):
    return value if isinstance(value, str) and value in allowed else ""


def _difficulty_rank(difficulty):
    if difficulty in DIFFICULTIES:
        return DIFFICULTIES.index(difficulty)
    return -1


def default_mode_stats():
    return {
        "solved": 0,
        "current_streak": 0,
        "best_streak": 0,
        "total_time": 0,
        "hardest_difficulty": "",
    }


def default_stats():
    return {
        "version": STATS_VERSION,
        "total_solved": 0,
        "perfect_solved": 0,
        "current_streak": 0,
        "best_streak": 0,
        "total_time": 0,
        "best_time": None,
        "best_mode": "",
        "best_difficulty": "",
        "hardest_mode": "",
        "hardest_difficulty": "",
        "mode_stats": {mode: default_mode_stats() for mode in MODES},
        "best_by_mode": {mode: {d: None for d in DIFFICULTIES} for mode in MODES},
    }


def normalize_stats(raw):
    """Build a complete stats record from whatever was stored.

    Every field is checked on its own; a missing or malformed value falls
    back to its default without discarding the rest of the record.
    """
    stats = default_stats()
    if not isinstance(raw, dict):
        return stats

    for key in ("total_solved", "perfect_solved", "current_streak", "best_streak", "total_time"):
        stats[key] = _number(raw.get(key), 0)
    stats["best_time"] = _number(raw.get("best_time"), None)
    stats["best_mode"] = _text(raw.get("best_mode"), MODES)
    stats["best_difficulty"] = _text(raw.get("best_difficulty"), DIFFICULTIES)
    stats["hardest_mode"] = _text(raw.get("hardest_mode"), MODES)
    stats["hardest_difficulty"] = _text(raw.get("hardest_difficulty"), DIFFICULTIES)

    mode_stats = raw.get("mode_stats")
    if not isinstance(mode_stats, dict):
        mode_stats = {}
    for mode in MODES:
        mode_raw = mode_stats.get(mode)
        if not isinstance(mode_raw, dict):
            mode_raw = {}
        entry = stats["mode_stats"][mode]
        for key in ("solved", "current_streak", "best_streak", "total_time"):
            entry[key] = _number(mode_raw.get(key), 0)
        entry["hardest_difficulty"] = _text(mode_raw.get("hardest_difficulty"), DIFFICULTIES)

    best_by_mode = raw.get("best_by_mode")
    if not isinstance(best_by_mode, dict):
        best_by_mode = {}
    for mode in MODES:
        mode_data = best_by_mode.get(mode)
        if not isinstance(mode_data, dict):
            mode_data = {}
        for difficulty in DIFFICULTIES:
            stats["best_by_mode"][mode][difficulty] = _number(mode_data.get(difficulty), None)

    return stats


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


def record_solve(stats, mode, difficulty, elapsed, mistakes):
    stats["total_solved"] += 1
    if mistakes == 0:
        stats["perfect_solved"] += 1
    stats["current_streak"] += 1
    stats["best_streak"] = max(stats["best_streak"], stats["current_streak"])
    stats["total_time"] += elapsed

    mode_stats = stats["mode_stats"][mode]
    mode_stats["solved"] += 1
    mode_stats["current_streak"] += 1
    mode_stats["best_streak"] = max(mode_stats["best_streak"], mode_stats["current_streak"])
    mode_stats["total_time"] += elapsed

    best_by_mode = stats["best_by_mode"][mode]
    current_best = best_by_mode.get(difficulty)
    if current_best is None or elapsed < current_best:
        best_by_mode[difficulty] = elapsed

    if stats["best_time"] is None or elapsed < stats["best_time"]:
        stats["best_time"] = elapsed
        stats["best_mode"] = mode
        stats["best_difficulty"] = difficulty

    rank = _difficulty_rank(difficulty)
    hardest_rank = _difficulty_rank(stats["hardest_difficulty"])
    if rank > hardest_rank:
        stats["hardest_difficulty"] = difficulty
        stats["hardest_mode"] = mode
    elif rank == hardest_rank and rank != -1:
        # killer outranks classic at the same difficulty
        if stats["hardest_mode"] != "killer" and mode == "killer":
            stats["hardest_mode"] = mode

    if rank > _difficulty_rank(mode_stats["hardest_difficulty"]):
        mode_stats["hardest_difficulty"] = difficulty

    return stats


def reset_streak(stats, mode):
    stats["current_streak"] = 0
    stats["mode_stats"][mode]["current_streak"] = 0
    return stats


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def average_time(stats, mode):
    mode_stats = stats["mode_stats"][mode]
    if mode_stats["solved"] <= 0:
        return None
    return round(mode_stats["total_time"] / mode_stats["solved"])


def format_time(seconds):
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}:{secs:02d}"
