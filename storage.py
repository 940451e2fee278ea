import json
import logging
import os

from stats import default_stats, normalize_stats

STATS_KEY = "sudoku_stats"
SETTINGS_KEY = "sudoku_settings"
SETTINGS_VERSION = 1

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Key-value stores
# ---------------------------------------------------------------------------


class MemoryStore:
    """Dict-backed store. Values are kept as JSON text so that what comes
    back out is a fresh copy, like with the file store."""

    def __init__(self, data=None):
        self._data = {}
        for key, value in (data or {}).items():
            self.set(key, value)

    def get(self, key):
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key, value):
        self._data[key] = json.dumps(value)


class JsonFileStore:
    """Store that keeps each key in its own ``<key>.json`` file."""

    def __init__(self, directory):
        self.directory = directory

    def _path(self, key):
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key):
        filepath = self._path(key)
        if not os.path.exists(filepath):
            return None
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable record %s: %s", filepath, e)
            return None

    def set(self, key, value):
        os.makedirs(self.directory, exist_ok=True)
        with open(self._path(key), "w", encoding="utf-8") as f:
            json.dump(value, f, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def load_stats(store):
    try:
        raw = store.get(STATS_KEY)
    except ValueError as e:
        logger.warning("Malformed stats record, using defaults: %s", e)
        return default_stats()
    if raw is not None and not isinstance(raw, dict):
        logger.warning("Stats record is not an object, using defaults")
    return normalize_stats(raw)


def save_stats(store, stats):
    store.set(STATS_KEY, stats)


def default_settings():
    return {"version": SETTINGS_VERSION, "auto_check": True, "mistake_limit": 0}


def normalize_settings(raw):
    settings = default_settings()
    if not isinstance(raw, dict):
        return settings
    auto_check = raw.get("auto_check")
    if isinstance(auto_check, bool):
        settings["auto_check"] = auto_check
    limit = raw.get("mistake_limit")
    if isinstance(limit, int) and not isinstance(limit, bool) and limit >= 0:
        settings["mistake_limit"] = limit
    return settings


def load_settings(store):
    try:
        raw = store.get(SETTINGS_KEY)
    except ValueError as e:
        logger.warning("Malformed settings record, using defaults: %s", e)
        return default_settings()
    if raw is not None and not isinstance(raw, dict):
        logger.warning("Settings record is not an object, using defaults")
    return normalize_settings(raw)


def save_settings(store, settings):
    store.set(SETTINGS_KEY, settings)
