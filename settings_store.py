"""
settings_store.py  –  Typed key/value settings backed by one JSON file
======================================================================

Each key is declared in SCHEMA with a type code and a default:

  · "s"   a string
  · "as"  an array of strings

Unset keys read as their default.  Every read goes to the file.  A write
re-reads the file, replaces only the key being set, swaps the file in
atomically (temp file + os.replace) and notifies the handlers connected
to that key.  reload() compares the file against the values this store
last saw or notified about and notifies only the keys that differ, so a
watcher that calls it after our own write is a no-op.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ENV_SETTINGS_PATH = "DEJA_WINDOW_SETTINGS"
APP_DIR_NAME = "deja-window"
SETTINGS_FILE_NAME = "settings.json"

SCHEMA: Dict[str, Dict[str, Any]] = {
    "window-app-configs": {"type": "s", "default": "[]"},
    "known-wm-classes": {"type": "as", "default": []},
}

ChangeHandler = Callable[["SettingsStore", str], None]


def default_settings_path() -> str:
    env = os.environ.get(ENV_SETTINGS_PATH, "").strip()
    if env:
        return os.path.abspath(os.path.expanduser(env))
    base = os.environ.get("XDG_CONFIG_HOME", "").strip() or os.path.join(os.path.expanduser("~"), ".config")
    return os.path.join(base, APP_DIR_NAME, SETTINGS_FILE_NAME)


def _check_type(key: str, type_code: str, value: Any) -> None:
    if type_code == "s":
        if not isinstance(value, str):
            raise TypeError(f"{key} expects a string, got {type(value).__name__}")
        return
    if type_code == "as":
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise TypeError(f"{key} expects a list of strings")
        return
    raise TypeError(f"Unknown schema type for {key}: {type_code}")


def _read_file(path: str) -> Dict[str, Any]:
    """Returns the raw key/value mapping on disk, {} when missing or corrupt."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as exc:
        logger.error("Could not read settings file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.error("Settings file %s does not hold a JSON object; using defaults", path)
        return {}
    return data


class SettingsStore:
    def __init__(self, path: Optional[str] = None) -> None:
        self.path = os.path.abspath(path) if path else default_settings_path()
        self._handlers: Dict[int, tuple[str, ChangeHandler]] = {}
        self._next_handler_id = 1
        # Last values seen or notified; only used to tell reload() what changed.
        self._values: Dict[str, Any] = self._load()

    # ── reads ──────────────────────────────────────────────────────────────

    def _schema(self, key: str) -> Dict[str, Any]:
        try:
            return SCHEMA[key]
        except KeyError:
            raise KeyError(f"Unknown settings key: {key}") from None

    def _load(self) -> Dict[str, Any]:
        return self._valid_values(_read_file(self.path))

    def get_value(self, key: str) -> Any:
        entry = self._schema(key)
        return self._load().get(key, entry["default"])

    def get_string(self, key: str) -> str:
        if self._schema(key)["type"] != "s":
            raise TypeError(f"{key} is not a string key")
        return self.get_value(key)

    def get_strv(self, key: str) -> List[str]:
        if self._schema(key)["type"] != "as":
            raise TypeError(f"{key} is not a string-array key")
        return self.get_value(key)

    # ── writes ─────────────────────────────────────────────────────────────

    def set_value(self, key: str, value: Any) -> None:
        entry = self._schema(key)
        _check_type(key, entry["type"], value)
        if isinstance(value, tuple):
            value = list(value)
        on_disk = _read_file(self.path)
        on_disk[key] = value
        self._write(on_disk)
        self._values[key] = value
        self._emit(key)

    def set_string(self, key: str, value: str) -> None:
        if self._schema(key)["type"] != "s":
            raise TypeError(f"{key} is not a string key")
        self.set_value(key, value)

    def set_strv(self, key: str, value: List[str]) -> None:
        if self._schema(key)["type"] != "as":
            raise TypeError(f"{key} is not a string-array key")
        self.set_value(key, value)

    def reset(self, key: str) -> None:
        self._schema(key)
        on_disk = _read_file(self.path)
        if key not in on_disk:
            return
        del on_disk[key]
        self._write(on_disk)
        self._values.pop(key, None)
        self._emit(key)

    def _write(self, on_disk: Dict[str, Any]) -> None:
        folder = os.path.dirname(self.path)
        os.makedirs(folder, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".settings-", suffix=".json", dir=folder)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(on_disk, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        logger.debug("Wrote settings to %s", self.path)

    # ── external edits ─────────────────────────────────────────────────────

    def _valid_values(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for key, entry in SCHEMA.items():
            if key not in raw:
                continue
            try:
                _check_type(key, entry["type"], raw[key])
            except TypeError as exc:
                logger.warning("Ignoring persisted value: %s", exc)
                continue
            values[key] = list(raw[key]) if isinstance(raw[key], list) else raw[key]
        return values

    def reload(self) -> List[str]:
        """Re-read the file; notify and return the keys whose value changed."""
        fresh = self._load()
        changed = [
            key for key in SCHEMA
            if fresh.get(key, SCHEMA[key]["default"]) != self._values.get(key, SCHEMA[key]["default"])
        ]
        self._values = fresh
        if changed:
            logger.debug("Settings changed on disk: %s", ", ".join(changed))
        for key in changed:
            self._emit(key)
        return changed

    # ── notifications ──────────────────────────────────────────────────────

    def connect(self, key: str, handler: ChangeHandler) -> int:
        self._schema(key)
        handler_id = self._next_handler_id
        self._next_handler_id += 1
        self._handlers[handler_id] = (key, handler)
        return handler_id

    def disconnect(self, handler_id: int) -> None:
        if self._handlers.pop(handler_id, None) is None:
            raise KeyError(f"No handler with id {handler_id}")

    def handler_count(self, key: Optional[str] = None) -> int:
        if key is None:
            return len(self._handlers)
        return sum(1 for k, _ in self._handlers.values() if k == key)

    def _emit(self, key: str) -> None:
        for handler_key, handler in list(self._handlers.values()):
            if handler_key == key:
                handler(self, key)
