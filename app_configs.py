"""Per-application window restore configs stored as a JSON array in one settings key.

Every operation reads the list fresh from the store and writes the whole
list back.  There is no transaction around read-modify-write: the last
writer wins.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from settings_store import SettingsStore

logger = logging.getLogger(__name__)

CONFIGS_KEY = "window-app-configs"
KNOWN_CLASSES_KEY = "known-wm-classes"

RESTORE_FIELDS = ("restore_size", "restore_pos", "restore_maximized")
BOOL_FIELDS = RESTORE_FIELDS + ("is_regex",)
REGEX_SUFFIX = " (Regex)"


@dataclass
class WindowAppConfig:
    wm_class: str
    restore_size: bool = False
    restore_pos: bool = False
    restore_maximized: bool = False
    is_regex: bool = False
    # Fields written by someone else; carried through untouched.
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "WindowAppConfig":
        extra = {k: v for k, v in raw.items() if k != "wm_class" and k not in BOOL_FIELDS}
        return cls(
            wm_class=raw["wm_class"],
            restore_size=bool(raw.get("restore_size", False)),
            restore_pos=bool(raw.get("restore_pos", False)),
            restore_maximized=bool(raw.get("restore_maximized", False)),
            is_regex=bool(raw.get("is_regex", False)),
            extra=extra,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "wm_class": self.wm_class,
            "restore_size": self.restore_size,
            "restore_pos": self.restore_pos,
            "restore_maximized": self.restore_maximized,
            "is_regex": self.is_regex,
        })
        return data


def parse_configs(text: str) -> List[WindowAppConfig]:
    """Decode the persisted string; anything unusable degrades to []."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        logger.error("Error parsing %s: %s", CONFIGS_KEY, exc)
        return []
    if data is None:
        return []
    if not isinstance(data, list):
        logger.error("Error parsing %s: expected a JSON array, got %s", CONFIGS_KEY, type(data).__name__)
        return []

    configs: List[WindowAppConfig] = []
    for idx, raw in enumerate(data):
        if not isinstance(raw, dict) or not isinstance(raw.get("wm_class"), str):
            logger.warning("Dropping malformed %s entry at index %d: %r", CONFIGS_KEY, idx, raw)
            continue
        configs.append(WindowAppConfig.from_dict(raw))
    return configs


def dump_configs(configs: Iterable[WindowAppConfig]) -> str:
    return json.dumps([c.to_dict() for c in configs])


def load_configs(store: SettingsStore) -> List[WindowAppConfig]:
    return parse_configs(store.get_string(CONFIGS_KEY))


def save_configs(store: SettingsStore, configs: Iterable[WindowAppConfig]) -> None:
    store.set_string(CONFIGS_KEY, dump_configs(configs))


def add_config(store: SettingsStore, wm_class: str, is_regex: bool = False) -> bool:
    configs = load_configs(store)
    if any(c.wm_class == wm_class for c in configs):
        return False
    configs.append(WindowAppConfig(wm_class=wm_class, is_regex=bool(is_regex)))
    save_configs(store, configs)
    logger.info("Added window config for %s", wm_class)
    return True


def update_field(store: SettingsStore, wm_class: str, field_name: str, value: bool) -> bool:
    """
    Set one flag on the entry for wm_class and persist the list.

    Returns False without writing when no entry matches.  Raises ValueError
    for a field name that is not one of BOOL_FIELDS.
    """
    if field_name not in BOOL_FIELDS:
        raise ValueError(f"Unknown config field: {field_name}")
    configs = load_configs(store)
    for config in configs:
        if config.wm_class == wm_class:
            setattr(config, field_name, bool(value))
            save_configs(store, configs)
            return True
    return False


def remove_config(store: SettingsStore, wm_class: str) -> None:
    configs = [c for c in load_configs(store) if c.wm_class != wm_class]
    save_configs(store, configs)
    logger.info("Removed window config for %s", wm_class)


def known_wm_classes(store: SettingsStore) -> List[str]:
    return store.get_strv(KNOWN_CLASSES_KEY)


def row_title(config: WindowAppConfig) -> str:
    if config.is_regex:
        return config.wm_class + REGEX_SUFFIX
    return config.wm_class


def find_config(configs: Iterable[WindowAppConfig], wm_class: str) -> Optional[WindowAppConfig]:
    """
    First config that applies to a live window's class.

    Exact entries compare by equality, regex entries by re.search.  A
    pattern that does not compile is logged and never matches.
    """
    for config in configs:
        if not config.is_regex:
            if config.wm_class == wm_class:
                return config
            continue
        try:
            if re.search(config.wm_class, wm_class):
                return config
        except re.error as exc:
            logger.warning("Invalid WM_CLASS pattern %r: %s", config.wm_class, exc)
    return None
