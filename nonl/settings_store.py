from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

from nonl.settings_models import default_project_settings
from nonl.utils.logging import logger

PROJECT_SETTINGS_FILENAME = ".nonl/settings.json"


class SettingsStoreError(RuntimeError):
    """Raised when a settings file cannot be saved."""


def deep_merge_defaults(data: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Merge defaults into data without overwriting explicitly provided values."""
    merged = deepcopy(dict(data))
    for key, default_value in defaults.items():
        if key not in merged:
            merged[key] = deepcopy(default_value)
            continue
        current = merged[key]
        if isinstance(current, dict) and isinstance(default_value, dict):
            merged[key] = deep_merge_defaults(current, default_value)
    return merged


def dot_get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    if not key:
        return data
    current: Any = data
    for part in key.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


def dot_set(data: dict[str, Any], key: str, value: Any) -> None:
    if not key:
        raise ValueError("Key cannot be empty.")
    current: dict[str, Any] = data
    parts = key.split(".")
    for part in parts[:-1]:
        next_value = current.get(part)
        if not isinstance(next_value, dict):
            next_value = {}
            current[part] = next_value
        current = next_value
    current[parts[-1]] = value


class JsonSettingsStore:
    """Project settings file merged over defaults, addressed by dotted keys."""

    def __init__(self, path: Path, defaults: Mapping[str, Any], *, persistent: bool = True) -> None:
        self.path = Path(path)
        self.defaults: dict[str, Any] = deepcopy(dict(defaults))
        self.data: dict[str, Any] = {}
        self.dirty: bool = False
        self.last_error: str | None = None
        self.persistent: bool = bool(persistent)

    def load(self) -> dict[str, Any]:
        if not self.persistent:
            self.data = deep_merge_defaults({}, self.defaults)
            self.dirty = False
            self.last_error = None
            return self.data

        missing = not self.path.exists()
        loaded: dict[str, Any] = {}
        self.last_error = None

        if not missing:
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                raw = None
                self.last_error = str(exc)
            if isinstance(raw, dict):
                loaded = raw
            elif self.last_error is None:
                self.last_error = (
                    f"Settings root in '{self.path}' must be a JSON object, "
                    f"found {type(raw).__name__}."
                )

        if self.last_error is not None:
            # Keep defaults without mutating the invalid source file.
            logger.warning("Ignoring settings file {}: {}", self.path, self.last_error)

        self.data = deep_merge_defaults(loaded, self.defaults)
        self.dirty = missing
        return self.data

    def save(self) -> None:
        if not self.persistent:
            self.dirty = False
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self.data, indent=2, sort_keys=True), encoding="utf-8")
            self.dirty = False
            self.last_error = None
        except OSError as exc:
            raise SettingsStoreError(
                f"Could not write settings file '{self.path}': {exc}"
            ) from exc

    def get(self, key: str, default: Any = None) -> Any:
        return dot_get(self.data, key, default)

    def set(self, key: str, value: Any) -> bool:
        current = self.get(key)
        if current == value:
            return False
        dot_set(self.data, key, value)
        self.dirty = True
        return True


def project_settings_store(project_root: str | Path, *, persistent: bool = True) -> JsonSettingsStore:
    store = JsonSettingsStore(
        Path(project_root) / PROJECT_SETTINGS_FILENAME,
        default_project_settings(),
        persistent=persistent,
    )
    store.load()
    return store
