from __future__ import annotations

from copy import deepcopy
from typing import Any, Literal, TypedDict

from nonl.services.file_search_service import DEFAULT_EXCLUDE_DIRS

SearchBackendName = Literal["builtin", "none"]


class SearchSettings(TypedDict, total=False):
    backend: SearchBackendName
    scope: str
    max_results: int
    exclude_dirs: list[str]


class NonlSettings(TypedDict, total=False):
    enabled: bool
    include_kinds: list[str]
    exclude_kinds: list[str]
    debounce_ms: int
    run_on_idle: bool
    run_on_save: bool
    search: SearchSettings


class ProjectSettings(TypedDict, total=False):
    nonl: NonlSettings


DEFAULT_NONL_SETTINGS: NonlSettings = {
    "enabled": True,
    "include_kinds": ["prog"],
    "exclude_kinds": [],
    "debounce_ms": 400,
    "run_on_idle": True,
    "run_on_save": True,
    "search": {
        "backend": "builtin",
        "scope": "",
        "max_results": 20000,
        "exclude_dirs": list(DEFAULT_EXCLUDE_DIRS),
    },
}

DEFAULT_PROJECT_SETTINGS: ProjectSettings = {
    "nonl": DEFAULT_NONL_SETTINGS,
}


def default_nonl_settings() -> dict[str, Any]:
    return deepcopy(dict(DEFAULT_NONL_SETTINGS))


def default_project_settings() -> dict[str, Any]:
    return deepcopy(dict(DEFAULT_PROJECT_SETTINGS))
