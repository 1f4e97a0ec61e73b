"""Disk-backed recursive search used to resolve NONL cross references."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Iterable

from nonl.services import file_io
from nonl.services.xref_dispatcher import SearchRequest, compile_request
from nonl.utils.logging import logger

DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = (
    ".git",
    ".hg",
    ".svn",
    "__pycache__",
    ".venv",
    "venv",
    "node_modules",
    ".mypy_cache",
    ".pytest_cache",
    ".ruff_cache",
    ".tox",
)


@dataclass(frozen=True, slots=True)
class SearchMatch:
    file_path: str
    line: int
    column: int
    preview: str

    def to_dict(self) -> dict:
        return {
            "file_path": self.file_path,
            "line": self.line,
            "column": self.column,
            "preview": self.preview,
        }


def iter_search_targets(
    scope: str,
    *,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    follow_symlinks: bool = False,
) -> list[str]:
    root = os.path.abspath(str(scope or "."))
    if os.path.isfile(root):
        return [root]
    excluded = {str(name) for name in exclude_dirs if str(name or "").strip()}
    files: list[str] = []
    for walk_root, dirnames, filenames in os.walk(root, topdown=True, followlinks=follow_symlinks):
        dirnames[:] = [name for name in sorted(dirnames) if name not in excluded]
        for filename in sorted(filenames):
            files.append(os.path.join(walk_root, filename))
    return files


def search_indexed_files(
    pattern: re.Pattern[str],
    targets: list[str],
    *,
    max_results: int = 20000,
) -> list[SearchMatch]:
    results: list[SearchMatch] = []
    for file_path in targets:
        try:
            if file_io.looks_binary(file_path):
                continue
            text = file_io.read_text(file_path, encoding="utf-8", errors="ignore")
        except OSError as exc:
            logger.warning("Skipping unreadable file {}: {}", file_path, exc)
            continue
        # Only \n ends a line, as in grep -n and Occurrence.line.
        for line_number, raw_line in enumerate(text.split("\n"), start=1):
            line_text = raw_line[:-1] if raw_line.endswith("\r") else raw_line
            match = pattern.search(line_text)
            if match is None:
                continue
            results.append(
                SearchMatch(
                    file_path=file_path,
                    line=line_number,
                    column=int(match.start()) + 1,
                    preview=line_text.strip()[:320],
                )
            )
            if len(results) >= max_results:
                logger.debug("Search stopped at max_results={}", max_results)
                return results
    return results


def search_project(
    request: SearchRequest,
    *,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    max_results: int = 20000,
) -> list[SearchMatch]:
    targets = iter_search_targets(request.scope, exclude_dirs=exclude_dirs)
    logger.debug("Searching {} file(s) under {} for {!r}", len(targets), request.scope, request.identifier)
    return search_indexed_files(compile_request(request), targets, max_results=max_results)
