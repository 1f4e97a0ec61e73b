"""Language-id resolution helpers for NONL documents.

Pure utility functions that map filenames/extensions to a document kind and
walk the kind hierarchy used by the activation policy.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, Mapping

# Keep ids stable and simple; they double as syntax profile keys.
_EXTENSION_LANGUAGE_IDS: dict[str, str] = {
    ".py": "python",
    ".pyw": "python",
    ".pyi": "python",
    ".pyx": "python",
    ".rs": "rust",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cxx": "cpp",
    ".hxx": "cpp",
    ".cc": "cpp",
    ".hh": "cpp",
    ".java": "java",
    ".go": "go",
    ".cs": "csharp",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".json": "json",
    ".jsonc": "jsonc",
    ".geojson": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".csv": "csv",
    ".html": "html",
    ".htm": "html",
    ".xhtml": "html",
    ".svg": "xml",
    ".xml": "xml",
    ".css": "css",
    ".scss": "scss",
    ".less": "less",
    ".qss": "css",
    ".php": "php",
    ".phtml": "php",
    ".sh": "shell",
    ".bash": "shell",
    ".zsh": "shell",
    ".ksh": "shell",
    ".sql": "sql",
    ".lua": "lua",
    ".el": "elisp",
    ".md": "markdown",
    ".txt": "plaintext",
}

_FILENAME_LANGUAGE_IDS: dict[str, str] = {
    "makefile": "make",
    "gnumakefile": "make",
    "cmakelists.txt": "cmake",
    ".bashrc": "shell",
    ".zshrc": "shell",
}

# Each kind names the kind it derives from; roots map to "".
KIND_PARENTS: dict[str, str] = {
    "prog": "",
    "text": "",
    "data-file": "",
    "python": "prog",
    "c": "prog",
    "cpp": "c",
    "java": "prog",
    "go": "prog",
    "csharp": "prog",
    "rust": "prog",
    "javascript": "prog",
    "javascriptreact": "javascript",
    "typescript": "prog",
    "typescriptreact": "typescript",
    "php": "prog",
    "shell": "prog",
    "make": "prog",
    "cmake": "prog",
    "sql": "prog",
    "lua": "prog",
    "elisp": "prog",
    "css": "prog",
    "scss": "css",
    "less": "css",
    "html": "text",
    "xml": "text",
    "markdown": "text",
    "plaintext": "text",
    "json": "data-file",
    "jsonc": "json",
    "yaml": "data-file",
    "toml": "data-file",
    "csv": "data-file",
}


def language_id_for_path(file_path: str | None, *, default: str = "plaintext") -> str:
    """Return a normalized language id for a file path."""
    path_text = str(file_path or "").strip()
    if not path_text:
        return str(default or "plaintext").strip().lower() or "plaintext"

    name = Path(path_text).name.lower()
    if name in _FILENAME_LANGUAGE_IDS:
        return _FILENAME_LANGUAGE_IDS[name]

    suffix = Path(path_text).suffix.lower()
    if suffix in _EXTENSION_LANGUAGE_IDS:
        return _EXTENSION_LANGUAGE_IDS[suffix]

    return str(default or "plaintext").strip().lower() or "plaintext"


def kind_lineage(kind: str | None, *, parents: Mapping[str, str] | None = None) -> Iterator[str]:
    """Yield ``kind`` followed by each ancestor kind, nearest first."""
    table = KIND_PARENTS if parents is None else parents
    current = str(kind or "").strip().lower()
    seen: set[str] = set()
    while current and current not in seen:
        seen.add(current)
        yield current
        current = str(table.get(current) or "").strip().lower()
