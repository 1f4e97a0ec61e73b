"""Safe file read helpers."""

from __future__ import annotations

_BINARY_SNIFF_BYTES = 4096


def read_text(path: str, *, encoding: str = "utf-8", errors: str = "strict") -> str:
    """Read ``path`` with line endings left untranslated."""
    with open(path, encoding=encoding, errors=errors, newline="") as handle:
        return handle.read()


def looks_binary(path: str) -> bool:
    with open(path, "rb") as handle:
        chunk = handle.read(_BINARY_SNIFF_BYTES)
    return b"\x00" in chunk
