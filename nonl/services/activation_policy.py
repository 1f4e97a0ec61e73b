"""Include/exclude activation predicate over document kinds."""

from __future__ import annotations

from typing import Iterable, Mapping

from nonl.services.language_id import kind_lineage
from nonl.services.syntax_profiles import profile_for_kind


def _normalized(entries: Iterable[str] | None) -> set[str]:
    return {str(entry or "").strip().lower() for entry in (entries or ()) if str(entry or "").strip()}


def should_activate(
    document_kind: str | None,
    include_set: Iterable[str] | None,
    exclude_set: Iterable[str] | None,
    *,
    parents: Mapping[str, str] | None = None,
) -> bool:
    lineage = set(kind_lineage(document_kind, parents=parents))
    if not lineage:
        return False
    if lineage & _normalized(exclude_set):
        return False
    return bool(lineage & _normalized(include_set))


def document_activates(
    document_kind: str | None,
    include_set: Iterable[str] | None,
    exclude_set: Iterable[str] | None,
) -> bool:
    """``should_activate`` plus the requirement that a syntax profile exists."""
    if profile_for_kind(document_kind) is None:
        return False
    return should_activate(document_kind, include_set, exclude_set)
