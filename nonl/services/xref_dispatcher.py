"""Search request construction for NONL cross references."""

from __future__ import annotations

import re
from dataclasses import dataclass

from nonl.services.tag_scanner import NONL_MARKER


@dataclass(frozen=True, slots=True)
class SearchRequest:
    pattern: str
    scope: str
    identifier: str
    case_sensitive: bool = True

    def to_dict(self) -> dict:
        return {
            "pattern": self.pattern,
            "scope": self.scope,
            "identifier": self.identifier,
            "case_sensitive": self.case_sensitive,
        }


def pattern_for_identifier(identifier: str) -> str:
    # The identifier is literal text, never a sub-pattern.
    return re.escape(NONL_MARKER) + r"[ \t]*" + re.escape(str(identifier or ""))


def dispatch(identifier: str, scope_root: str) -> SearchRequest:
    """Build the search request that finds every site tagged ``identifier``."""
    key = str(identifier or "")
    return SearchRequest(
        pattern=pattern_for_identifier(key),
        scope=str(scope_root or ""),
        identifier=key,
    )


def compile_request(request: SearchRequest) -> re.Pattern[str]:
    flags = 0 if request.case_sensitive else re.IGNORECASE
    return re.compile(request.pattern, flags)
