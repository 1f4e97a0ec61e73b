"""Lazy NONL marker scanning over document text."""

from __future__ import annotations

import re
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from nonl.services.lexical_classifier import LexicalClassifier
from nonl.services.syntax_profiles import SyntaxProfile
from nonl.utils.logging import logger

# NONL is an acronym; the marker is matched case-sensitively on purpose.
NONL_MARKER = "NONL:"

_BLANK_RE = re.compile(r"[ \t]*")


class ScanDirection(Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


FORWARD = ScanDirection.FORWARD
BACKWARD = ScanDirection.BACKWARD


@dataclass(frozen=True, slots=True)
class Occurrence:
    """One NONL tag in a document.

    ``span``, ``marker_span`` and ``identifier_span`` are half-open ``str``
    index ranges (code points, not UTF-8 bytes). ``line`` is 1-based and
    counts ``\\n`` only.
    """

    document_id: str
    span: tuple[int, int]
    marker_span: tuple[int, int]
    identifier_span: tuple[int, int]
    identifier: str
    line: int

    @property
    def start(self) -> int:
        return self.span[0]

    @property
    def end(self) -> int:
        return self.span[1]

    def contains(self, offset: int) -> bool:
        return self.span[0] <= offset < self.span[1]

    def to_dict(self) -> dict:
        return {
            "document_id": self.document_id,
            "start": self.span[0],
            "end": self.span[1],
            "identifier": self.identifier,
            "line": self.line,
        }


class _LineTable:
    def __init__(self, text: str) -> None:
        self._starts = [0]
        self._starts.extend(match.end() for match in re.finditer(r"\n", text))

    def line_for(self, offset: int) -> int:
        return bisect_right(self._starts, offset)


def scan(
    text: str,
    profile: SyntaxProfile,
    bound: int | None = None,
    direction: ScanDirection = FORWARD,
    *,
    start: int | None = None,
    document_id: str = "",
    classifier: LexicalClassifier | None = None,
) -> Iterator[Occurrence]:
    """Yield NONL occurrences that sit inside comments or strings.

    Forward scans run from ``start`` (default 0) and stop before any marker
    whose end would pass ``bound``. Backward scans run from ``start`` (default
    end of text) toward the beginning and stop before any marker starting
    ahead of ``bound``. Markers found in code are skipped.
    """
    source = str(text or "")
    if classifier is None:
        classifier = LexicalClassifier(profile, source)
    elif classifier.text != source:
        classifier.update(source)

    backward = direction is BACKWARD
    if backward:
        return _scan_backward(source, classifier, bound, start, document_id)
    return _scan_forward(source, classifier, bound, start, document_id)


def _scan_forward(
    text: str,
    classifier: LexicalClassifier,
    bound: int | None,
    start: int | None,
    document_id: str,
) -> Iterator[Occurrence]:
    limit = len(text) if bound is None else max(0, min(int(bound), len(text)))
    pos = 0 if start is None else max(0, int(start))
    lines: _LineTable | None = None
    while True:
        hit = text.find(NONL_MARKER, pos)
        if hit < 0 or hit + len(NONL_MARKER) > limit:
            return
        pos = hit + len(NONL_MARKER)
        if not classifier.is_comment_or_string(hit):
            logger.trace("NONL marker at {} is in code; skipped", hit)
            continue
        if lines is None:
            lines = _LineTable(text)
        yield _make_occurrence(text, classifier, hit, document_id, lines)


def _scan_backward(
    text: str,
    classifier: LexicalClassifier,
    bound: int | None,
    start: int | None,
    document_id: str,
) -> Iterator[Occurrence]:
    floor = 0 if bound is None else max(0, int(bound))
    end = len(text) if start is None else max(0, min(int(start), len(text)))
    lines: _LineTable | None = None
    while end > 0:
        hit = text.rfind(NONL_MARKER, 0, end)
        if hit < 0 or hit < floor:
            return
        # Overlapping markers cannot occur, so the next search ends at this hit.
        end = hit
        if not classifier.is_comment_or_string(hit):
            logger.trace("NONL marker at {} is in code; skipped", hit)
            continue
        if lines is None:
            lines = _LineTable(text)
        yield _make_occurrence(text, classifier, hit, document_id, lines)


def _make_occurrence(
    text: str,
    classifier: LexicalClassifier,
    hit: int,
    document_id: str,
    lines: _LineTable,
) -> Occurrence:
    marker_end = hit + len(NONL_MARKER)
    key_start = _BLANK_RE.match(text, marker_end).end()

    line_end = text.find("\n", marker_end)
    key_end = len(text) if line_end < 0 else line_end
    enclosing = classifier.span_at(hit)
    if enclosing is not None and enclosing.content_end >= key_start:
        key_end = min(key_end, enclosing.content_end)
    key_end = max(key_start, key_end)

    identifier = text[key_start:key_end].rstrip()
    key_end = key_start + len(identifier)
    return Occurrence(
        document_id=document_id,
        span=(hit, max(marker_end, key_end)),
        marker_span=(hit, marker_end),
        identifier_span=(key_start, key_end),
        identifier=identifier,
        line=lines.line_for(hit),
    )


def scan_all(
    text: str,
    profile: SyntaxProfile,
    *,
    document_id: str = "",
    classifier: LexicalClassifier | None = None,
) -> list[Occurrence]:
    return list(scan(text, profile, document_id=document_id, classifier=classifier))


def occurrence_at(occurrences: Iterable[Occurrence], offset: int) -> Occurrence | None:
    for occurrence in occurrences:
        if occurrence.contains(offset):
            return occurrence
    return None
