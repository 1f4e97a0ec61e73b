"""Per-document NONL reference index service."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from nonl.services.lexical_classifier import LexicalClassifier
from nonl.services.syntax_profiles import SyntaxProfile
from nonl.services.tag_scanner import Occurrence, occurrence_at, scan
from nonl.utils.logging import logger


@dataclass(frozen=True)
class DocumentIndex:
    document_id: str
    occurrences: tuple[Occurrence, ...] = ()
    by_identifier: Mapping[str, tuple[Occurrence, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def occurrences_of(self, identifier: str) -> tuple[Occurrence, ...]:
        return self.by_identifier.get(str(identifier if identifier is not None else ""), ())

    def identifiers(self) -> list[str]:
        return sorted(self.by_identifier)

    def occurrence_at(self, offset: int) -> Occurrence | None:
        return occurrence_at(self.occurrences, offset)

    def occurrence_sets(self) -> dict[str, frozenset[tuple[int, int]]]:
        return {key: frozenset(item.span for item in items) for key, items in self.by_identifier.items()}

    def __len__(self) -> int:
        return len(self.occurrences)


def build_document_index(
    document_id: str,
    text: str,
    profile: SyntaxProfile,
    *,
    classifier: LexicalClassifier | None = None,
) -> DocumentIndex:
    occurrences: list[Occurrence] = []
    seen_spans: set[tuple[int, int]] = set()
    grouped: dict[str, list[Occurrence]] = {}
    for occurrence in scan(text, profile, document_id=document_id, classifier=classifier):
        if occurrence.span in seen_spans:
            continue
        seen_spans.add(occurrence.span)
        occurrences.append(occurrence)
        grouped.setdefault(occurrence.identifier, []).append(occurrence)

    return DocumentIndex(
        document_id=document_id,
        occurrences=tuple(occurrences),
        by_identifier=MappingProxyType({key: tuple(items) for key, items in grouped.items()}),
    )


def changed_identifiers(old: DocumentIndex | None, new: DocumentIndex | None) -> set[str]:
    """Identifiers whose occurrence spans differ between two snapshots."""
    before = old.occurrence_sets() if old is not None else {}
    after = new.occurrence_sets() if new is not None else {}
    return {key for key in set(before) | set(after) if before.get(key) != after.get(key)}


class ReferenceIndex:
    """Holds the latest published DocumentIndex per document.

    ``build`` stages a fresh snapshot without touching published state and
    ``commit`` swaps it in with a single assignment, so readers only ever see
    a complete snapshot.
    """

    def __init__(self) -> None:
        self._documents: dict[str, DocumentIndex] = {}
        self._classifiers: dict[str, LexicalClassifier] = {}

    def build(self, document_id: str, text: str, profile: SyntaxProfile) -> DocumentIndex:
        classifier = self._classifiers.get(document_id)
        if classifier is None or classifier.profile != profile:
            classifier = LexicalClassifier(profile, text)
            self._classifiers[document_id] = classifier
        else:
            resume_at = classifier.update(text)
            logger.trace("Lexing {} resumes at offset {}", document_id, resume_at)
        return build_document_index(document_id, text, profile, classifier=classifier)

    def commit(self, index: DocumentIndex) -> DocumentIndex | None:
        previous = self._documents.get(index.document_id)
        self._documents[index.document_id] = index
        return previous

    def update(self, document_id: str, text: str, profile: SyntaxProfile) -> DocumentIndex:
        index = self.build(document_id, text, profile)
        self.commit(index)
        logger.debug("Indexed {} NONL occurrence(s) in {}", len(index), document_id)
        return index

    def document(self, document_id: str) -> DocumentIndex | None:
        return self._documents.get(document_id)

    def occurrences_of(self, identifier: str, document_id: str | None = None) -> tuple[Occurrence, ...]:
        if document_id is not None:
            index = self._documents.get(document_id)
            return index.occurrences_of(identifier) if index is not None else ()

        out: list[Occurrence] = []
        documents = dict(self._documents)
        for key in sorted(documents):
            out.extend(documents[key].occurrences_of(identifier))
        return tuple(out)

    def identifiers(self) -> list[str]:
        keys: set[str] = set()
        for index in list(self._documents.values()):
            keys.update(index.by_identifier)
        return sorted(keys)

    def discard(self, document_id: str) -> DocumentIndex | None:
        self._classifiers.pop(document_id, None)
        return self._documents.pop(document_id, None)

    def clear(self) -> None:
        self._documents.clear()
        self._classifiers.clear()

    def snapshot(self) -> dict[str, DocumentIndex]:
        return dict(self._documents)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._documents
