"""Locate and cross-reference NONL (non-local entanglement) tags in source text."""

from nonl.services.activation_policy import document_activates, should_activate
from nonl.services.lexical_classifier import LexicalClassifier, LexicalContext, classify, is_comment_or_string
from nonl.services.reference_index import DocumentIndex, ReferenceIndex, build_document_index
from nonl.services.syntax_profiles import SYNTAX_PROFILES, SyntaxProfile, profile_for_kind
from nonl.services.tag_scanner import BACKWARD, FORWARD, NONL_MARKER, Occurrence, scan
from nonl.services.xref_dispatcher import SearchRequest, dispatch

__version__ = "0.1.0"

__all__ = [
    "BACKWARD",
    "FORWARD",
    "NONL_MARKER",
    "SYNTAX_PROFILES",
    "DocumentIndex",
    "LexicalClassifier",
    "LexicalContext",
    "Occurrence",
    "ReferenceIndex",
    "SearchRequest",
    "SyntaxProfile",
    "build_document_index",
    "classify",
    "dispatch",
    "document_activates",
    "is_comment_or_string",
    "profile_for_kind",
    "scan",
    "should_activate",
]
