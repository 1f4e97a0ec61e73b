"""Randomized checks that must hold for any document text.

Documents are assembled from each profile's own delimiters mixed with NONL
markers, escapes, blanks and newlines, so unbalanced and nested constructs
come up often. Every case is seeded and reproducible from its test id.
"""

import random

import pytest

from nonl.services.lexical_classifier import LexicalClassifier, is_comment_or_string
from nonl.services.reference_index import ReferenceIndex, build_document_index
from nonl.services.syntax_profiles import PYTHON, SYNTAX_PROFILES
from nonl.services.tag_scanner import BACKWARD, scan, scan_all
from nonl.services.xref_dispatcher import compile_request, dispatch

PROFILES = sorted({profile.name: profile for profile in SYNTAX_PROFILES.values()}.items())
PROFILE_IDS = [name for name, _ in PROFILES]
SEEDS = range(12)

FILLER = ["NONL:", "NONL: ", "key", "x", "(", ";", " ", "\t", "\n", "\\"]


def tokens_for(profile):
    tokens = list(profile.openers())
    tokens.extend(rule.close for rule in profile.block_comments)
    tokens.extend(rule.close for rule in profile.strings)
    return tokens + FILLER


def random_text(rng, tokens, length):
    return "".join(rng.choice(tokens) for _ in range(length))


def random_edit(rng, text, tokens):
    start = rng.randint(0, len(text))
    end = rng.randint(start, min(len(text), start + 12))
    return text[:start] + random_text(rng, tokens, rng.randint(0, 6)) + text[end:]


@pytest.mark.parametrize("seed", SEEDS)
@pytest.mark.parametrize("name,profile", PROFILES, ids=PROFILE_IDS)
class TestAnyText:
    def test_incremental_updates_match_fresh_lex(self, name, profile, seed):
        rng = random.Random(f"{name}-{seed}")
        tokens = tokens_for(profile)
        text = random_text(rng, tokens, 60)
        classifier = LexicalClassifier(profile, text)
        for _ in range(8):
            # Leave the cache fully, partly or not at all lexed before editing.
            peek_offset = rng.randint(0, len(text))
            if rng.random() < 0.5:
                classifier.is_comment_or_string(peek_offset)
            text = random_edit(rng, text, tokens)
            classifier.update(text)
            fresh = LexicalClassifier(profile, text)
            assert classifier.spans() == fresh.spans()
            assert [classifier.is_comment_or_string(i) for i in range(len(text) + 1)] == [
                is_comment_or_string(text, i, profile) for i in range(len(text) + 1)
            ]

    def test_backward_scan_is_forward_reversed(self, name, profile, seed):
        rng = random.Random(f"{name}-{seed}")
        text = random_text(rng, tokens_for(profile), 80)
        forward = scan_all(text, profile)
        assert list(scan(text, profile, direction=BACKWARD)) == forward[::-1]

    def test_every_occurrence_sits_in_comment_or_string(self, name, profile, seed):
        rng = random.Random(f"{name}-{seed}")
        text = random_text(rng, tokens_for(profile), 80)
        for occurrence in scan_all(text, profile):
            assert is_comment_or_string(text, occurrence.marker_span[0], profile)
            assert text[occurrence.marker_span[0]:occurrence.marker_span[1]] == "NONL:"

    def test_search_pattern_finds_its_own_line(self, name, profile, seed):
        rng = random.Random(f"{name}-{seed}")
        text = random_text(rng, tokens_for(profile), 80)
        lines = text.split("\n")
        for occurrence in scan_all(text, profile):
            if not occurrence.identifier:
                continue
            pattern = compile_request(dispatch(occurrence.identifier, "."))
            assert pattern.search(lines[occurrence.line - 1]) is not None

    def test_rebuilds_are_idempotent(self, name, profile, seed):
        rng = random.Random(f"{name}-{seed}")
        tokens = tokens_for(profile)
        refs = ReferenceIndex()
        text = random_text(rng, tokens, 60)
        for _ in range(5):
            published = refs.update("doc", text, profile)
            fresh = build_document_index("doc", text, profile)
            assert published.occurrence_sets() == fresh.occurrence_sets()
            assert refs.update("doc", text, profile).occurrence_sets() == fresh.occurrence_sets()
            text = random_edit(rng, text, tokens)


@pytest.mark.parametrize("seed", range(20))
def test_marker_count_matches_comment_tags(seed):
    rng = random.Random(seed)
    lines = []
    expected = []
    for i in range(rng.randint(0, 40)):
        choice = rng.randrange(4)
        if choice == 0:
            lines.append(f"# NONL: k{i}")
            expected.append(f"k{i}")
        elif choice == 1:
            lines.append(f"v{i} = {i}  # NONL: t{i}")
            expected.append(f"t{i}")
        elif choice == 2:
            lines.append(f"d{i} = {{NONL: {i}}}")
        else:
            lines.append(f"c{i} = {i}")
    text = "\n".join(lines)
    assert [occurrence.identifier for occurrence in scan_all(text, PYTHON)] == expected
