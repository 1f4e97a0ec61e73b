"""Comment/string context classification driven by a SyntaxProfile.

The classifier lexes lazily: only as far as the highest offset queried so far.
After an edit, ``update`` rewinds to the nearest position known to be in code
before the first changed character and keeps every span that closed earlier,
so a keystroke near the end of a large buffer does not re-lex the whole file.
"""

from __future__ import annotations

import os
import re
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from nonl.services.syntax_profiles import BlockCommentRule, StringRule, SyntaxProfile


class LexicalContext(Enum):
    CODE = "code"
    COMMENT = "comment"
    STRING = "string"


@dataclass(frozen=True, slots=True)
class LexicalSpan:
    start: int
    end: int
    kind: LexicalContext
    content_start: int
    content_end: int
    terminated: bool


@dataclass(frozen=True, slots=True)
class _CompiledProfile:
    opener_re: re.Pattern[str]
    line_comments: frozenset[str]
    blocks: dict[str, BlockCommentRule]
    strings: dict[str, tuple[StringRule, re.Pattern[str]]]
    nested_res: dict[str, re.Pattern[str]]


@lru_cache(maxsize=64)
def _compile_profile(profile: SyntaxProfile) -> _CompiledProfile:
    openers = profile.openers()
    # A pattern that never matches keeps profiles without delimiters valid.
    opener_re = re.compile("|".join(re.escape(item) for item in openers) if openers else r"(?!)")

    strings: dict[str, tuple[StringRule, re.Pattern[str]]] = {}
    for rule in profile.strings:
        stops = [re.escape(rule.close)]
        if rule.escape:
            stops.insert(0, re.escape(rule.escape))
        if not rule.multiline:
            stops.append(r"\n")
        strings.setdefault(rule.open, (rule, re.compile("|".join(stops))))

    blocks: dict[str, BlockCommentRule] = {}
    nested_res: dict[str, re.Pattern[str]] = {}
    for rule in profile.block_comments:
        blocks.setdefault(rule.open, rule)
        if rule.nested:
            nested_res[rule.open] = re.compile(f"{re.escape(rule.open)}|{re.escape(rule.close)}")

    return _CompiledProfile(
        opener_re=opener_re,
        line_comments=frozenset(item for item in profile.line_comments if item),
        blocks=blocks,
        strings=strings,
        nested_res=nested_res,
    )


class LexicalClassifier:
    """Cached comment/string span lexer for one document text."""

    def __init__(self, profile: SyntaxProfile, text: str = "") -> None:
        self.profile = profile
        self._compiled = _compile_profile(profile)
        self._text = str(text or "")
        self._spans: list[LexicalSpan] = []
        self._starts: list[int] = []
        self._lexed_to = 0
        self._complete = False

    @property
    def text(self) -> str:
        return self._text

    @property
    def lexed_to(self) -> int:
        return self._lexed_to

    # ---------- Public API ----------

    def update(self, text: str) -> int:
        """Switch to ``text`` and return the offset lexing will resume from."""
        new_text = str(text or "")
        old_text = self._text
        if new_text == old_text:
            return self._lexed_to
        changed = len(os.path.commonprefix([old_text, new_text]))
        self._text = new_text
        self._rewind(changed)
        return self._lexed_to

    def span_at(self, offset: int) -> LexicalSpan | None:
        pos = self._clamp(offset)
        self._lex_until(pos)
        idx = bisect_right(self._starts, pos) - 1
        if idx < 0:
            return None
        span = self._spans[idx]
        if pos < span.end:
            return span
        # Fail open: an unclosed construct swallows the end-of-text position too.
        if pos == span.end == len(self._text) and not span.terminated:
            return span
        return None

    def context_at(self, offset: int) -> LexicalContext:
        span = self.span_at(offset)
        return span.kind if span is not None else LexicalContext.CODE

    def is_comment_or_string(self, offset: int) -> bool:
        return self.span_at(offset) is not None

    def spans(self) -> tuple[LexicalSpan, ...]:
        self._lex_until(len(self._text))
        return tuple(self._spans)

    # ---------- Lexing ----------

    def _clamp(self, offset: int) -> int:
        try:
            pos = int(offset)
        except (TypeError, ValueError):
            return 0
        return max(0, min(pos, len(self._text)))

    def _lex_until(self, offset: int) -> None:
        text = self._text
        opener_re = self._compiled.opener_re
        while not self._complete and self._lexed_to <= offset:
            match = opener_re.search(text, self._lexed_to)
            if match is None:
                self._complete = True
                return
            span = self._read_construct(match.start(), match.group())
            self._spans.append(span)
            self._starts.append(span.start)
            self._lexed_to = span.end
            if span.end >= len(text):
                self._complete = True

    def _read_construct(self, start: int, opener: str) -> LexicalSpan:
        compiled = self._compiled
        if opener in compiled.line_comments:
            return self._read_line_comment(start, opener)
        if opener in compiled.blocks:
            return self._read_block_comment(start, compiled.blocks[opener])
        rule, stop_re = compiled.strings[opener]
        return self._read_string(start, rule, stop_re)

    def _read_line_comment(self, start: int, opener: str) -> LexicalSpan:
        text = self._text
        content_start = start + len(opener)
        newline = text.find("\n", content_start)
        end = newline if newline >= 0 else len(text)
        return LexicalSpan(
            start=start,
            end=end,
            kind=LexicalContext.COMMENT,
            content_start=content_start,
            content_end=end,
            terminated=newline >= 0,
        )

    def _read_block_comment(self, start: int, rule: BlockCommentRule) -> LexicalSpan:
        text = self._text
        content_start = start + len(rule.open)
        close_at = -1
        if rule.nested:
            depth = 1
            pattern = self._compiled.nested_res[rule.open]
            pos = content_start
            while depth > 0:
                match = pattern.search(text, pos)
                if match is None:
                    break
                if match.group() == rule.close:
                    depth -= 1
                    if depth == 0:
                        close_at = match.start()
                else:
                    depth += 1
                pos = match.end()
        else:
            close_at = text.find(rule.close, content_start)

        if close_at < 0:
            return LexicalSpan(start, len(text), LexicalContext.COMMENT, content_start, len(text), False)
        return LexicalSpan(
            start=start,
            end=close_at + len(rule.close),
            kind=LexicalContext.COMMENT,
            content_start=content_start,
            content_end=close_at,
            terminated=True,
        )

    def _read_string(self, start: int, rule: StringRule, stop_re: re.Pattern[str]) -> LexicalSpan:
        text = self._text
        content_start = start + len(rule.open)
        pos = content_start
        while True:
            match = stop_re.search(text, pos)
            if match is None:
                return LexicalSpan(start, len(text), LexicalContext.STRING, content_start, len(text), False)
            token = match.group()
            if rule.escape and token == rule.escape:
                pos = match.end() + 1
                continue
            if token == "\n":
                # Single-line string left open: it ends before the newline.
                return LexicalSpan(start, match.start(), LexicalContext.STRING, content_start, match.start(), False)
            return LexicalSpan(
                start=start,
                end=match.end(),
                kind=LexicalContext.STRING,
                content_start=content_start,
                content_end=match.start(),
                terminated=True,
            )

    def _rewind(self, changed: int) -> None:
        self._complete = False
        if self._lexed_to < changed:
            return

        keep = bisect_right([span.end for span in self._spans], changed - 1)
        anchor = self._spans[keep - 1].end if keep else 0

        line_start = self._text.rfind("\n", 0, changed) + 1
        first_dropped = self._spans[keep] if keep < len(self._spans) else None
        if line_start > anchor and (first_dropped is None or first_dropped.start >= line_start):
            anchor = line_start

        del self._spans[keep:]
        del self._starts[keep:]
        self._lexed_to = anchor


def classify(text: str, offset: int, profile: SyntaxProfile) -> LexicalContext:
    return LexicalClassifier(profile, text).context_at(offset)


def is_comment_or_string(text: str, offset: int, profile: SyntaxProfile) -> bool:
    """Return True when ``offset`` lies inside a comment or string literal.

    Delimiters count as inside. Constructs left open at end of text extend to
    the end, including the ``len(text)`` position.
    """
    return LexicalClassifier(profile, text).is_comment_or_string(offset)
