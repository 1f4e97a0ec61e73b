"""Per-language comment/string syntax tables used by the lexical classifier."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from nonl.services.language_id import kind_lineage


@dataclass(frozen=True, slots=True)
class StringRule:
    open: str
    close: str
    escape: str | None = "\\"
    multiline: bool = False


@dataclass(frozen=True, slots=True)
class BlockCommentRule:
    open: str
    close: str
    nested: bool = False


@dataclass(frozen=True, slots=True)
class SyntaxProfile:
    name: str
    line_comments: tuple[str, ...] = ()
    block_comments: tuple[BlockCommentRule, ...] = ()
    strings: tuple[StringRule, ...] = ()

    def openers(self) -> tuple[str, ...]:
        """Every opening delimiter, longest first so ``'''`` wins over ``'``."""
        items = list(self.line_comments)
        items.extend(rule.open for rule in self.block_comments)
        items.extend(rule.open for rule in self.strings)
        return tuple(sorted({item for item in items if item}, key=lambda item: (-len(item), item)))


_DQ = StringRule('"', '"')
_SQ = StringRule("'", "'")
_BACKTICK = StringRule("`", "`", multiline=True)
_C_BLOCK = BlockCommentRule("/*", "*/")

C_LIKE = SyntaxProfile(
    name="c",
    line_comments=("//",),
    block_comments=(_C_BLOCK,),
    strings=(_DQ, _SQ),
)

PYTHON = SyntaxProfile(
    name="python",
    line_comments=("#",),
    strings=(
        StringRule('"""', '"""', multiline=True),
        StringRule("'''", "'''", multiline=True),
        _DQ,
        _SQ,
    ),
)

JAVASCRIPT = SyntaxProfile(
    name="javascript",
    line_comments=("//",),
    block_comments=(_C_BLOCK,),
    strings=(_DQ, _SQ, _BACKTICK),
)

# Lifetimes ('a) make single quotes unusable as string delimiters.
RUST = SyntaxProfile(
    name="rust",
    line_comments=("//",),
    block_comments=(BlockCommentRule("/*", "*/", nested=True),),
    strings=(StringRule('"', '"', multiline=True),),
)

GO = SyntaxProfile(
    name="go",
    line_comments=("//",),
    block_comments=(_C_BLOCK,),
    strings=(_DQ, _SQ, StringRule("`", "`", escape=None, multiline=True)),
)

SHELL = SyntaxProfile(
    name="shell",
    line_comments=("#",),
    strings=(
        StringRule('"', '"', multiline=True),
        StringRule("'", "'", escape=None, multiline=True),
    ),
)

MAKE = SyntaxProfile(name="make", line_comments=("#",))

PHP = SyntaxProfile(
    name="php",
    line_comments=("//", "#"),
    block_comments=(_C_BLOCK,),
    strings=(StringRule('"', '"', multiline=True), StringRule("'", "'", multiline=True)),
)

CSS = SyntaxProfile(name="css", block_comments=(_C_BLOCK,), strings=(_DQ, _SQ))

SCSS = SyntaxProfile(name="scss", line_comments=("//",), block_comments=(_C_BLOCK,), strings=(_DQ, _SQ))

SQL = SyntaxProfile(
    name="sql",
    line_comments=("--",),
    block_comments=(_C_BLOCK,),
    strings=(StringRule("'", "'", escape=None, multiline=True),),
)

LUA = SyntaxProfile(
    name="lua",
    line_comments=("--",),
    block_comments=(BlockCommentRule("--[[", "]]"),),
    strings=(_DQ, _SQ, StringRule("[[", "]]", escape=None, multiline=True)),
)

ELISP = SyntaxProfile(
    name="elisp",
    line_comments=(";",),
    strings=(StringRule('"', '"', multiline=True),),
)

MARKUP = SyntaxProfile(
    name="markup",
    block_comments=(BlockCommentRule("<!--", "-->"),),
)

TOML = SyntaxProfile(
    name="toml",
    line_comments=("#",),
    strings=(
        StringRule('"""', '"""', multiline=True),
        StringRule("'''", "'''", escape=None, multiline=True),
        _DQ,
        StringRule("'", "'", escape=None),
    ),
)

YAML = SyntaxProfile(
    name="yaml",
    line_comments=("#",),
    strings=(_DQ, StringRule("'", "'", escape=None)),
)

JSONC = SyntaxProfile(
    name="jsonc",
    line_comments=("//",),
    block_comments=(_C_BLOCK,),
    strings=(_DQ,),
)

_PROFILES_BY_KIND: dict[str, SyntaxProfile] = {
    "c": C_LIKE,
    "cpp": C_LIKE,
    "java": C_LIKE,
    "csharp": C_LIKE,
    "go": GO,
    "rust": RUST,
    "python": PYTHON,
    "javascript": JAVASCRIPT,
    "typescript": JAVASCRIPT,
    "php": PHP,
    "shell": SHELL,
    "make": MAKE,
    "cmake": MAKE,
    "sql": SQL,
    "lua": LUA,
    "elisp": ELISP,
    "css": CSS,
    "scss": SCSS,
    "less": SCSS,
    "html": MARKUP,
    "xml": MARKUP,
    "markdown": MARKUP,
    "toml": TOML,
    "yaml": YAML,
    "jsonc": JSONC,
}

SYNTAX_PROFILES: Mapping[str, SyntaxProfile] = MappingProxyType(_PROFILES_BY_KIND)


def profile_for_kind(kind: str | None) -> SyntaxProfile | None:
    """Return the profile for ``kind`` or the nearest ancestor that has one.

    Root kinds (``prog``, ``text``, ``data-file``) carry no profile, so a kind
    without its own syntax table never resolves to a generic one.
    """
    for entry in kind_lineage(kind):
        profile = SYNTAX_PROFILES.get(entry)
        if profile is not None:
            return profile
    return None
