"""Tests for comment/string classification across syntax profiles."""

import pytest

from nonl.services.lexical_classifier import (
    LexicalClassifier,
    LexicalContext,
    classify,
    is_comment_or_string,
)
from nonl.services.syntax_profiles import C_LIKE, PYTHON, RUST, SHELL, SyntaxProfile


class TestLineComments:
    def test_comment_body_is_inside(self, c_profile):
        text = "x = 1; // note\ny();"
        assert is_comment_or_string(text, text.index("note"), c_profile)
        assert classify(text, text.index("note"), c_profile) is LexicalContext.COMMENT

    def test_code_before_and_after_comment(self, c_profile):
        text = "x = 1; // note\ny();"
        assert not is_comment_or_string(text, 0, c_profile)
        assert not is_comment_or_string(text, text.index("y"), c_profile)

    def test_newline_ends_line_comment(self, c_profile):
        text = "a // c\nb"
        assert not is_comment_or_string(text, text.index("\n"), c_profile)

    def test_opening_delimiter_counts_as_inside(self, c_profile):
        text = "ab// c"
        assert is_comment_or_string(text, 2, c_profile)
        assert not is_comment_or_string(text, 1, c_profile)

    def test_comment_at_end_of_text_covers_end_position(self, python_profile):
        text = "x = 1  # trailing"
        assert is_comment_or_string(text, len(text), python_profile)


class TestBlockComments:
    def test_closing_delimiter_is_inside_and_after_is_code(self, c_profile):
        text = "a /* b */ c"
        close = text.index("*/")
        assert is_comment_or_string(text, close, c_profile)
        assert is_comment_or_string(text, close + 1, c_profile)
        assert not is_comment_or_string(text, close + 2, c_profile)

    def test_unterminated_block_fails_open(self, c_profile):
        text = "a /* open"
        assert is_comment_or_string(text, text.index("open"), c_profile)
        assert is_comment_or_string(text, len(text), c_profile)

    def test_non_nested_block_closes_at_first_closer(self, c_profile):
        text = "a /* x /* y */ z */ b"
        assert not is_comment_or_string(text, text.index("z"), c_profile)

    def test_nested_block_comment(self, rust_profile):
        text = "a /* x /* y */ z */ b"
        assert is_comment_or_string(text, text.index("z"), rust_profile)
        assert not is_comment_or_string(text, text.index("b"), rust_profile)

    def test_multiline_block(self, c_profile):
        text = "int a;\n/* one\n   two */\nint b;"
        assert is_comment_or_string(text, text.index("two"), c_profile)
        assert not is_comment_or_string(text, text.index("int b"), c_profile)


class TestStrings:
    def test_escaped_quote_does_not_close(self, c_profile):
        text = 'f("a\\"b // c"); d'
        assert classify(text, text.index("//"), c_profile) is LexicalContext.STRING
        assert not is_comment_or_string(text, text.index("d"), c_profile)

    def test_closing_quote_inside_following_char_code(self, c_profile):
        text = 'f("abc");'
        closing = text.index('");')
        assert is_comment_or_string(text, closing, c_profile)
        assert not is_comment_or_string(text, closing + 1, c_profile)

    def test_single_line_string_ends_at_newline(self, c_profile):
        text = 'x = "abc\ny = 1;'
        assert is_comment_or_string(text, text.index("abc"), c_profile)
        assert not is_comment_or_string(text, text.index("y"), c_profile)

    def test_comment_marker_inside_string_is_string(self, python_profile):
        text = 'x = "# not a comment"'
        assert classify(text, text.index("#"), python_profile) is LexicalContext.STRING

    def test_quote_inside_comment_does_not_open_string(self, python_profile):
        text = "# it's fine\ny = 2"
        assert not is_comment_or_string(text, text.index("y"), python_profile)

    def test_python_triple_quoted_string_spans_lines(self, python_profile):
        text = 'x = """doc\n# not comment\n"""\n# real'
        assert classify(text, text.index("# not"), python_profile) is LexicalContext.STRING
        assert classify(text, text.index("# real"), python_profile) is LexicalContext.COMMENT

    def test_apostrophe_in_double_quoted_python_string(self, python_profile):
        text = 'x = "it\'s" # c'
        assert classify(text, text.index("#"), python_profile) is LexicalContext.COMMENT

    def test_shell_single_quotes_have_no_escapes(self):
        text = "echo 'a\\' # x"
        assert classify(text, text.index("#"), SHELL) is LexicalContext.COMMENT

    def test_unterminated_multiline_string_fails_open(self, rust_profile):
        text = 'let s = "open\nstill open'
        assert is_comment_or_string(text, text.index("still"), rust_profile)
        assert is_comment_or_string(text, len(text), rust_profile)


class TestDegenerateInput:
    def test_empty_text(self, c_profile):
        assert classify("", 0, c_profile) is LexicalContext.CODE

    def test_out_of_range_offsets_are_clamped(self, c_profile):
        assert not is_comment_or_string("abc", 99, c_profile)
        assert not is_comment_or_string("abc", -5, c_profile)

    def test_profile_without_delimiters_is_all_code(self):
        plain = SyntaxProfile(name="plain")
        text = '// "x" /* y */'
        assert all(not is_comment_or_string(text, i, plain) for i in range(len(text) + 1))


class TestIncrementalUpdate:
    EDITS = [
        (C_LIKE, 'a = 1 / 2;\nb = "x";', 'a = 1 // 2;\nb = "x";'),
        (C_LIKE, "a /* c */ b /* d */ e", "a /* c  b /* d */ e"),
        (C_LIKE, '// c\nx = "s"\n', '// cx = "s"\n'),
        (C_LIKE, 'x = "abc"; // tail', 'x = "a"bc"; // tail'),
        (PYTHON, 'x = 1\ns = """a\nb"""\n# c', 'x = 1\ns = ""a\nb"""\n# c'),
        (RUST, "fn a() {} /* x /* y */ */ b", "fn a() {} /* x /* y */ b"),
    ]

    @pytest.mark.parametrize("profile,old,new", EDITS)
    def test_update_matches_fresh_lex(self, profile, old, new):
        classifier = LexicalClassifier(profile, old)
        classifier.spans()
        classifier.update(new)
        assert classifier.spans() == LexicalClassifier(profile, new).spans()

    @pytest.mark.parametrize("profile,old,new", EDITS)
    def test_update_after_partial_lex_matches_fresh_lex(self, profile, old, new):
        classifier = LexicalClassifier(profile, old)
        classifier.is_comment_or_string(3)
        classifier.update(new)
        assert classifier.spans() == LexicalClassifier(profile, new).spans()

    def test_append_resumes_near_end(self, c_profile):
        old = "x;\n" * 200 + "// c\n"
        classifier = LexicalClassifier(c_profile, old)
        classifier.spans()
        resume = classifier.update(old + "y; // d\n")
        assert resume >= len(old) - 5
        assert len(classifier.spans()) == 2

    def test_edit_inside_block_rewinds_to_its_start(self, c_profile):
        old = "int a;\n/* one\n two */\nint b;"
        classifier = LexicalClassifier(c_profile, old)
        classifier.spans()
        new = old.replace("two", "t*/wo")
        resume = classifier.update(new)
        assert resume <= old.index("/*")
        assert not classifier.is_comment_or_string(new.index("wo */"))

    def test_unchanged_text_keeps_state(self, c_profile):
        classifier = LexicalClassifier(c_profile, "a // b")
        classifier.spans()
        before = classifier.lexed_to
        assert classifier.update("a // b") == before
