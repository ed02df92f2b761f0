import pytest

from compactor.errors import RuleConflict
from compactor.lexer import tokenize
from compactor.options import CompressionOptions
from compactor.rules import (
    DEFAULT_RULES,
    CollapseWhitespace,
    Edit,
    RenameLocals,
    RewriteRule,
    StripComments,
    apply,
    apply_edits,
)
from compactor.tokens import Token, TokenKind


def texts(stream):
    return [t.text for t in stream]


def test_apply_edits_replaces_spans():
    stream = tokenize("a b c", "js")
    out = apply_edits(stream, [Edit(0, 1, (Token(TokenKind.IDENTIFIER, "z"),)), Edit(3, 5)])
    assert texts(out) == ["z", " ", "b"]
    assert out.language is stream.language


def test_identical_edits_are_not_a_conflict():
    stream = tokenize("a b", "js")
    assert texts(apply_edits(stream, [Edit(1, 2), Edit(1, 2)])) == ["a", "b"]


def test_overlapping_edits_conflict():
    stream = tokenize("a b c", "js")
    with pytest.raises(RuleConflict) as info:
        apply_edits(stream, [Edit(0, 2), Edit(1, 3)], "test")
    assert info.value.rule == "test"
    assert (info.value.start, info.value.end) == (1, 3)


def test_edits_sharing_a_start_conflict():
    stream = tokenize("a b", "js")
    insert = Edit(1, 1, (Token(TokenKind.WHITESPACE, " "),))
    with pytest.raises(RuleConflict):
        apply_edits(stream, [insert, Edit(1, 2)])


def test_edit_outside_stream_is_rejected():
    with pytest.raises(ValueError):
        apply_edits(tokenize("a", "js"), [Edit(0, 5)])


class Overlapping(RewriteRule):
    name = "overlapping"

    def edits(self, stream, options):
        yield Edit(0, 2)
        yield Edit(1, 2, (Token(TokenKind.IDENTIFIER, "x"),))


def test_apply_surfaces_rule_conflict():
    with pytest.raises(RuleConflict) as info:
        apply(tokenize("a b", "js"), [Overlapping()])
    assert info.value.rule == "overlapping"


def test_strip_comments():
    options = CompressionOptions()
    out = StripComments().transform(tokenize("a/* x */b", "js"), options)
    assert texts(out) == ["a", "b"]

    multiline = StripComments().transform(tokenize("a/* x\n */b", "js"), options)
    assert texts(multiline) == ["a", "\n", "b"]
    assert multiline[1].kind is TokenKind.NEWLINE


def test_strip_comments_keeps_bang_comments():
    out = StripComments().transform(tokenize("/*! keep */a", "js"), CompressionOptions())
    assert texts(out) == ["/*! keep */", "a"]


def test_collapse_whitespace_keeps_newline_at_statement_boundary():
    out = CollapseWhitespace().transform(tokenize("return\n  a", "js"), CompressionOptions())
    assert texts(out) == ["return", "\n", "a"]

    joined = CollapseWhitespace().transform(tokenize("a =\n  b", "js"), CompressionOptions())
    assert texts(joined) == ["a", "=", "b"]


def test_rules_skip_other_languages():
    stream = tokenize("a { color : red }", "css")
    assert not RenameLocals().applies_to(stream, CompressionOptions())
    out = apply(stream, DEFAULT_RULES)
    assert texts(out) == ["a", "{", "color", ":", "red", "}"]


def test_rename_rule_honours_nomunge():
    options = CompressionOptions(munge_identifiers=False)
    assert not RenameLocals().applies_to(tokenize("x", "js"), options)
