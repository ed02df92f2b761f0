import pytest

from compactor import CompressionOptions, compress
from compactor.emitter import emit, needs_space
from compactor.lexer import tokenize
from compactor.rules import apply
from compactor.tokens import Language, Token, TokenKind


def tok(kind, text):
    return Token(TokenKind[kind], text)


@pytest.mark.parametrize(
    "source, expected",
    [
        ("a + +b", "a+ +b"),
        ("a - -b", "a- -b"),
        ("a++ + b", "a++ +b"),
        ("a + ++b", "a+ ++b"),
        ("x = y / /re/.source", "x=y/ /re/.source"),
        ("x = /a/ in o", "x=/a/ in o"),
        ("1 .toString()", "1 .toString()"),
        ("1.5 .toFixed()", "1.5.toFixed()"),
        ("a < !b", "a< !b"),
        ("typeof x", "typeof x"),
        ('"a" + "b"', '"a"+"b"'),
    ],
)
def test_no_token_merging(source, expected):
    assert compress(source, "js") == expected


def test_needs_space_pairs():
    assert needs_space(tok("IDENTIFIER", "a"), tok("KEYWORD", "in"), Language.JS)
    assert needs_space(tok("OPERATOR", "="), tok("OPERATOR", "="), Language.JS)
    assert needs_space(tok("OPERATOR", "="), tok("OPERATOR", ">"), Language.JS)
    assert not needs_space(tok("PUNCTUATION", ")"), tok("PUNCTUATION", "{"), Language.JS)
    assert not needs_space(tok("STRING", '"a"'), tok("OPERATOR", "+"), Language.JS)


def test_needs_space_css():
    assert needs_space(tok("NUMBER", "0"), tok("IDENTIFIER", "auto"), Language.CSS)
    assert not needs_space(tok("IDENTIFIER", "a"), tok("IDENTIFIER", "#b"), Language.CSS)
    assert not needs_space(tok("IDENTIFIER", "a"), tok("PUNCTUATION", "."), Language.CSS)


def test_whitespace_tokens_shrink():
    stream = tokenize("a  \t b", "css")
    assert emit(stream) == "a b"


def test_hashbang_is_followed_by_newline():
    assert compress("#!/usr/bin/env node\nvar a = 1;", "js") == "#!/usr/bin/env node\nvar a=1;"


def test_bang_comment_survives():
    assert compress("/*! keep me */\nvar a = 1;", "js") == "/*! keep me */var a=1;"


def test_line_break_after_every_statement():
    options = CompressionOptions(line_break_column=0)
    assert compress("var a=1;var b=2;var c=3;", "js", options) == "var a=1;\nvar b=2;\nvar c=3;"


def test_line_break_waits_for_column():
    options = CompressionOptions(line_break_column=10)
    assert compress("var a=1;var b=2;var c=3;", "js", options) == "var a=1;var b=2;\nvar c=3;"


def test_line_break_never_inside_parentheses():
    options = CompressionOptions(line_break_column=0)
    out = compress("for (var i = 0; i < 3; i++) { f(i); }", "js", options)
    assert out.splitlines()[0] == "for(var i=0;i<3;i++){f(i);"


def test_line_break_in_css():
    options = CompressionOptions(line_break_column=0)
    assert compress("a{color:red}b{color:blue}", "css", options) == "a{color:red}\nb{color:blue}"


@pytest.mark.parametrize(
    "source",
    [
        "a + +b - -c",
        "x = y / /re/g.source",
        "var s = 'it\\'s' + `t${a}` ;",
        "if (a) b()\nelse c()",
        "let x = 1\nlet y = x\n++y",
    ],
)
def test_output_retokenizes_to_emitted_tokens(source):
    stream = apply(tokenize(source, "js"))
    out = emit(stream)
    assert [t.text for t in tokenize(out, "js").significant()] == [t.text for t in stream.significant()]


@pytest.mark.parametrize(
    "source",
    [
        "a { margin : 0 -1px ; width : calc( 100% - -2px ) }",
        "a { top : +.5em ; left : - 2px }",
        "@media screen and (max-width: 100px) { a { color : red ; } }",
        "a { background : url( img.png ) }",
        "div :first-child , a > b { margin : 0 auto }",
    ],
)
def test_css_output_retokenizes_to_emitted_tokens(source):
    stream = apply(tokenize(source, "css"))
    out = emit(stream)
    assert [t.text for t in tokenize(out, "css").significant()] == [t.text for t in stream.significant()]


def test_css_sign_keeps_space_before_a_name():
    assert needs_space(tok("OPERATOR", "-"), tok("IDENTIFIER", "a"), Language.CSS)
    assert not needs_space(tok("OPERATOR", "-"), tok("NUMBER", "1px"), Language.CSS)


@pytest.mark.parametrize(
    "source, expected",
    [
        ("x = c ? {a:1} : 2;", "x=c?{a:1}:2;"),
        ("var {a, b: c} = o;", "var{a,b:c}=o;"),
        ("x = `a${{b:1}.b}c`;", "x=`a${{b:1}.b}c`;"),
    ],
)
def test_line_break_skips_object_literals(source, expected):
    assert compress(source, "js", CompressionOptions(line_break_column=1)) == expected


def test_line_break_after_statement_blocks():
    options = CompressionOptions(line_break_column=0)
    assert compress("if (a) { b(); } c();", "js", options) == "if(a){b();\n}\nc();"
