from compactor import CompressionOptions, compress
from compactor.lexer import tokenize
from compactor.scope import RESERVED, plan_renames, short_names


def js(source, **options):
    return compress(source, "js", CompressionOptions(**options))


def test_short_names_order():
    names = short_names()
    first = [next(names) for _ in range(28)]
    assert first[:3] == ["a", "b", "c"]
    assert first[25:] == ["z", "aa", "ab"]


def test_locals_get_short_names():
    source = "function f(x, y) { var total = x + y; return total; }"
    assert js(source) == "function f(a,b){var c=a+b;return c;}"


def test_globals_are_kept():
    assert js("var longName = 1; longName++;") == "var longName=1;longName++;"
    assert js("var total = 1; function g() { return total; }") == "var total=1;function g(){return total;}"


def test_nomunge_keeps_every_name():
    source = "function f(x, y) { var total = x + y; return total; }"
    assert js(source, munge_identifiers=False) == "function f(x,y){var total=x+y;return total;}"


def test_shadowing_binding_is_renamed_independently():
    source = "var a = 1; function g(value) { var a = value; return a; }"
    assert js(source) == "var a=1;function g(a){var b=a;return b;}"


def test_new_names_avoid_free_identifiers():
    assert js("function g(x) { return x + a; }") == "function g(b){return b+a;}"


def test_eval_taints_scope():
    source = 'function g(x) { eval("x"); return x; }'
    assert js(source) == 'function g(x){eval("x");return x;}'


def test_eval_in_nested_function_taints_enclosing_one():
    source = 'function outer(longName) { function inner() { eval("1"); } return longName; }'
    assert "longName" in js(source)


def test_shorthand_property_pins_binding():
    source = "function g(name, other) { return {name, other: other}; }"
    assert js(source) == "function g(name,a){return{name,other:a};}"


def test_property_names_are_not_references():
    source = "function g(obj) { var value = obj.value; return value; }"
    assert js(source) == "function g(a){var b=a.value;return b;}"


def test_catch_parameter_is_renamed():
    source = "function g() { try { risky(); } catch (error) { log(error); } }"
    assert js(source) == "function g(){try{risky();}catch(a){log(a);}}"


def test_arrow_parameters():
    assert js("const double = (n) => n * 2;") == "const double=(a)=>a*2;"


def test_unbalanced_brackets_disable_renaming():
    assert plan_renames(tokenize("function f(x) { return x;", "js")) == {}


def test_reserved_words_are_never_produced():
    assert {"do", "if", "in"} <= RESERVED


def test_exported_function_keeps_its_name():
    assert js("export function foo(n) { return n; }") == "export function foo(a){return a;}"


def test_default_export_keeps_its_name():
    source = "export default function foo(n) { return n; }\nfoo(1);"
    assert js(source) == "export default function foo(a){return a;}\nfoo(1);"


def test_exported_class_keeps_its_name():
    source = "export class Widget { render(x) { return x; } }"
    assert js(source) == "export class Widget{render(a){return a;}}"


def test_function_declared_as_if_body_is_renamed_with_its_calls():
    source = "function f(a) { if (a) function g() {} return g(); }"
    assert js(source) == "function f(a){if(a)function b(){}return b();}"
