import pytest

from compactor import __version__
from compactor.cli import main


@pytest.fixture
def script(tmp_path):
    path = tmp_path / "app.js"
    path.write_text("function add ( a , b ) { return a + b ; }\n", encoding="utf-8")
    return path


def test_writes_to_stdout(script, capsys):
    assert main([str(script), "--nomunge"]) == 0
    assert capsys.readouterr().out == "function add(a,b){return a+b;}\n"


def test_writes_output_file(script, tmp_path, capsys):
    out = tmp_path / "app.min.js"
    assert main([str(script), "-o", str(out), "--line-break", "0"]) == 0
    assert out.read_text(encoding="utf-8") == "function add(a,b){return a+b;\n}"
    assert capsys.readouterr().out == ""


def test_type_overrides_suffix(tmp_path, capsys):
    path = tmp_path / "styles.txt"
    path.write_text("a { color : red ; }", encoding="utf-8")
    assert main([str(path), "--type", "css"]) == 0
    assert capsys.readouterr().out == "a{color:red}\n"


def test_concat_strings(tmp_path, capsys):
    path = tmp_path / "s.js"
    path.write_text('var s = "a" + "b";', encoding="utf-8")
    assert main([str(path), "--concat-strings"]) == 0
    assert capsys.readouterr().out == 'var s="ab";\n'


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "missing.js")]) == 1
    assert capsys.readouterr().err.startswith("[compactor] error:")


def test_lex_error(tmp_path, capsys):
    path = tmp_path / "bad.js"
    path.write_text('var s = "abc', encoding="utf-8")
    assert main([str(path)]) == 1
    assert "line 1, column 9" in capsys.readouterr().err


def test_invalid_line_break(script, capsys):
    assert main([str(script), "--line-break", "-1"]) == 1
    assert "[compactor] error:" in capsys.readouterr().err


def test_version(capsys):
    with pytest.raises(SystemExit) as info:
        main(["--version"])
    assert info.value.code == 0
    assert capsys.readouterr().out.strip() == f"compactor {__version__}"
