# File: tests/test_cli.py

import pytest
from typer.testing import CliRunner
from main import EXIT_INTERNAL_ERROR, EXIT_PARSE_ERROR, app

runner = CliRunner()


# ─── 1) simplify ───────────────────────────────────────────────────────────────

@pytest.mark.parametrize("src, expected", [
    ("x + x",          "x * 2"),
    ("4! + 1",         "25"),
    ("2^3",            "9"),
    ("(a + b) + c",    "a + b + c"),
])
def test_simplify_command(src, expected):
    result = runner.invoke(app, ["simplify", src])
    assert result.exit_code == 0, result.output
    assert expected in result.output

def test_simplify_many_expressions():
    result = runner.invoke(app, ["simplify", "x + x", "3!"])
    assert result.exit_code == 0
    assert "x * 2" in result.output
    assert "6" in result.output

def test_check_flags_changed_value():
    result = runner.invoke(app, ["simplify", "--check", "x*y + 3"])
    assert result.exit_code == 0
    assert "NO" in result.output

    result = runner.invoke(app, ["simplify", "--check", "x + x"])
    assert "yes" in result.output

def test_diff_panels():
    result = runner.invoke(app, ["simplify", "--diff", "--check", "4!", "x*y + 1"])
    assert result.exit_code == 0
    assert "→ 24" in result.output
    assert "value changed" in result.output

def test_trace_output():
    result = runner.invoke(app, ["simplify", "--trace", "x + x"])
    assert result.exit_code == 0
    assert "combine_like_terms" in result.output
    assert "fold_nary" in result.output

def test_parse_error_exit_code():
    result = runner.invoke(app, ["simplify", "x - y"])
    assert result.exit_code == EXIT_PARSE_ERROR
    assert "parse error" in result.output

def test_depth_abort_exit_code():
    result = runner.invoke(app, ["--max-depth", "2", "simplify", "((x + 1) + 1) + 1"])
    assert result.exit_code == EXIT_INTERNAL_ERROR
    assert "recursion depth exceeded" in result.output

def test_factorial_limit_from_environment():
    result = runner.invoke(app, ["simplify", "11!"], env={"SIMPLIFIER_FACTORIAL_LIMIT": "12"})
    assert result.exit_code == 0
    assert "39916800" in result.output

def test_unknown_log_format():
    result = runner.invoke(app, ["--log-format", "xml", "simplify", "x"])
    assert result.exit_code != 0


# ─── 2) file ───────────────────────────────────────────────────────────────────

@pytest.fixture
def expr_file(tmp_path):
    path = tmp_path / "sums.expr"
    path.write_text("# header\nx + x\n\n4!\n")
    return path

def test_file_no_diff(expr_file):
    result = runner.invoke(app, ["file", str(expr_file), "--no-diff"])
    assert result.exit_code == 0, result.output
    assert "x * 2" in result.output
    assert "24" in result.output

def test_file_diff(expr_file):
    result = runner.invoke(app, ["file", str(expr_file)])
    assert result.exit_code == 0
    assert "+x * 2" in result.output
    assert "-x + x" in result.output

def test_file_inplace(expr_file):
    result = runner.invoke(app, ["file", str(expr_file), "--inplace"])
    assert result.exit_code == 0
    assert expr_file.read_text() == "# header\nx * 2\n\n24\n"

def test_file_unchanged(tmp_path):
    path = tmp_path / "done.expr"
    path.write_text("x + y\n")
    result = runner.invoke(app, ["file", str(path)])
    assert result.exit_code == 0
    assert "No changes" in result.output

def test_directory_recursive(tmp_path, expr_file):
    nested = tmp_path / "sub"
    nested.mkdir()
    (nested / "more.expr").write_text("2 * 3\n")
    result = runner.invoke(app, ["file", str(tmp_path), "--recursive", "--inplace"])
    assert result.exit_code == 0
    assert (nested / "more.expr").read_text() == "6\n"
    assert expr_file.read_text() == "# header\nx * 2\n\n24\n"

def test_file_parse_error_names_line(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "bad.expr").write_text("x + x\nx / 2\n")
    result = runner.invoke(app, ["file", "bad.expr"])
    assert result.exit_code == EXIT_PARSE_ERROR
    assert "bad.expr:2" in result.output
