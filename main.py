import difflib
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from equivalence import equivalent
from errors import ExpressionError, ParseError, RecursionDepthExceeded
from expression import Expr
from log_config import LOG_FORMATS, get_logger, setup_logging
from parser import parse_expression
from simplifier import FACTORIAL_LIMIT, MAX_DEPTH, Simplifier

app = typer.Typer(help="Simplify algebraic expressions in a single bottom-up sweep.")
console = Console()
logger = get_logger("cli")

EXIT_PARSE_ERROR = 1
EXIT_INTERNAL_ERROR = 2


def fail(exc: ExpressionError) -> None:
    """Report an engine error and stop with the matching exit status."""
    if isinstance(exc, RecursionDepthExceeded):
        title, code = "internal error", EXIT_INTERNAL_ERROR
    else:
        title, code = "parse error", EXIT_PARSE_ERROR
    logger.error("simplification_failed", error=str(exc), kind=type(exc).__name__)
    console.print(Panel(escape(str(exc)), title=title, border_style="red"))
    raise typer.Exit(code)


def simplify_text(source: str, simplifier: Simplifier) -> tuple[Expr, Expr]:
    """Parse and simplify one expression, returning ``(parsed, simplified)``."""
    expr = parse_expression(source)
    return expr, simplifier.simplify(expr)


@app.callback()
def configure(
    ctx: typer.Context,
    max_depth: int = typer.Option(
        MAX_DEPTH, "--max-depth", envvar="SIMPLIFIER_MAX_DEPTH", min=1,
        help="Abort when the tree is nested deeper than this"
    ),
    factorial_limit: int = typer.Option(
        FACTORIAL_LIMIT, "--factorial-limit", envvar="SIMPLIFIER_FACTORIAL_LIMIT", min=0,
        help="Largest literal n for which n! is folded"
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", envvar="SIMPLIFIER_LOG_LEVEL",
        help="DEBUG shows every rewrite applied"
    ),
    log_format: str = typer.Option(
        "console", "--log-format", envvar="SIMPLIFIER_LOG_FORMAT",
        help=f"One of: {', '.join(LOG_FORMATS)}"
    ),
):
    if log_format not in LOG_FORMATS:
        raise typer.BadParameter(f"expected one of {LOG_FORMATS}", param_hint="--log-format")
    setup_logging(log_level, log_format)
    ctx.obj = {"max_depth": max_depth, "factorial_limit": factorial_limit}


@app.command("simplify")
def simplify_command(
    ctx: typer.Context,
    expressions: list[str] = typer.Argument(..., help="Expressions such as 'x + 2*x + 3!'"),
    check: bool = typer.Option(
        False, "--check",
        help="Verify with SymPy that each result has the same value as its input"
    ),
    trace: bool = typer.Option(
        False, "--trace",
        help="Show every rewrite applied"
    ),
    diff: bool = typer.Option(
        False, "--diff/--no-diff",
        help="Show before/after panels instead of a table"
    ),
):
    """
    Simplify each EXPRESSION once and print the result.
    """
    simplifier = Simplifier(**ctx.obj)

    table = Table("input", "simplified")
    if check:
        table.add_column("equivalent")

    for source in expressions:
        try:
            expr = parse_expression(source)
            if trace:
                result, steps = simplifier.simplify_with_trace(expr)
            else:
                result = simplifier.simplify(expr)
        except ExpressionError as exc:
            fail(exc)

        row = [Text(str(expr)), Text(str(result))]
        same = equivalent(expr, result) if check else None
        if check:
            row.append(Text("yes", style="green") if same else Text("NO", style="bold red"))

        if diff:
            body = f"{escape(str(expr))}\n→ {escape(str(result))}"
            if check and not same:
                body += "\n[bold red]value changed[/bold red]"
            console.print(Panel(body, title=escape(source), border_style="blue"))
        else:
            table.add_row(*row)

        if trace:
            console.print(Panel(escape(steps.format("chain")), title="trace", border_style="magenta"))

    if not diff:
        console.print(table)


def process_file(
    path: Path,
    simplifier: Simplifier,
    inplace: bool,
    show_diff: bool,
    check: bool,
):
    """
    1) Read one expression per line
    2) Simplify each line, keeping blanks and # comments
    3) Either overwrite or show unified diff/raw text
    """
    src = path.read_text()
    lines = []
    for lineno, line in enumerate(src.splitlines(), 1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            lines.append(line)
            continue
        try:
            expr, result = simplify_text(stripped, simplifier)
        except ParseError as exc:
            raise ParseError(f"{path}:{lineno}: {exc}") from exc
        if check and not equivalent(expr, result):
            console.print(f"[yellow]{escape(str(path))}:{lineno}: value changed: "
                          f"{escape(str(expr))} → {escape(str(result))}[/yellow]")
        indent = line[:len(line) - len(line.lstrip())]
        lines.append(indent + str(result))
    simplified = "\n".join(lines) + ("\n" if src.endswith("\n") else "")
    logger.info("file_simplified", path=str(path), lines=len(lines))

    if inplace:
        path.write_text(simplified)
        console.print(f"Updated: {escape(str(path))}")
        return

    if show_diff:
        diff_txt = escape("".join(difflib.unified_diff(
            src.splitlines(keepends=True),
            simplified.splitlines(keepends=True),
            fromfile=str(path),
            tofile="simplified",
        ))) or "[italic]No changes[/italic]"
        console.print(Panel(diff_txt, title=escape(str(path)), border_style="blue"))
    else:
        console.print(Panel(escape(simplified), title=escape(str(path)), border_style="green"))


@app.command("file")
def file_command(
    ctx: typer.Context,
    target: Path = typer.Argument(
        ..., exists=True, file_okay=True, dir_okay=True,
        help="Expression file (one per line) or directory of *.expr files"
    ),
    inplace: bool = typer.Option(
        False, "--inplace",
        help="Overwrite files in place"
    ),
    recursive: bool = typer.Option(
        False, "--recursive",
        help="When target is a directory, recurse into subfolders"
    ),
    diff: bool = typer.Option(
        True, "--diff/--no-diff",
        help="Show unified diff instead of raw text"
    ),
    check: bool = typer.Option(
        False, "--check",
        help="Warn about lines whose value changed"
    ),
):
    """
    Simplify every expression in FILE or all .expr files under a directory.
    """
    simplifier = Simplifier(**ctx.obj)
    paths = ([target] if target.is_file()
             else sorted(target.glob("**/*.expr") if recursive else target.glob("*.expr")))
    for path in paths:
        try:
            process_file(path, simplifier, inplace, diff, check)
        except ExpressionError as exc:
            fail(exc)


if __name__ == "__main__":
    app()
