"""Check reports: everything needed to show a template next to its diagnostics."""

import json

from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from tplheal.diagnostics import Diagnostic, Level, count_digits, split_lines
from tplheal.recovery import RecoveryDriver

LEVEL_STYLES = {
    Level.MISUNDERSTOOD: "magenta",
    Level.PARSE: "red",
    Level.EXEC: "yellow",
    Level.LIMIT: "cyan",
}


class Sample(BaseModel):
    raw_text: str
    raw_data: str = ""
    raw_functions: str = ""


SAMPLES = [
    Sample(
        raw_text=(
            "<!-- https://stackoverflow.com/questions/16734503/access-out-of-loop-value-inside-golang-templates-loop -->\n"
            "{%- for page in Pages %}\n"
            '<li><a href="{{ Name }}/{{ page }}">{{ page }}</a></li>\n'
            "{%- endfor %}"
        ),
        raw_data='{"Name":"兵哥哥", "Pages":["立正","齐步走"]}',
    ),
]


class CheckReport(BaseModel):
    raw_text: str
    raw_data: str = ""
    raw_functions: str = ""
    text_lines: list[str] = []
    output: str = ""
    diagnostics: list[Diagnostic] = []
    line_num_spacing: int = 1
    """Width of the widest line number."""
    healed: bool = False


def parse_functions(raw_functions: str) -> list[str]:
    if not raw_functions:
        return []
    return [name.strip() for name in raw_functions.split(",")]


def build_report(
    driver: RecoveryDriver,
    text: str,
    raw_data: str = "",
    raw_functions: str = "",
    *,
    diagnostics: list[Diagnostic] | None = None,
) -> CheckReport:
    """Decode the sample data, check the template and collect all diagnostics.

    `diagnostics` are problems found before the template was even read (for
    instance an unreadable file); they are reported first.
    """
    diagnostics = list(diagnostics or [])
    data = None
    if raw_data:
        try:
            data = json.loads(raw_data)
        except json.JSONDecodeError as e:
            diagnostics.append(Diagnostic.misunderstood(f"failed to understand data: {e}"))

    result = driver.check(text, data, parse_functions(raw_functions))

    lines = split_lines(text)
    return CheckReport(
        raw_text=text,
        raw_data=raw_data,
        raw_functions=raw_functions,
        text_lines=lines,
        output=result.output,
        diagnostics=[*diagnostics, *result.diagnostics],
        line_num_spacing=count_digits(len(lines)),
        healed=result.healed,
    )


def _diagnostic_text(diagnostic: Diagnostic) -> Text:
    return Text(f"{diagnostic.level.value}: {diagnostic.description}", style=LEVEL_STYLES[diagnostic.level])


def render_report(report: CheckReport, console: Console) -> None:
    """Print the template with each diagnostic under the line it points at."""
    n_lines = len(report.text_lines)
    unplaced = [d for d in report.diagnostics if not d.has_position or d.line >= n_lines]
    for diagnostic in unplaced:
        console.print(_diagnostic_text(diagnostic))
    if unplaced:
        console.print()

    gutter = report.line_num_spacing + 3
    for i, line in enumerate(report.text_lines):
        console.print(Text(f"{i + 1:>{report.line_num_spacing}} | ", style="dim") + Text(line))
        for diagnostic in report.diagnostics:
            if diagnostic.line != i:
                continue
            if diagnostic.char >= 0:
                marker = Text(" " * (gutter + diagnostic.char) + "^ ", style="bold")
            else:
                marker = Text(" " * gutter + "> ", style="bold")
            console.print(marker + _diagnostic_text(diagnostic))

    if report.output:
        console.print(Panel(Text(report.output), title="output", title_align="left"))

    n_errors = len(report.diagnostics)
    if n_errors == 0:
        console.print("[bold green]OK[/bold green]  no errors found")
    elif report.healed:
        console.print(f"[bold yellow]WARN[/bold yellow]  {n_errors} error(s) found")
    else:
        console.print(f"[bold red]FAIL[/bold red]  {n_errors} error(s) found, template does not parse")
