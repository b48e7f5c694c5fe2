#!/usr/bin/env python3

"""Check templates for errors, reporting as many as possible in one run."""

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console

from tplheal.config import DEFAULT_CONFIG_FILE, get_config_from_spec
from tplheal.diagnostics import Diagnostic
from tplheal.engines import get_engine
from tplheal.exceptions import ConfigError
from tplheal.recovery import RecoveryDriver
from tplheal.report import SAMPLES, CheckReport, build_report, render_report
from tplheal.utils.log import add_file_handler, logger, set_console_level
from tplheal.utils.serialize import UNSET, recursive_merge

_console = Console(highlight=False)

_HELP_TEXT = """Check a template and report every error tplheal can find.

The engine stops at the first error, so tplheal heals what it can
(missing functions are stubbed, empty actions are blanked) and parses again,
up to [bold]--max-fixes[/bold] times. Then the template is rendered with the sample data.
"""

_CONFIG_SPEC_HELP_TEXT = """Path to config files, builtin config names, or key-value pairs.

Multiple configs will be recursively merged.

Examples:

[bold green]-c recovery.max_fixes=3[/bold green]

[bold green]-c my_config.yaml -c engine.strict_undefined=false[/bold green]
"""

app = typer.Typer(rich_markup_mode="rich", add_completion=False)


def _make_driver(config_spec: list[str], overrides: dict) -> RecoveryDriver:
    logger.debug(f"Building config from specs: {config_spec}")
    try:
        configs = [get_config_from_spec(spec) for spec in config_spec]
        config = recursive_merge(*configs)
        for section in ("recovery", "engine"):
            value = config.get(section)
            if value is not None and not isinstance(value, dict):
                raise ConfigError(f"{section!r} must be a mapping, got {value!r}")
        config = recursive_merge(config, overrides)
        engine = get_engine(config.get("engine") or {})
        return RecoveryDriver(engine, **(config.get("recovery") or {}))
    except (ConfigError, ValueError) as e:
        _console.print(f"[bold red]Invalid configuration:[/bold red] {e}", markup=True)
        raise typer.Exit(1)


def _read_template(template: Path | None, text: str | None) -> tuple[str, list[Diagnostic]]:
    if text is not None:
        return text, []
    if template is None:
        return "", [Diagnostic.misunderstood("couldn't accept file")]
    if str(template) == "-":
        return sys.stdin.read(), []
    try:
        return template.read_text(), []
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read {template}: {e}")
        return "", [Diagnostic.misunderstood(f"couldn't accept file: {e}")]


def _show(report: CheckReport, json_output: bool) -> None:
    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        render_report(report, _console)


# fmt: off
@app.command(help=_HELP_TEXT)
def check(
    template: Path | None = typer.Argument(None, help="Template file, or '-' to read from stdin", show_default=False),
    text: str | None = typer.Option(None, "-t", "--text", help="Template text (instead of a file)", rich_help_panel="Input"),
    data: str = typer.Option("", "-d", "--data", help="Sample data as JSON", rich_help_panel="Input"),
    data_file: Path | None = typer.Option(None, "--data-file", help="File with sample data as JSON", exists=True, dir_okay=False, rich_help_panel="Input"),
    functions: str = typer.Option("", "-f", "--functions", help="Comma-separated names of functions to stub before parsing", rich_help_panel="Input"),
    config_spec: list[str] = typer.Option([str(DEFAULT_CONFIG_FILE)], "-c", "--config", help=_CONFIG_SPEC_HELP_TEXT, rich_help_panel="Basic"),
    max_fixes: int | None = typer.Option(None, "--max-fixes", help="Maximum number of heals before giving up", rich_help_panel="Basic"),
    engine_class: str | None = typer.Option(None, "--engine", help="Template engine (e.g., 'jinja' or 'tplheal.engines.jinja.JinjaEngine')", rich_help_panel="Advanced"),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON", rich_help_panel="Output"),
    strict: bool = typer.Option(False, "--strict", help="Exit with status 2 if any error is found", rich_help_panel="Output"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Log every attempt and heal", rich_help_panel="Output"),
    log_file: Path | None = typer.Option(None, "--log-file", help="Also write a debug log to this file", rich_help_panel="Output"),
) -> None:
    # fmt: on
    if verbose:
        set_console_level(logging.DEBUG)
    if log_file is not None:
        add_file_handler(log_file, print_path=not json_output)

    driver = _make_driver(config_spec, {
        "recovery": {"max_fixes": UNSET if max_fixes is None else max_fixes},
        "engine": {"engine_class": engine_class or UNSET},
    })
    source, read_diagnostics = _read_template(template, text)
    if data_file is not None:
        try:
            data = data_file.read_text()
        except (OSError, UnicodeDecodeError) as e:
            logger.info(f"Could not read {data_file}: {e}")
            read_diagnostics.append(Diagnostic.misunderstood(f"failed to understand data: {e}"))
            data = ""

    report = build_report(driver, source, data, functions, diagnostics=read_diagnostics)
    _show(report, json_output)
    if strict and report.diagnostics:
        raise typer.Exit(2)


@app.command(help="Check and show one of the builtin sample templates.")
def sample(
    index: int = typer.Argument(0, help="Which sample to show"),
    config_spec: list[str] = typer.Option([str(DEFAULT_CONFIG_FILE)], "-c", "--config", help=_CONFIG_SPEC_HELP_TEXT),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    if not 0 <= index < len(SAMPLES):
        _console.print(f"[bold red]No sample {index}[/bold red], there are {len(SAMPLES)}")
        raise typer.Exit(1)
    chosen = SAMPLES[index]
    driver = _make_driver(config_spec, {})
    report = build_report(driver, chosen.raw_text, chosen.raw_data, chosen.raw_functions)
    _show(report, json_output)


if __name__ == "__main__":
    app()
