"""Diagnostic grammars: how one engine's error text maps onto a `Diagnostic`.

A grammar bundles every engine-specific phrase the recovery driver relies on,
so substituting an engine means supplying a new `DiagnosticGrammar` instead of
editing pattern rules. The shared error form is

    template: <name>:<line>: <description>
    template: <name>:<line>:<char>: <description>

with 1-based lines. Anything else extracts as a `misunderstood` diagnostic.
"""

import logging
import re
from re import Match, Pattern

from pydantic import BaseModel, ConfigDict

from tplheal.diagnostics import Diagnostic, Level

logger = logging.getLogger("tplheal.grammar")


class DiagnosticGrammar(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    version: int = 1
    """Bumped whenever a pattern changes meaning; conformance tests pin it."""
    error: Pattern = re.compile(
        r"template: (?P<name>.*?):(?:(?P<lead>\d+):)?(?P<tail>\d+): (?P<description>.*)", re.DOTALL
    )
    """Must define the groups `name`, `lead`, `tail` and `description`."""
    token: Pattern = re.compile(r"(['\"])(?P<token>.+?)\1")
    function_not_defined: Pattern
    """Group 1 is the name of the missing function."""
    missing_value: Pattern
    empty_command: Pattern
    """An action that holds nothing but trim markers and whitespace."""
    empty_template: str | None = None
    """Format string (with `{name}`) of the failure for executing a template with no body."""
    expression: Pattern | None = None
    """Group 1 is the expression an execution failure points at."""

    def extract(self, error_text: str, level: Level = Level.PARSE) -> Diagnostic:
        """Translate engine error text into a `Diagnostic`. Never raises."""
        match = self.error.search(error_text)
        if match is None:
            return Diagnostic.misunderstood(error_text)

        char = -1
        raw_line = match.group("tail")
        if match.group("lead") is not None:
            raw_line = match.group("lead")
            char = _to_int(match.group("tail"))

        line = _to_int(raw_line)
        if line >= 0:
            line -= 1
        if line < 0:
            char = -1
        return Diagnostic(line=line, char=char, description=match.group("description"), level=level)

    def locate_token(self, diagnostic: Diagnostic, lines: list[str]) -> int | None:
        """Find the character the first quoted token of the description sits at.

        Returns None when there is no token, the line is unknown, or the token
        does not occur exactly once on the line.
        """
        match = self.token.search(diagnostic.description)
        if match is None:
            return None
        return _unique_index(diagnostic.line, match.group("token"), lines)

    def locate_expression(self, diagnostic: Diagnostic, lines: list[str]) -> int | None:
        if self.expression is None:
            return None
        match = self.expression.search(diagnostic.description)
        if match is None:
            return None
        logger.debug("Execution failure points at expression %r", match.group(1))
        return _unique_index(diagnostic.line, match.group(1), lines)

    def undefined_function(self, description: str) -> str | None:
        match = self.function_not_defined.search(description)
        return match.group(1) if match else None

    def is_missing_value(self, description: str) -> bool:
        return self.missing_value.search(description) is not None

    def find_empty_command(self, text: str) -> Match | None:
        return self.empty_command.search(text)

    def is_empty_template(self, message: str, template_name: str) -> bool:
        if self.empty_template is None:
            return False
        return message == self.empty_template.format(name=template_name)


def _to_int(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return -1


def _unique_index(line_no: int, token: str, lines: list[str]) -> int | None:
    if not 0 <= line_no < len(lines):
        return None
    line = lines[line_no]
    first = line.find(token)
    # a token that appears twice leaves the position ambiguous
    if first < 0 or first != line.rfind(token):
        return None
    return first


GO_TEXT_TEMPLATE = DiagnosticGrammar(
    name="go-text-template",
    function_not_defined=re.compile(r'function "(.+)" not defined'),
    missing_value=re.compile(r"missing value for command"),
    empty_command=re.compile(r"\{\{(?:-?\s*?|\s*?-?)\}\}"),
    empty_template='template: {name}: "{name}" is an incomplete or empty template',
    expression=re.compile(r"<(\..+?)>"),
)

JINJA = DiagnosticGrammar(
    name="jinja2",
    function_not_defined=re.compile(r"No (?:filter|test) named '(.+?)'"),
    missing_value=re.compile(r"Expected an expression, got 'end of print statement'"),
    empty_command=re.compile(r"\{\{[-+]?\s*?[-+]?\}\}"),
    empty_template='template: {name}: "{name}" is an incomplete or empty template',
)

GRAMMARS = {grammar.name: grammar for grammar in (GO_TEXT_TEMPLATE, JINJA)}
