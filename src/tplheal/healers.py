"""Healing strategies.

A healer gets the recovery driver past one diagnosed parse failure so the
engine can report the next one. Healing only restores parseability: a healed
template says nothing about what the author meant.
"""

import logging
import re
from collections.abc import Iterable
from typing import Any, NamedTuple

from tplheal import Engine
from tplheal.diagnostics import Diagnostic, split_lines
from tplheal.exceptions import InvalidFunctionName
from tplheal.grammar import DiagnosticGrammar

logger = logging.getLogger("tplheal.healers")

_NOT_A_LINE_BREAK = re.compile(r"[^\r\n]")


def noop(*args, **kwargs) -> str:
    """Stand-in for a function the template calls but nobody defined."""
    return ""


class Heal(NamedTuple):
    text: str
    base: Any
    char: int | None = None
    """Position found for the diagnostic while healing, if any."""


class FunctionStubHealer:
    """Registers a no-op under the name of an undefined function."""

    name = "function-stub"

    def matches(self, grammar: DiagnosticGrammar, diagnostic: Diagnostic) -> bool:
        return grammar.undefined_function(diagnostic.description) is not None

    def heal(self, engine: Engine, diagnostic: Diagnostic, text: str, base: Any) -> Heal | None:
        function = engine.grammar.undefined_function(diagnostic.description)
        if function is None:
            return None
        try:
            healed = engine.with_functions(base, {function: noop})
        except InvalidFunctionName:
            logger.info("Cannot stub function %r, giving up on this error", function)
            return None
        logger.debug("Stubbed function %r", function)
        return Heal(text=text, base=healed)


class EmptyCommandHealer:
    """Blanks out the first empty action, e.g. ``{{ }}``, keeping every offset in place."""

    name = "empty-command"

    def matches(self, grammar: DiagnosticGrammar, diagnostic: Diagnostic) -> bool:
        return grammar.is_missing_value(diagnostic.description)

    def heal(self, engine: Engine, diagnostic: Diagnostic, text: str, base: Any) -> Heal | None:
        grammar = engine.grammar
        if not grammar.is_missing_value(diagnostic.description):
            return None
        match = grammar.find_empty_command(text)
        if match is None:
            return None

        char = None
        lines = split_lines(text)
        if 0 <= diagnostic.line < len(lines):
            in_line = grammar.find_empty_command(lines[diagnostic.line])
            if in_line is not None:
                char = in_line.start()

        span = match.group(0)
        # line breaks inside the span survive so line numbers stay valid
        blank = _NOT_A_LINE_BREAK.sub(" ", span)
        logger.debug("Blanked empty command %r", span)
        return Heal(text=text.replace(span, blank, 1), base=base, char=char)


HEALERS = (FunctionStubHealer(), EmptyCommandHealer())


def register_stubs(engine: Engine, base: Any, names: Iterable[str]) -> tuple[Any, list[Diagnostic]]:
    """Register a no-op for each of `names` ahead of parsing.

    Names the engine rejects do not abort anything; each becomes a
    `misunderstood` diagnostic and the remaining names are still registered.
    """
    diagnostics = []
    for name in names:
        name = name.strip()
        try:
            base = engine.with_functions(base, {name: noop})
        except InvalidFunctionName:
            diagnostics.append(Diagnostic.misunderstood(f'bad function name provided: "{name}"'))
    return base, diagnostics
