"""Recovery driver: turns a fail-fast template engine into a multi-error reporter.

1. Parse the template.
2. On failure, extract a diagnostic from the engine's message and try to pin
   down its character position.
3. Heal the failure (stub a missing function or blank an empty command).
4. Parse again, up to `max_fixes` times, collecting diagnostics on the way.
5. Execute whatever parsed and report a runtime failure the same way.
"""

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel

from tplheal import Engine
from tplheal.diagnostics import Diagnostic, Level, split_lines
from tplheal.exceptions import TemplateFailure
from tplheal.healers import HEALERS, register_stubs

logger = logging.getLogger("tplheal.recovery")

MAX_FIXES = 10


class RecoveryConfig(BaseModel):
    max_fixes: int = MAX_FIXES
    """Maximum number of heals per template before giving up."""
    report_limit: bool = True
    """Add a `limit` diagnostic when `max_fixes` stops a heal that would have applied."""
    template_name: str = "input template"


class CheckResult(BaseModel):
    template: Any = None
    output: str = ""
    diagnostics: list[Diagnostic] = []
    healed: bool = False
    """True if the template parsed, possibly after healing."""


class RecoveryDriver:
    def __init__(self, engine: Engine, *, config_class: type = RecoveryConfig, healers=HEALERS, **kwargs):
        self.engine = engine
        self.config = config_class(**kwargs)
        self.healers = healers

    def recover(self, text: str, base: Any, depth: int = 0) -> tuple[Any, list[Diagnostic]]:
        """Parse `text`, healing and retrying on failure.

        Returns the parsed template, or `base` itself if the text could not be
        made to parse, together with every diagnostic found on the way, in the
        order the failures were met. Never raises for template errors.
        """
        template, diagnostics = self._attempt(text, base, depth)
        return (base if template is None else template), diagnostics

    def _attempt(self, text: str, base: Any, depth: int) -> tuple[Any, list[Diagnostic]]:
        grammar = self.engine.grammar
        try:
            return self.engine.parse(text, base), []
        except TemplateFailure as e:
            diagnostic = grammar.extract(e.message, Level.PARSE)
        logger.debug("Attempt %d failed: %s", depth, diagnostic)

        if diagnostic.level is Level.MISUNDERSTOOD:
            return None, [diagnostic]

        if diagnostic.char == -1:
            char = grammar.locate_token(diagnostic, split_lines(text))
            if char is not None:
                diagnostic = diagnostic.model_copy(update={"char": char})

        if depth >= self.config.max_fixes:
            logger.info(f"Reached the limit of {self.config.max_fixes} fixes, not healing further")
            diagnostics = [diagnostic]
            if self.config.report_limit and any(h.matches(grammar, diagnostic) for h in self.healers):
                diagnostics.append(self._limit_diagnostic())
            return None, diagnostics

        for healer in self.healers:
            heal = healer.heal(self.engine, diagnostic, text, base)
            if heal is None:
                continue
            logger.info(f"Healed line {diagnostic.line + 1} with {healer.name}, retrying")
            if heal.char is not None:
                diagnostic = diagnostic.model_copy(update={"char": heal.char})
            template, more = self._attempt(heal.text, heal.base, depth + 1)
            return template, [diagnostic, *more]

        return None, [diagnostic]

    def _limit_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            description=f"fix limit of {self.config.max_fixes} reached, further errors were not reported",
            level=Level.LIMIT,
        )

    def run_and_diagnose(self, template: Any, data: Any, text: str = "") -> tuple[str, list[Diagnostic]]:
        """Execute `template` and translate a runtime failure into a diagnostic.

        Execution failures are reported, never healed. A template with no body
        (which is what a template that never parsed is) is not an error.
        """
        grammar = self.engine.grammar
        try:
            return self.engine.execute(template, data), []
        except TemplateFailure as e:
            message = e.message
        if grammar.is_empty_template(message, self.engine.name_of(template)):
            return "", []

        diagnostic = grammar.extract(message, Level.EXEC)
        if diagnostic.level is not Level.MISUNDERSTOOD and diagnostic.char == -1:
            lines = split_lines(text)
            char = grammar.locate_expression(diagnostic, lines)
            if char is None:
                char = grammar.locate_token(diagnostic, lines)
            if char is not None:
                diagnostic = diagnostic.model_copy(update={"char": char})
        return "", [diagnostic]

    def check(self, text: str, data: Any = None, functions: Iterable[str] = ()) -> CheckResult:
        """Parse, heal and execute `text` in one go, from a fresh base template."""
        base = self.engine.new(self.config.template_name)
        base, diagnostics = register_stubs(self.engine, base, functions)

        template, parse_diagnostics = self.recover(text, base)
        output, exec_diagnostics = self.run_and_diagnose(template, data, text)

        healed = self.engine.is_parsed(template)
        logger.info(
            f"Checked {self.config.template_name!r}: {len(parse_diagnostics)} parse and "
            f"{len(exec_diagnostics)} exec diagnostic(s), healed={healed}"
        )
        return CheckResult(
            template=template,
            output=output,
            diagnostics=[*diagnostics, *parse_diagnostics, *exec_diagnostics],
            healed=healed,
        )
