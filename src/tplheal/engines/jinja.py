"""Jinja2 adapter that reports failures in the shared diagnostic grammar."""

import logging
import re
import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from jinja2 import Environment, StrictUndefined, Template, TemplateError, TemplateSyntaxError, Undefined
from pydantic import BaseModel

from tplheal.exceptions import InvalidFunctionName, TemplateFailure
from tplheal.grammar import JINJA

logger = logging.getLogger("tplheal.engines.jinja")

# Filter and test names are identifiers, optionally dotted (`{{ x|ns.fmt }}`).
_FUNCTION_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*")
_TEMPLATE_FILENAME = "<template>"


class JinjaEngineConfig(BaseModel):
    strict_undefined: bool = True
    """Fail on undefined variables instead of rendering them empty."""
    trim_blocks: bool = False
    lstrip_blocks: bool = False
    keep_trailing_newline: bool = True


@dataclass(frozen=True)
class JinjaBase:
    """An unparsed template: its name and the environment it will be parsed against."""

    name: str
    environment: Environment
    stubs: tuple[str, ...] = field(default=())


@dataclass(frozen=True)
class JinjaTemplate:
    name: str
    template: Template


class JinjaEngine:
    grammar = JINJA

    def __init__(self, *, config_class: type = JinjaEngineConfig, **kwargs):
        self.config = config_class(**kwargs)

    def new(self, name: str) -> JinjaBase:
        environment = Environment(
            undefined=StrictUndefined if self.config.strict_undefined else Undefined,
            trim_blocks=self.config.trim_blocks,
            lstrip_blocks=self.config.lstrip_blocks,
            keep_trailing_newline=self.config.keep_trailing_newline,
        )
        return JinjaBase(name=name, environment=environment)

    def parse(self, text: str, base: JinjaBase) -> JinjaTemplate:
        try:
            template = base.environment.from_string(text)
        except TemplateSyntaxError as e:
            raise TemplateFailure(self._format(base.name, e.lineno, e.message or str(e))) from e
        except TemplateError as e:
            raise TemplateFailure(self._format(base.name, None, str(e))) from e
        return JinjaTemplate(name=base.name, template=template)

    def execute(self, template: JinjaTemplate | JinjaBase, data: Any) -> str:
        if isinstance(template, JinjaBase):
            raise TemplateFailure(self.grammar.empty_template.format(name=template.name))
        context = data if isinstance(data, Mapping) else {"data": data}
        try:
            return template.template.render(context)
        except Exception as e:
            # Runtime failures come from user templates and may be of any type.
            raise TemplateFailure(self._format(template.name, _template_lineno(e), _describe(e))) from e

    def with_functions(self, base: JinjaBase, functions: Mapping[str, Any]) -> JinjaBase:
        """Return a new base whose environment also knows `functions`.

        Each callable is registered as a filter, a test and a global, so it
        satisfies whichever way the template refers to it. The environment of
        `base` is left untouched.
        """
        for name in functions:
            if not isinstance(name, str) or not _FUNCTION_NAME.fullmatch(name):
                raise InvalidFunctionName(name)
        environment = base.environment.overlay()
        # overlay() shares these tables with its parent; copy before adding
        environment.filters = {**base.environment.filters, **functions}
        environment.tests = {**base.environment.tests, **functions}
        environment.globals = {**base.environment.globals, **functions}
        logger.debug("Registered %s on template %r", sorted(functions), base.name)
        return JinjaBase(name=base.name, environment=environment, stubs=base.stubs + tuple(functions))

    def is_parsed(self, template: Any) -> bool:
        return isinstance(template, JinjaTemplate)

    def name_of(self, template: JinjaTemplate | JinjaBase) -> str:
        return template.name

    @staticmethod
    def _format(name: str, lineno: int | None, message: str) -> str:
        if lineno is None:
            return f"template: {name}: {message}"
        return f"template: {name}:{lineno}: {message}"


def _template_lineno(exc: BaseException) -> int | None:
    """Line of the innermost template frame in the traceback Jinja rewrote for us."""
    lineno = getattr(exc, "lineno", None)
    if lineno:
        return lineno
    for frame in reversed(traceback.extract_tb(exc.__traceback__)):
        if frame.filename == _TEMPLATE_FILENAME:
            return frame.lineno
    return None


def _describe(exc: BaseException) -> str:
    if isinstance(exc, TemplateError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"
