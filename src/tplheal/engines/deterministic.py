"""Deterministic engine for testing.

Replays a fixed list of Go ``text/template`` style failures instead of parsing
anything. A scripted failure stops being reported once the condition behind it
is gone: a missing function once it has been registered, a missing command
value once the text holds no empty action. Every other failure is reported on
every attempt.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from tplheal.exceptions import InvalidFunctionName, TemplateFailure
from tplheal.grammar import GO_TEXT_TEMPLATE

_GO_IDENTIFIER = re.compile(r"[^\W\d]\w*")


class DeterministicEngineConfig(BaseModel):
    errors: list[str] = []
    """Parse failures, checked in order on every attempt."""
    exec_error: str | None = None
    """Failure raised when executing a parsed template."""
    output: str | None = None
    """Rendered output; defaults to the parsed text."""


@dataclass(frozen=True)
class ScriptedBase:
    name: str
    functions: frozenset[str] = field(default=frozenset())


@dataclass(frozen=True)
class ScriptedTemplate:
    name: str
    text: str
    functions: frozenset[str]


class DeterministicEngine:
    grammar = GO_TEXT_TEMPLATE

    def __init__(self, *, config_class: type = DeterministicEngineConfig, **kwargs):
        self.config = config_class(**kwargs)
        self.parse_calls: list[str] = []
        self.exec_calls = 0

    def new(self, name: str) -> ScriptedBase:
        return ScriptedBase(name=name)

    def parse(self, text: str, base: ScriptedBase) -> ScriptedTemplate:
        self.parse_calls.append(text)
        for message in self.config.errors:
            if not self._resolved(message, text, base):
                raise TemplateFailure(message)
        return ScriptedTemplate(name=base.name, text=text, functions=base.functions)

    def _resolved(self, message: str, text: str, base: ScriptedBase) -> bool:
        function = self.grammar.undefined_function(message)
        if function is not None:
            return function in base.functions
        if self.grammar.is_missing_value(message):
            return self.grammar.find_empty_command(text) is None
        return False

    def execute(self, template: ScriptedTemplate | ScriptedBase, data: Any) -> str:
        self.exec_calls += 1
        if isinstance(template, ScriptedBase):
            raise TemplateFailure(self.grammar.empty_template.format(name=template.name))
        if self.config.exec_error is not None:
            raise TemplateFailure(self.config.exec_error)
        return template.text if self.config.output is None else self.config.output

    def with_functions(self, base: ScriptedBase, functions: Mapping[str, Any]) -> ScriptedBase:
        for name in functions:
            if not isinstance(name, str) or not _GO_IDENTIFIER.fullmatch(name):
                raise InvalidFunctionName(name)
        return ScriptedBase(name=base.name, functions=base.functions | frozenset(functions))

    def is_parsed(self, template: Any) -> bool:
        return isinstance(template, ScriptedTemplate)

    def name_of(self, template: ScriptedTemplate | ScriptedBase) -> str:
        return template.name
