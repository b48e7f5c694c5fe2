"""Structured diagnostics produced from template engine failures."""

import re
from enum import Enum

from pydantic import BaseModel, model_validator

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class Level(str, Enum):
    MISUNDERSTOOD = "misunderstood"
    """The engine's error text did not match its grammar; passed through verbatim."""
    PARSE = "parse"
    EXEC = "exec"
    LIMIT = "limit"
    """The fix limit stopped healing before all errors were reported."""


class Diagnostic(BaseModel):
    line: int = -1
    """Zero-based line index, or -1 if unknown."""
    char: int = -1
    """Zero-based character offset within `line`, or -1 if unknown."""
    description: str
    level: Level = Level.PARSE

    @model_validator(mode="after")
    def _check_position(self) -> "Diagnostic":
        if self.char >= 0 and self.line < 0:
            raise ValueError("a character position requires a line")
        if self.level is Level.MISUNDERSTOOD and (self.line != -1 or self.char != -1):
            raise ValueError("misunderstood diagnostics carry no position")
        return self

    @classmethod
    def misunderstood(cls, description: str) -> "Diagnostic":
        return cls(line=-1, char=-1, description=description, level=Level.MISUNDERSTOOD)

    @property
    def has_position(self) -> bool:
        return self.line >= 0

    def __str__(self) -> str:
        if not self.has_position:
            return f"[{self.level.value}] {self.description}"
        loc = f"{self.line + 1}"
        if self.char >= 0:
            loc += f":{self.char}"
        return f"[{self.level.value}] {loc}: {self.description}"


def split_lines(text: str) -> list[str]:
    """Split template text into lines the way diagnostics index them.

    Breaks on ``\\r\\n``, ``\\r`` and ``\\n`` alike, which is also how Jinja counts
    line numbers. A trailing line break yields a trailing empty line.
    """
    return _LINE_BREAK.split(text)


def count_digits(n: int) -> int:
    return len(str(abs(n)))
