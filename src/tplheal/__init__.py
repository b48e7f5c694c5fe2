"""
This file provides:

- Path settings for global config file & relative directories
- Version numbering
- Protocols for the core components of tplheal.
  By the magic of protocols & duck typing, you can pretty much ignore them,
  unless you want the static type checking.
"""

__version__ = "0.3.0"

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Protocol

package_dir = Path(__file__).resolve().parent

from tplheal.diagnostics import Diagnostic, Level, split_lines  # noqa: E402
from tplheal.grammar import DiagnosticGrammar  # noqa: E402

# === Protocols ===
# You can ignore them unless you want static type checking.


class Engine(Protocol):
    """Protocol for the fail-fast template engines tplheal drives."""

    grammar: DiagnosticGrammar

    def new(self, name: str) -> Any:
        """Return an unparsed base template carrying an empty function environment."""
        ...

    def parse(self, text: str, base: Any) -> Any:
        """Parse `text` against `base`. Raises `TemplateFailure` on the first error."""
        ...

    def execute(self, template: Any, data: Any) -> str:
        """Render `template` with `data`. Raises `TemplateFailure` on the first error."""
        ...

    def with_functions(self, base: Any, functions: Mapping[str, Any]) -> Any:
        """Return a new base with `functions` added. Raises `InvalidFunctionName`."""
        ...

    def is_parsed(self, template: Any) -> bool: ...

    def name_of(self, template: Any) -> str: ...


def global_config_dir() -> Path:
    return Path(os.getenv("TPLHEAL_CONFIG_DIR", package_dir / "config"))


__all__ = [
    "Diagnostic",
    "DiagnosticGrammar",
    "Engine",
    "Level",
    "global_config_dir",
    "package_dir",
    "split_lines",
]
