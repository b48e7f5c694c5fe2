class TplhealError(Exception):
    """Base class for all tplheal errors."""


class TemplateFailure(TplhealError):
    """Raised by an engine when parsing or executing a template fails.

    ``message`` is the engine's free-text error; the driver hands it to the
    engine's grammar and never re-raises it.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidFunctionName(TplhealError, ValueError):
    """Raised when a function cannot be registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"bad function name provided: {name!r}")
        self.name = name


class ConfigError(TplhealError):
    """Raised for config specs that cannot be read or parsed."""
