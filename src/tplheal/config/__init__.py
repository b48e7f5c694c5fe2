"""Config files and config specs.

A config spec is one of

- a path to a YAML file,
- the name of a builtin config file (with or without `.yaml`),
- a `key.subkey=value` pair, where `value` is parsed as YAML.
"""

from pathlib import Path

import yaml

from tplheal import global_config_dir
from tplheal.exceptions import ConfigError

builtin_config_dir = global_config_dir()

DEFAULT_CONFIG_FILE = builtin_config_dir / "default.yaml"


def get_config_path(config_spec: str | Path) -> Path:
    """Resolve a config file from a path or a builtin config name."""
    config_spec = Path(config_spec)
    candidates = [
        config_spec,
        builtin_config_dir / config_spec,
        builtin_config_dir / config_spec.with_suffix(".yaml"),
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise ConfigError(f"Could not find config file for {str(config_spec)!r} (tried: {candidates})")


def _key_value_spec_to_nested_dict(config_spec: str) -> dict:
    key, _, value = config_spec.partition("=")
    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse value of {config_spec!r}: {e}") from e
    result = parsed
    for part in reversed(key.strip().split(".")):
        result = {part: result}
    return result


def get_config_from_spec(config_spec: str | Path) -> dict:
    if isinstance(config_spec, str) and "=" in config_spec:
        return _key_value_spec_to_nested_dict(config_spec)
    path = get_config_path(config_spec)
    try:
        return yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Could not parse config file {path}: {e}") from e
