"""Helpers for merging configs coming from files, specs and command line options."""

from typing import Any

UNSET = object()
"""Marks an option the user did not set, so it must not override config files."""


def recursive_merge(*dictionaries: dict | None) -> dict:
    """Merge dictionaries left to right; later values win, nested dicts merge.

    Values that are `UNSET` are skipped.
    """
    if not dictionaries:
        return {}
    result: dict[str, Any] = {}
    for d in dictionaries:
        if d is None:
            continue
        for key, value in d.items():
            if value is UNSET:
                continue
            if isinstance(value, dict) and isinstance(result.get(key), dict):
                result[key] = recursive_merge(result[key], value)
            elif isinstance(value, dict):
                result[key] = recursive_merge(value)
            else:
                result[key] = value
    return result
