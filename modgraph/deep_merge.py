"""Logic for deep merging configuration dictionaries."""

from typing import Any


def deep_merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, values in 'update' winning.

    - Objects are merged recursively.
    - Arrays in 'update' replace 'base' arrays, so a config can narrow a list
      such as 'manifest_names' as well as extend it.
    """
    result = base.copy()
    for key, value in update.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            # Default: Replacement (scalars and arrays)
            result[key] = value
    return result
