"""
Configuration resolution and environment variable substitution.

Substitutes ``${VAR_NAME}`` references so secrets can stay out of config.yaml.
"""

import os
import re
from typing import Any

_ENV_VAR = re.compile(r"\${([^}]+)}")


def resolve_config(config_data: dict[str, Any]) -> dict[str, Any]:
    """
    Resolve configuration with environment variable substitution.

    Unset variables are left as-is so validation can point at them.
    """
    return _resolve_value(config_data)


def _resolve_value(value: Any) -> Any:
    """Recursively resolve values in configuration."""
    if isinstance(value, dict):
        return {k: _resolve_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_resolve_value(item) for item in value]
    elif isinstance(value, str):
        return _ENV_VAR.sub(lambda m: os.getenv(m.group(1), m.group(0)), value)
    else:
        return value
