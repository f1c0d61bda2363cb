"""
Environment variable helpers for the token manager configuration.

Values coming from .env files are often padded or left blank
(e.g. `APP2_TOKEN=`), so blank values count as unset everywhere.
"""

import os
from typing import Optional

from loguru import logger

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """
    Read a variable, stripped of surrounding whitespace.

    Args:
        key: Environment variable name
        default: Returned when the variable is missing or blank

    Returns:
        Stripped value or default
    """
    value = os.environ.get(key)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def get_env_bool(key: str, default: bool = False) -> bool:
    """
    Read an on/off flag such as LOG_TO_FILE.

    Unrecognized values fall back to the default with a warning.
    """
    value = get_env(key)
    if value is None:
        return default

    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False

    logger.warning(f"Ignoring unrecognized value for {key}: {value!r} (using {default})")
    return default
