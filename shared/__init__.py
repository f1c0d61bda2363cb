"""
Shared module for the Facebook token manager.
Contains common logging and environment utilities.
"""

from shared.utils.logging import setup_logging, mask_secret
from shared.utils.env import get_env, get_env_bool

__all__ = [
    "setup_logging",
    "mask_secret",
    "get_env",
    "get_env_bool",
]
