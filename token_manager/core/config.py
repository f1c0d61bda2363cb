"""Configuration management for the token manager.

This module provides a unified configuration system with clear precedence:
CLI arguments > Environment variables (.env included) > YAML files > Defaults

The configuration is type-safe using dataclasses and supports validation.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger

from shared.utils.env import get_env, get_env_bool
from token_manager.core.exceptions import ConfigurationError
from token_manager.core.constants import (
    CREDENTIALS_FILE_SECTION,
    DEFAULT_MAX_APP_SLOTS,
    DEFAULT_TOKENS_FILE,
    ENV_API_VERSION,
    ENV_APP_ID_TEMPLATE,
    ENV_APP_SECRET_TEMPLATE,
    ENV_APP_TOKEN_TEMPLATE,
    ENV_CREDENTIALS_FILE,
    ENV_LOG_LEVEL,
    ENV_LOG_TO_FILE,
    ENV_MAX_APP_SLOTS,
    ENV_MAX_WORKERS,
    ENV_RENEWAL_THRESHOLD_DAYS,
    ENV_RENEWAL_TIME,
    ENV_REQUEST_TIMEOUT,
    ENV_TOKENS_FILE,
    FACEBOOK_API_VERSION,
    LOG_LEVEL_DEFAULT,
    RENEWAL_THRESHOLD_DAYS,
    RENEWAL_TRIGGER_TIME,
    REQUEST_TIMEOUT_SECONDS,
)
from token_manager.domain.models import Identity

_TRIGGER_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_API_VERSION_PATTERN = re.compile(r"^v\d+\.\d+$")


def _int_from_env(env_var: str, default: int, minimum: int = 0) -> int:
    """Read an integer setting, rejecting garbage instead of guessing."""
    value = get_env(env_var)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigurationError(
            f"Invalid integer for {env_var}: {value}",
            details={"env_var": env_var}
        )
    if parsed < minimum:
        raise ConfigurationError(
            f"{env_var} must be >= {minimum}, got {parsed}",
            details={"env_var": env_var}
        )
    return parsed


@dataclass
class TokenManagerConfig:
    """Application-wide configuration."""

    store_path: Path = Path(DEFAULT_TOKENS_FILE)
    api_version: str = FACEBOOK_API_VERSION
    renewal_threshold_days: int = RENEWAL_THRESHOLD_DAYS
    trigger_time: str = RENEWAL_TRIGGER_TIME
    request_timeout: int = REQUEST_TIMEOUT_SECONDS
    max_workers: int = 1
    log_level: str = LOG_LEVEL_DEFAULT
    log_to_file: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.store_path = Path(self.store_path)
        if not _TRIGGER_TIME_PATTERN.match(self.trigger_time):
            raise ConfigurationError(
                f"Invalid renewal time '{self.trigger_time}', expected HH:MM"
            )
        if not _API_VERSION_PATTERN.match(self.api_version):
            raise ConfigurationError(
                f"Invalid Graph API version '{self.api_version}', expected e.g. v18.0"
            )
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.request_timeout < 1:
            raise ConfigurationError(f"request_timeout must be >= 1, got {self.request_timeout}")

    @classmethod
    def from_env(cls) -> "TokenManagerConfig":
        """Create configuration from environment variables.

        Returns:
            TokenManagerConfig instance

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        return cls(
            store_path=Path(get_env(ENV_TOKENS_FILE, DEFAULT_TOKENS_FILE)),
            api_version=get_env(ENV_API_VERSION, FACEBOOK_API_VERSION),
            renewal_threshold_days=_int_from_env(
                ENV_RENEWAL_THRESHOLD_DAYS, RENEWAL_THRESHOLD_DAYS
            ),
            trigger_time=get_env(ENV_RENEWAL_TIME, RENEWAL_TRIGGER_TIME),
            request_timeout=_int_from_env(ENV_REQUEST_TIMEOUT, REQUEST_TIMEOUT_SECONDS, minimum=1),
            max_workers=_int_from_env(ENV_MAX_WORKERS, 1, minimum=1),
            log_level=get_env(ENV_LOG_LEVEL, LOG_LEVEL_DEFAULT).upper(),
            log_to_file=get_env_bool(ENV_LOG_TO_FILE, False),
        )


class EnvIdentitySource:
    """Loads configured identities from environment slots and a YAML file.

    Environment slots are APP1_ID/APP1_SECRET/APP1_TOKEN, APP2_..., up to
    MAX_APP_SLOTS. The optional YAML file (CREDENTIALS_FILE) holds a list
    under `facebook_apps`:

        facebook_apps:
          - id: "1234567890"
            secret: "..."
            token: "..."      # optional, bootstrap only

    Entries without a well-formed id/secret pair are skipped with a warning.
    When an id appears twice the first definition wins (environment first).
    """

    def __init__(
        self,
        environ: Optional[Dict[str, str]] = None,
        credentials_file: Optional[str] = None,
        max_slots: Optional[int] = None,
    ):
        """Initialize the identity source.

        Args:
            environ: Mapping to read instead of os.environ (tests)
            credentials_file: YAML credentials file; defaults to CREDENTIALS_FILE
            max_slots: Number of APP{n}_* slots to scan; defaults to MAX_APP_SLOTS
        """
        self._environ = environ
        self._credentials_file = credentials_file
        self._max_slots = max_slots

    def _get(self, key: str) -> Optional[str]:
        if self._environ is None:
            return get_env(key)
        value = self._environ.get(key)
        if value is None or not str(value).strip():
            return None
        return str(value).strip()

    def load_identities(self) -> List[Identity]:
        """Load the currently configured identities.

        Returns:
            List of Identity, environment slots first, then file entries

        Raises:
            ConfigurationError: If the credentials file exists but cannot be parsed
        """
        identities: List[Identity] = []
        seen = set()

        for identity in self._load_from_env() + self._load_from_file():
            if identity.identity_id in seen:
                logger.warning(
                    f"Identity {identity.identity_id} configured more than once, keeping first definition"
                )
                continue
            seen.add(identity.identity_id)
            identities.append(identity)

        logger.debug(f"Loaded {len(identities)} configured identit(y/ies)")
        return identities

    def _slot_count(self) -> int:
        if self._max_slots is not None:
            return self._max_slots
        value = self._get(ENV_MAX_APP_SLOTS)
        if value is None:
            return DEFAULT_MAX_APP_SLOTS
        try:
            return max(int(value), 0)
        except ValueError:
            raise ConfigurationError(
                f"Invalid integer for {ENV_MAX_APP_SLOTS}: {value}",
                details={"env_var": ENV_MAX_APP_SLOTS}
            )

    def _load_from_env(self) -> List[Identity]:
        identities = []
        for slot in range(1, self._slot_count() + 1):
            app_id = self._get(ENV_APP_ID_TEMPLATE.format(slot=slot))
            secret = self._get(ENV_APP_SECRET_TEMPLATE.format(slot=slot))
            token = self._get(ENV_APP_TOKEN_TEMPLATE.format(slot=slot))

            if not app_id and not secret:
                continue
            if not app_id or not secret:
                logger.warning(
                    f"Slot APP{slot} is missing its "
                    f"{'secret' if app_id else 'id'}, identity not scheduled"
                )
                continue

            identities.append(
                Identity(identity_id=app_id, client_secret=secret, initial_credential=token)
            )
        return identities

    def _load_from_file(self) -> List[Identity]:
        path_value = self._credentials_file or self._get(ENV_CREDENTIALS_FILE)
        if not path_value:
            return []

        credentials_file = Path(path_value)
        if not credentials_file.exists():
            logger.warning(f"Credentials file not found: {credentials_file}")
            return []

        try:
            with open(credentials_file, "r", encoding="utf-8") as f:
                content = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to parse credentials file: {e}",
                details={"file": str(credentials_file)}
            )

        entries = content.get(CREDENTIALS_FILE_SECTION, []) if isinstance(content, dict) else []
        if not isinstance(entries, list):
            raise ConfigurationError(
                f"'{CREDENTIALS_FILE_SECTION}' must be a list",
                details={"file": str(credentials_file)}
            )

        identities = []
        for index, entry in enumerate(entries):
            identity = self._identity_from_entry(entry)
            if identity is None:
                logger.warning(
                    f"Entry #{index} in {credentials_file} has no id/secret pair, identity not scheduled"
                )
                continue
            identities.append(identity)
        return identities

    @staticmethod
    def _identity_from_entry(entry: Any) -> Optional[Identity]:
        if not isinstance(entry, dict):
            return None
        app_id = str(entry.get("id") or "").strip()
        secret = str(entry.get("secret") or "").strip()
        token = str(entry.get("token") or "").strip() or None
        if not app_id or not secret:
            return None
        return Identity(identity_id=app_id, client_secret=secret, initial_credential=token)
