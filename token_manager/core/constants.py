"""Constants and enumerations for the token manager.

This module centralizes all magic strings, numbers, and enumerations
to improve maintainability and avoid duplication.
"""

from enum import Enum
from typing import Final


# Facebook Graph API
FACEBOOK_API_VERSION: Final[str] = "v18.0"
FACEBOOK_GRAPH_URL: Final[str] = "https://graph.facebook.com"
EXCHANGE_GRANT_TYPE: Final[str] = "fb_exchange_token"

# HTTP
REQUEST_TIMEOUT_SECONDS: Final[int] = 30

# Renewal
RENEWAL_THRESHOLD_DAYS: Final[int] = 7
RENEWAL_TRIGGER_TIME: Final[str] = "02:00"
SECONDS_PER_DAY: Final[int] = 60 * 60 * 24
TIMER_POLL_INTERVAL_SECONDS: Final[float] = 1.0

# Storage
DEFAULT_TOKENS_FILE: Final[str] = "data/tokens.json"
CORRUPT_FILE_SUFFIX: Final[str] = ".corrupt"

# Identity configuration
DEFAULT_MAX_APP_SLOTS: Final[int] = 10
CREDENTIALS_FILE_SECTION: Final[str] = "facebook_apps"

# Environment variable names
ENV_APP_ID_TEMPLATE: Final[str] = "APP{slot}_ID"
ENV_APP_SECRET_TEMPLATE: Final[str] = "APP{slot}_SECRET"
ENV_APP_TOKEN_TEMPLATE: Final[str] = "APP{slot}_TOKEN"
ENV_MAX_APP_SLOTS: Final[str] = "MAX_APP_SLOTS"
ENV_CREDENTIALS_FILE: Final[str] = "CREDENTIALS_FILE"
ENV_TOKENS_FILE: Final[str] = "TOKENS_FILE"
ENV_API_VERSION: Final[str] = "FACEBOOK_API_VERSION"
ENV_RENEWAL_THRESHOLD_DAYS: Final[str] = "RENEWAL_THRESHOLD_DAYS"
ENV_RENEWAL_TIME: Final[str] = "RENEWAL_TIME"
ENV_REQUEST_TIMEOUT: Final[str] = "REQUEST_TIMEOUT_SECONDS"
ENV_MAX_WORKERS: Final[str] = "RENEWAL_MAX_WORKERS"
ENV_LOG_LEVEL: Final[str] = "LOG_LEVEL"
ENV_LOG_TO_FILE: Final[str] = "LOG_TO_FILE"

LOG_LEVEL_DEFAULT: Final[str] = "INFO"


class SchedulerState(Enum):
    """Lifecycle states of the renewal scheduler."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class RenewalStatus(Enum):
    """Outcome of one identity's renewal attempt."""

    RENEWED = "renewed"
    NOT_DUE = "not_due"
    NO_RECORD = "no_record"
    NO_INITIAL_CREDENTIAL = "no_initial_credential"
    FAILED = "failed"
