"""Infrastructure layer for external dependencies.

This layer contains implementations for interacting with external systems:
the credential file on disk, the Graph API OAuth endpoints and the timer.
"""

from token_manager.infrastructure.json_credential_store import JsonCredentialStore
from token_manager.infrastructure.graph_token_exchanger import GraphTokenExchanger
from token_manager.infrastructure.schedule_timer import ScheduleTimer, ScheduledJobHandle

__all__ = [
    "JsonCredentialStore",
    "GraphTokenExchanger",
    "ScheduleTimer",
    "ScheduledJobHandle",
]
