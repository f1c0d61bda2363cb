"""Orchestration of credential renewal.

Key Components:
- renewal_scheduler: RenewalScheduler state machine and sweep
- bootstrap: explicit first-time exchange of initial tokens
- renewal: the exchange -> introspect -> store sequence both share
"""

from token_manager.orchestrator.renewal import exchange_and_store
from token_manager.orchestrator.renewal_scheduler import RenewalScheduler
from token_manager.orchestrator.bootstrap import bootstrap_identities

__all__ = [
    "exchange_and_store",
    "RenewalScheduler",
    "bootstrap_identities",
]
