#!/usr/bin/env python3
"""
Facebook Token Manager Runner.

Entry point for the credential renewal service:
1. Load configuration from environment (.env supported)
2. Build the credential store, exchanger and identity source
3. Run the requested command
4. Exit with proper status codes

Commands:
    run     Start the renewal scheduler (default); runs until SIGINT/SIGTERM
    init    Exchange each app's initial token (APPn_TOKEN) for a long-lived one
    check   Run one renewal sweep now and exit
    status  Show days remaining for every configured app

Environment Variables:
    Required (per app, n = 1..MAX_APP_SLOTS):
    - APPn_ID: Facebook app ID
    - APPn_SECRET: Facebook app secret
    - APPn_TOKEN: Initial short-lived token (init only)

    Optional:
    - CREDENTIALS_FILE: YAML file with a `facebook_apps` list
    - TOKENS_FILE: Credential store path (default: data/tokens.json)
    - FACEBOOK_API_VERSION: Graph API version (default: v18.0)
    - RENEWAL_THRESHOLD_DAYS: Renew when fewer days remain (default: 7)
    - RENEWAL_TIME: Daily trigger, local HH:MM (default: 02:00)
    - RENEWAL_MAX_WORKERS: Apps renewed in parallel (default: 1)
    - LOG_LEVEL: Logging level (default: INFO)
    - LOG_TO_FILE: Also log to logs/token_manager_YYYYMMDD.log

Exit Codes:
    0: Success
    1: Configuration error
    2: Authentication error
    3: Renewal failures
    4: Storage error
"""

import argparse
import signal
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from loguru import logger

from shared.utils.logging import setup_logging
from token_manager.core.config import EnvIdentitySource, TokenManagerConfig
from token_manager.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    StorageError,
)
from token_manager.domain.policy import RenewalPolicy
from token_manager.infrastructure.graph_token_exchanger import GraphTokenExchanger
from token_manager.infrastructure.json_credential_store import JsonCredentialStore
from token_manager.infrastructure.schedule_timer import ScheduleTimer
from token_manager.orchestrator.bootstrap import bootstrap_identities
from token_manager.orchestrator.renewal_scheduler import RenewalScheduler
from token_manager.platforms.facebook.graph_client import FacebookGraphClient

EXIT_SUCCESS = 0
EXIT_CONFIGURATION_ERROR = 1
EXIT_AUTHENTICATION_ERROR = 2
EXIT_RENEWAL_FAILURES = 3
EXIT_STORAGE_ERROR = 4


def configure_logging(config: TokenManagerConfig) -> None:
    """Console logging, plus a daily file when LOG_TO_FILE is set."""
    log_file = None
    if config.log_to_file:
        log_file = str(Path("logs") / f"token_manager_{datetime.now():%Y%m%d}.log")
        Path("logs").mkdir(exist_ok=True)
    setup_logging(level=config.log_level, log_file=log_file)


def build_scheduler(
    config: TokenManagerConfig,
    identity_source: EnvIdentitySource,
    store: JsonCredentialStore,
    exchanger: GraphTokenExchanger,
    timer: Optional[ScheduleTimer] = None,
) -> RenewalScheduler:
    """Wire a RenewalScheduler from configuration."""
    return RenewalScheduler(
        identity_source=identity_source,
        store=store,
        exchanger=exchanger,
        timer=timer,
        policy=RenewalPolicy(config.renewal_threshold_days),
        trigger_time=config.trigger_time,
        max_workers=config.max_workers,
    )


def run_scheduler(
    config: TokenManagerConfig,
    identity_source: EnvIdentitySource,
    store: JsonCredentialStore,
    exchanger: GraphTokenExchanger,
) -> int:
    """Start the scheduler and block until SIGINT/SIGTERM.

    Raises:
        ConfigurationError: If no identities are configured
    """
    if not identity_source.load_identities():
        raise ConfigurationError("No apps configured, nothing to manage")

    timer = ScheduleTimer()
    scheduler = build_scheduler(config, identity_source, store, exchanger, timer)
    shutdown = threading.Event()

    def handle_signal(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, shutting down")
        shutdown.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    scheduler.start()
    logger.info("Press Ctrl+C to stop")

    while not shutdown.wait(timeout=1.0):
        pass

    scheduler.stop()
    timer.shutdown()
    logger.success("Token manager stopped")
    return EXIT_SUCCESS


def run_bootstrap(
    config: TokenManagerConfig,
    identity_source: EnvIdentitySource,
    store: JsonCredentialStore,
    exchanger: GraphTokenExchanger,
) -> int:
    outcomes = bootstrap_identities(
        identity_source.load_identities(),
        exchanger,
        store,
        policy=RenewalPolicy(config.renewal_threshold_days),
    )
    if any(not outcome.succeeded for outcome in outcomes):
        return EXIT_RENEWAL_FAILURES
    logger.info("Run `token-manager run` to start automatic renewal")
    return EXIT_SUCCESS


def run_check(
    config: TokenManagerConfig,
    identity_source: EnvIdentitySource,
    store: JsonCredentialStore,
    exchanger: GraphTokenExchanger,
) -> int:
    scheduler = build_scheduler(config, identity_source, store, exchanger)
    result = scheduler.check_and_renew_all()
    return EXIT_RENEWAL_FAILURES if result.failed else EXIT_SUCCESS


def show_status(
    config: TokenManagerConfig,
    identity_source: EnvIdentitySource,
    store: JsonCredentialStore,
    verify: bool = False,
) -> int:
    """Log expiry information for every configured app."""
    policy = RenewalPolicy(config.renewal_threshold_days)
    identities = identity_source.load_identities()
    if not identities:
        raise ConfigurationError("No apps configured")

    logger.info("=" * 60)
    logger.info("Token status")
    logger.info("=" * 60)

    for identity in identities:
        record = store.get(identity.identity_id)
        if record is None:
            logger.warning(f"App {identity.identity_id}: no stored token")
            continue

        expires = datetime.fromtimestamp(record.expires_at)
        days_left = policy.days_until_expiration(record.expires_at)
        due = "renewal due" if policy.needs_renewal(record.expires_at) else "ok"
        logger.info(
            f"App {identity.identity_id}: expires {expires:%Y-%m-%d %H:%M} "
            f"({days_left} day(s), {due}), last updated {record.last_updated.isoformat()}"
        )

        if verify:
            client = FacebookGraphClient(
                identity.identity_id,
                store,
                app_secret=identity.client_secret,
                api_version=config.api_version,
                timeout=config.request_timeout,
            )
            client.verify_token()

    return EXIT_SUCCESS


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Facebook long-lived token manager")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Start the daily renewal scheduler (default)")
    subparsers.add_parser("init", help="Exchange initial tokens for long-lived ones")
    subparsers.add_parser("check", help="Run one renewal sweep now")
    status_parser = subparsers.add_parser("status", help="Show token expiry per app")
    status_parser.add_argument(
        "--verify",
        action="store_true",
        help="Also call the Graph API with each stored token",
    )

    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Run the token manager CLI.

    Returns:
        Process exit code
    """
    args = parse_args(argv)

    try:
        config = TokenManagerConfig.from_env()
    except ConfigurationError as e:
        setup_logging()
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIGURATION_ERROR

    if args.verbose:
        config.log_level = "DEBUG"
    configure_logging(config)

    logger.info("=" * 60)
    logger.info("Facebook Token Manager")
    logger.info("=" * 60)

    identity_source = EnvIdentitySource()
    store = JsonCredentialStore(config.store_path)
    exchanger = GraphTokenExchanger(
        api_version=config.api_version,
        timeout=config.request_timeout,
    )

    command = args.command or "run"
    try:
        if command == "init":
            return run_bootstrap(config, identity_source, store, exchanger)
        if command == "check":
            return run_check(config, identity_source, store, exchanger)
        if command == "status":
            return show_status(config, identity_source, store, verify=args.verify)
        return run_scheduler(config, identity_source, store, exchanger)

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIGURATION_ERROR
    except AuthenticationError as e:
        logger.error(f"Authentication error: {e}")
        return EXIT_AUTHENTICATION_ERROR
    except StorageError as e:
        logger.error(f"Storage error: {e}")
        return EXIT_STORAGE_ERROR
    finally:
        exchanger.close()


if __name__ == "__main__":
    sys.exit(main())
