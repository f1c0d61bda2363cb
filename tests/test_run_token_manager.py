"""Tests for the token manager command line entry point."""

import os
import signal
import time
from unittest.mock import patch

import pytest

from conftest import FakeExchanger, FakeTimer, make_record
from token_manager import run_token_manager
from token_manager.core.constants import SchedulerState
from token_manager.infrastructure.json_credential_store import JsonCredentialStore

MODULE = "token_manager.run_token_manager"


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """Environment with one configured app and a temporary store."""
    for slot in range(1, 11):
        for suffix in ("ID", "SECRET", "TOKEN"):
            monkeypatch.delenv(f"APP{slot}_{suffix}", raising=False)
    for name in ("CREDENTIALS_FILE", "MAX_APP_SLOTS", "RENEWAL_TIME", "RENEWAL_THRESHOLD_DAYS",
                 "FACEBOOK_API_VERSION", "RENEWAL_MAX_WORKERS", "REQUEST_TIMEOUT_SECONDS",
                 "LOG_LEVEL", "LOG_TO_FILE"):
        monkeypatch.delenv(name, raising=False)

    tokens_file = tmp_path / "tokens.json"
    monkeypatch.setenv("TOKENS_FILE", str(tokens_file))
    monkeypatch.setenv("APP1_ID", "111")
    monkeypatch.setenv("APP1_SECRET", "secret-111")
    monkeypatch.setenv("APP1_TOKEN", "short-111")
    return monkeypatch, tokens_file


@pytest.fixture
def fake_exchanger():
    exchanger = FakeExchanger(clock=time.time)
    with patch(f"{MODULE}.GraphTokenExchanger", return_value=exchanger):
        yield exchanger


class TestParseArgs:

    def test_default_command(self):
        args = run_token_manager.parse_args([])
        assert args.command is None
        assert args.verbose is False

    def test_status_verify(self):
        args = run_token_manager.parse_args(["-v", "status", "--verify"])
        assert args.command == "status"
        assert args.verify is True
        assert args.verbose is True


class TestMain:

    def test_init_stores_credentials(self, cli_env, fake_exchanger):
        _, tokens_file = cli_env

        assert run_token_manager.main(["init"]) == run_token_manager.EXIT_SUCCESS

        assert JsonCredentialStore(tokens_file).get("111").credential == "long-lived-111-1"
        assert fake_exchanger.closed is True

    def test_init_without_apps(self, cli_env, fake_exchanger):
        monkeypatch, _ = cli_env
        monkeypatch.delenv("APP1_ID")
        monkeypatch.delenv("APP1_SECRET")

        assert run_token_manager.main(["init"]) == run_token_manager.EXIT_CONFIGURATION_ERROR

    def test_init_failure_exit_code(self, cli_env, fake_exchanger):
        fake_exchanger.fail_exchange_for = {"111"}

        assert run_token_manager.main(["init"]) == run_token_manager.EXIT_RENEWAL_FAILURES

    def test_check_renews_due_credential(self, cli_env, fake_exchanger):
        _, tokens_file = cli_env
        expired = make_record("111", days_left=-1)
        JsonCredentialStore(tokens_file).put(expired)

        assert run_token_manager.main(["check"]) == run_token_manager.EXIT_SUCCESS

        assert fake_exchanger.exchange_calls == [("111", "secret-111", expired.credential)]
        assert JsonCredentialStore(tokens_file).get("111").credential == "long-lived-111-1"

    def test_check_reports_failures(self, cli_env, fake_exchanger):
        _, tokens_file = cli_env
        JsonCredentialStore(tokens_file).put(make_record("111", days_left=-1))
        fake_exchanger.fail_exchange_for = {"111"}

        assert run_token_manager.main(["check"]) == run_token_manager.EXIT_RENEWAL_FAILURES

    def test_status(self, cli_env, fake_exchanger):
        _, tokens_file = cli_env
        JsonCredentialStore(tokens_file).put(make_record("111", days_left=30))

        assert run_token_manager.main(["status"]) == run_token_manager.EXIT_SUCCESS

    def test_invalid_configuration(self, cli_env, fake_exchanger):
        monkeypatch, _ = cli_env
        monkeypatch.setenv("RENEWAL_TIME", "25:99")

        assert run_token_manager.main(["check"]) == run_token_manager.EXIT_CONFIGURATION_ERROR

    def test_run_without_apps(self, cli_env, fake_exchanger):
        monkeypatch, _ = cli_env
        monkeypatch.delenv("APP1_ID")
        monkeypatch.delenv("APP1_SECRET")

        assert run_token_manager.main(["run"]) == run_token_manager.EXIT_CONFIGURATION_ERROR


class TerminatingTimer(FakeTimer):
    """Timer that sends SIGTERM to this process while the trigger is registered."""

    def schedule(self, spec, callback):
        handle = super().schedule(spec, callback)
        os.kill(os.getpid(), signal.SIGTERM)
        return handle


@pytest.fixture
def restore_signal_handlers():
    saved = {signum: signal.getsignal(signum) for signum in (signal.SIGINT, signal.SIGTERM)}
    yield
    for signum, handler in saved.items():
        signal.signal(signum, handler)


class TestRunCommand:

    def test_sigterm_during_start_stops_scheduler(
        self, cli_env, fake_exchanger, restore_signal_handlers
    ):
        timer = TerminatingTimer()
        schedulers = []
        real_build_scheduler = run_token_manager.build_scheduler

        def capture_scheduler(*args, **kwargs):
            scheduler = real_build_scheduler(*args, **kwargs)
            schedulers.append(scheduler)
            return scheduler

        with patch(f"{MODULE}.ScheduleTimer", return_value=timer), \
                patch(f"{MODULE}.build_scheduler", side_effect=capture_scheduler):
            exit_code = run_token_manager.main(["run"])

        assert exit_code == run_token_manager.EXIT_SUCCESS
        scheduler = schedulers[0]
        assert scheduler.wait(timeout=5)
        assert scheduler.state == SchedulerState.STOPPED
        assert timer.handles[0].cancelled is True
        assert timer.shut_down is True

    def test_check_does_not_build_a_timer(self, cli_env, fake_exchanger):
        with patch(f"{MODULE}.ScheduleTimer") as timer_cls:
            assert run_token_manager.main(["check"]) == run_token_manager.EXIT_SUCCESS

        timer_cls.assert_not_called()
