"""Pytest configuration and fixtures for pulsecheck tests."""

import sys
import tempfile
from datetime import UTC, datetime
from pathlib import Path

import pytest

from pulsecheck.core.log import ConsoleSink, setup_logger


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only debug logging; nothing is sent to logfire.dev."""
    test_log_root = Path(tempfile.gettempdir()) / "pulsecheck-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def mock_argv():
    """Save and restore sys.argv."""
    original = sys.argv.copy()
    sys.argv = ["pulsecheck"]
    yield
    sys.argv = original


@pytest.fixture
def now():
    """A fixed cycle timestamp."""
    return datetime(2026, 3, 14, 12, 0, tzinfo=UTC)


@pytest.fixture
def make_result():
    """Factory for CheckResults."""
    from pulsecheck.core.result import CheckResult, CheckStatus, Severity

    def _make(
        name="check",
        status=CheckStatus.PASS,
        severity=Severity.WARNING,
        required=False,
        message="",
    ):
        return CheckResult(
            name=name,
            status=status,
            severity=severity,
            required=required,
            message=message,
        )

    return _make


@pytest.fixture
def make_context(tmp_path):
    """Factory for a ControllerContext rooted in tmp_path.

    The sequence starts from whatever snapshot is already in the
    artifact directory, as it would for a fresh process.
    """
    from pulsecheck.core.context import ControllerContext
    from pulsecheck.core.eventlog import EventLogStore
    from pulsecheck.core.incident import IncidentConfig
    from pulsecheck.core.runner import Runner
    from pulsecheck.core.summary import BudgetThresholds
    from pulsecheck.runner.check import CheckRunner

    def _make(checks, thresholds=None, incident=None, mode="once"):
        runner = Runner()
        store = EventLogStore(tmp_path / "stability")
        return ControllerContext(
            store=store,
            thresholds=thresholds or BudgetThresholds(),
            incident=incident or IncidentConfig(enabled=False),
            checks=checks,
            check_runner=CheckRunner(tmp_path, runner),
            runner=runner,
            workdir=tmp_path,
            mode=mode,
            sequence=store.last_sequence(),
        )

    return _make


@pytest.fixture
def state(mock_argv, tmp_path):
    """A fully loaded State whose artifacts live in tmp_path.

    The packaged check registry is replaced with a single passing
    check, and incident capture is off.
    """
    from pulsecheck.checks import CommandCheck
    from pulsecheck.core.config import State

    state = State()
    state.config.workdir = tmp_path
    state.config.artifact_dir = tmp_path / "stability"
    state.config.incident.enabled = False
    state.config.checks = [
        CommandCheck(name="echo", command="echo", args=["alive"]),
    ]
    return state


@pytest.fixture
def make_summary(now):
    """Factory for a small, passing Summary."""
    from pulsecheck.core.result import CheckResult, CheckStatus, Severity
    from pulsecheck.core.summary import (
        BudgetEvaluation,
        BudgetThresholds,
        BudgetUsage,
        CheckStats,
        Summary,
    )

    def _make(sequence=1, started_at=None):
        checks = [
            CheckResult(
                name="studio status",
                severity=Severity.CRITICAL,
                required=True,
                command="echo '{\"status\": \"pass\"}'",
                status=CheckStatus.PASS,
                duration_ms=7,
                message="studio status pass",
                output='{"status": "pass"}',
                payload={"status": "pass"},
            ),
        ]
        return Summary(
            status=CheckStatus.PASS,
            started_at=started_at or now,
            sequence=sequence,
            duration_ms=12,
            checks=checks,
            stats=CheckStats(total=1, pass_=1),
            stability_budget=BudgetEvaluation(
                status=CheckStatus.PASS,
                message="within configured failure budget",
                window_minutes=60,
                usage=BudgetUsage(current_run_duration_ms=12),
                thresholds=BudgetThresholds(),
            ),
        )

    return _make


@pytest.fixture
def unstartable_runner():
    """A Runner whose processes never start."""
    from pulsecheck.core.runner import Runner

    class UnstartableRunner(Runner):
        def execute(self, command, **kwargs):
            raise OSError(2, "No such file or directory", "/bin/bash")

    return UnstartableRunner()
