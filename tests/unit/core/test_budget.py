"""Tests for the rolling-window stability budget."""

import json
from datetime import timedelta

import pytest

from pulsecheck.core.budget import (
    BUDGET_CHECK_COMMAND,
    BUDGET_CHECK_NAME,
    budget_check,
    evaluate_budget,
    warn_level,
)
from pulsecheck.core.eventlog import EventLogStore
from pulsecheck.core.result import CheckStatus, Severity
from pulsecheck.core.summary import BudgetThresholds, EventLogEntry, FailedCheck


@pytest.fixture
def store(tmp_path):
    return EventLogStore(tmp_path / "stability")


def entry(timestamp, status=CheckStatus.FAIL, duration_ms=100, **kwargs):
    return EventLogEntry(
        timestamp=timestamp,
        sequence=1,
        status=status,
        duration_ms=duration_ms,
        **kwargs,
    )


def evaluate(store, now, checks=(), run_duration_ms=0, **thresholds):
    return evaluate_budget(
        store,
        BudgetThresholds(**thresholds),
        list(checks),
        run_duration_ms=run_duration_ms,
        now=now,
    )


def test_empty_history_passes(store, now):
    evaluation = evaluate(store, now)
    assert evaluation.status == CheckStatus.PASS
    assert evaluation.usage.failures == 0
    assert evaluation.message == "within configured failure budget"


def test_failure_count_is_window_history_plus_current(store, now, make_result):
    minutes = [10, 30, 59, 60, 61, 180]
    statuses = [
        CheckStatus.FAIL,
        CheckStatus.WARN,
        CheckStatus.PASS,
        CheckStatus.FAIL,  # exactly at the cutoff
        CheckStatus.FAIL,
        CheckStatus.WARN,
    ]
    for ago, status in zip(minutes, statuses, strict=True):
        store.append(entry(now - timedelta(minutes=ago), status))

    passing = evaluate(store, now, [make_result("a")])
    assert passing.usage.failures == 2
    assert passing.status == CheckStatus.PASS

    failing = evaluate(store, now, [make_result("a", CheckStatus.FAIL)])
    assert failing.usage.failures == 3
    assert failing.status == CheckStatus.WARN
    assert failing.message == "approaching failure budget threshold"


def test_current_warn_does_not_count_as_failure(store, now, make_result):
    evaluation = evaluate(store, now, [make_result("a", CheckStatus.WARN)])
    assert evaluation.usage.failures == 0


def test_entry_exactly_at_cutoff_is_excluded(store, now):
    store.append(entry(now - timedelta(minutes=60)))
    assert evaluate(store, now).usage.failures == 0


def test_entry_just_inside_cutoff_is_included(store, now):
    store.append(entry(now - timedelta(minutes=60) + timedelta(microseconds=1)))
    assert evaluate(store, now).usage.failures == 1


def test_window_length_follows_thresholds(store, now):
    store.append(entry(now - timedelta(minutes=20)))
    assert evaluate(store, now, window_minutes=30).usage.failures == 1
    assert evaluate(store, now, window_minutes=15).usage.failures == 0


def test_incident_lines_are_not_replayed(store, now):
    store.append(entry(now - timedelta(minutes=5), kind="incident"))
    assert evaluate(store, now).usage.failures == 0


def test_corrupt_lines_are_skipped(store, now):
    store.append(entry(now - timedelta(minutes=5)))
    with open(store.event_log_path, "a", encoding="utf-8") as f:
        f.write("{not json\n")
        f.write("\n")
        f.write('{"kind": "cycle", "status": "fail"}\n')
        f.write("garbage line\n")
    store.append(entry(now - timedelta(minutes=4)))
    with open(store.event_log_path, "a", encoding="utf-8") as f:
        f.write('{"kind": "cycle", "timesta')

    evaluation = evaluate(store, now)
    assert evaluation.usage.failures == 2


def test_critical_failures_exceed_budget(store, now, make_result):
    store.append(entry(
        now - timedelta(minutes=5),
        failed_checks=[FailedCheck(
            name="studio status",
            severity=Severity.CRITICAL,
            status=CheckStatus.FAIL,
        )],
    ))
    # A critical warn is not a critical failure
    store.append(entry(
        now - timedelta(minutes=4),
        failed_checks=[FailedCheck(
            name="studio status",
            severity=Severity.CRITICAL,
            status=CheckStatus.WARN,
        )],
    ))

    quiet = evaluate(store, now)
    assert quiet.usage.critical_failures == 1
    assert quiet.status == CheckStatus.WARN

    current = [make_result("db", CheckStatus.FAIL, Severity.CRITICAL)]
    evaluation = evaluate(store, now, current)
    assert evaluation.usage.critical_failures == 2
    assert evaluation.status == CheckStatus.FAIL
    assert evaluation.message == "failure budget exceeded"


def test_slow_runs(store, now):
    for ago in (1, 2, 3):
        store.append(entry(
            now - timedelta(minutes=ago),
            status=CheckStatus.PASS,
            duration_ms=40_000,
        ))
    store.append(entry(
        now - timedelta(minutes=4), status=CheckStatus.PASS, duration_ms=30_000
    ))

    at_limit = evaluate(store, now, run_duration_ms=1_000)
    assert at_limit.usage.slow_runs == 3
    assert at_limit.status == CheckStatus.WARN

    over = evaluate(store, now, run_duration_ms=31_000)
    assert over.usage.slow_runs == 4
    assert over.usage.current_run_duration_ms == 31_000
    assert over.status == CheckStatus.FAIL


def test_max_failures_one(store, now, make_result):
    failing = [make_result("a", CheckStatus.FAIL, required=True)]

    first = evaluate(store, now, failing, max_failures=1)
    assert first.usage.failures == 1
    assert first.status == CheckStatus.WARN

    store.append(entry(now - timedelta(minutes=1)))
    second = evaluate(store, now, failing, max_failures=1)
    assert second.usage.failures == 2
    assert second.status == CheckStatus.FAIL


def test_offenders_are_first_three_non_pass(store, now, make_result):
    checks = [
        make_result("a", CheckStatus.FAIL),
        make_result("b"),
        make_result("c", CheckStatus.WARN),
        make_result("d", CheckStatus.FAIL),
        make_result("e", CheckStatus.FAIL),
    ]
    evaluation = evaluate(store, now, checks)
    assert [o.name for o in evaluation.offenders] == ["a", "c", "d"]


@pytest.mark.parametrize(("maximum", "expected"), [
    (1, 1), (2, 2), (3, 3), (5, 4), (10, 8),
])
def test_warn_level_rounds_up(maximum, expected):
    assert warn_level(maximum) == expected


def test_budget_check_mirrors_evaluation(store, now, make_result):
    store.append(entry(now - timedelta(minutes=1)))
    evaluation = evaluate(
        store, now, [make_result("a", CheckStatus.FAIL)], max_failures=1
    )
    check = budget_check(evaluation)

    assert check.name == BUDGET_CHECK_NAME
    assert check.command == BUDGET_CHECK_COMMAND
    assert check.status == CheckStatus.FAIL
    assert check.severity == Severity.CRITICAL
    assert check.required is False
    assert check.duration_ms == 0
    assert check.extra["usage"]["failures"] == 2
    assert json.loads(check.output)["thresholds"]["max_failures"] == 1


def test_budget_check_is_warning_unless_failed(store, now):
    check = budget_check(evaluate(store, now))
    assert check.severity == Severity.WARNING
    assert check.status == CheckStatus.PASS
