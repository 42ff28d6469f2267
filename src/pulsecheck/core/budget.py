"""Stability budget: rolling-window limits on failing, critical and slow cycles.

The window is replayed from the append-only event log on every cycle
rather than kept in memory, so the budget survives restarts and is
shared by independent ``once`` invocations (e.g. from cron) that point
at the same artifact directory.

Counting, for the window ``(now - window_minutes, now]``:

- failures: historical cycles with status != pass, plus 1 if the
  current cycle has any ``fail`` check
- critical_failures: historical cycles with a critical ``fail`` among
  their failed checks, plus 1 if the current cycle has one
- slow_runs: historical cycles longer than max_run_duration_ms, plus 1
  if the current one is

The budget fails when any counter exceeds its maximum and warns when
any counter reaches 80% of it (rounded up).
"""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from datetime import datetime, timedelta

from pulsecheck.core.aggregate import failed_checks
from pulsecheck.core.eventlog import EventLogStore
from pulsecheck.core.log import logger
from pulsecheck.core.result import CheckResult, CheckStatus, Severity
from pulsecheck.core.summary import (
    BudgetEvaluation,
    BudgetThresholds,
    BudgetUsage,
    EventLogEntry,
)

BUDGET_CHECK_NAME = "stability budget window"
BUDGET_CHECK_COMMAND = "internal/stability-budget"
WARN_RATIO = 0.8
MAX_OFFENDERS = 3

MESSAGES = {
    CheckStatus.PASS: "within configured failure budget",
    CheckStatus.WARN: "approaching failure budget threshold",
    CheckStatus.FAIL: "failure budget exceeded",
}


def window_cutoff(now: datetime, thresholds: BudgetThresholds) -> datetime:
    return now - timedelta(minutes=thresholds.window_minutes)


def _is_critical(entry: EventLogEntry) -> bool:
    return any(
        check.status == CheckStatus.FAIL
        and check.severity == Severity.CRITICAL
        for check in entry.failed_checks
    )


def warn_level(maximum: int) -> int:
    return math.ceil(maximum * WARN_RATIO)


def budget_status(usage: BudgetUsage, thresholds: BudgetThresholds) -> CheckStatus:
    """Compare usage counters to their limits."""
    pairs = (
        (usage.failures, thresholds.max_failures),
        (usage.critical_failures, thresholds.max_critical_failures),
        (usage.slow_runs, thresholds.max_slow_runs),
    )
    if any(used > maximum for used, maximum in pairs):
        return CheckStatus.FAIL
    if any(used >= warn_level(maximum) for used, maximum in pairs):
        return CheckStatus.WARN
    return CheckStatus.PASS


def evaluate_budget(
    store: EventLogStore,
    thresholds: BudgetThresholds,
    checks: Sequence[CheckResult],
    run_duration_ms: int,
    now: datetime,
) -> BudgetEvaluation:
    """Evaluate the stability budget for the current cycle.

    Args:
        store: Event log holding previous cycles
        thresholds: Budget limits
        checks: Results of the current cycle (without the budget
            pseudo-check)
        run_duration_ms: How long the current cycle has taken so far
        now: Timestamp of the current cycle

    Returns:
        BudgetEvaluation with usage counters and top offenders
    """
    history = store.recent_entries(window_cutoff(now, thresholds))
    slow_limit = thresholds.max_run_duration_ms

    current_fail = any(c.status == CheckStatus.FAIL for c in checks)
    current_critical = any(c.is_critical_failure for c in checks)
    current_slow = run_duration_ms > slow_limit

    usage = BudgetUsage(
        failures=(
            sum(1 for e in history if e.status != CheckStatus.PASS)
            + int(current_fail)
        ),
        critical_failures=(
            sum(1 for e in history if _is_critical(e))
            + int(current_critical)
        ),
        slow_runs=(
            sum(1 for e in history if e.duration_ms > slow_limit)
            + int(current_slow)
        ),
        current_run_duration_ms=run_duration_ms,
    )
    status = budget_status(usage, thresholds)

    logger.debug(
        "Stability budget {status}",
        status=str(status),
        history=len(history),
        failures=usage.failures,
        critical_failures=usage.critical_failures,
        slow_runs=usage.slow_runs,
    )

    return BudgetEvaluation(
        status=status,
        message=MESSAGES[status],
        window_minutes=thresholds.window_minutes,
        usage=usage,
        offenders=failed_checks(checks)[:MAX_OFFENDERS],
        thresholds=thresholds,
    )


def budget_check(evaluation: BudgetEvaluation) -> CheckResult:
    """The synthetic check that carries the budget into a Summary."""
    failing = evaluation.status == CheckStatus.FAIL
    return CheckResult(
        name=BUDGET_CHECK_NAME,
        severity=Severity.CRITICAL if failing else Severity.WARNING,
        required=False,
        command=BUDGET_CHECK_COMMAND,
        status=evaluation.status,
        duration_ms=0,
        message=evaluation.message,
        output=json.dumps({
            "window_minutes": evaluation.window_minutes,
            "usage": evaluation.usage.model_dump(),
            "thresholds": evaluation.thresholds.model_dump(),
        }),
        extra=evaluation.model_dump(mode="json"),
    )
