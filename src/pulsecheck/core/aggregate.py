"""Reduce check results to one cycle verdict."""

from collections.abc import Iterable

from pulsecheck.core.result import CheckResult, CheckStatus
from pulsecheck.core.summary import CheckStats, FailedCheck


def aggregate_status(results: Iterable[CheckResult]) -> CheckStatus:
    """Overall status for a cycle.

    A ``fail`` only fails the cycle when the check is critical or
    required; optional warning-level failures degrade it to ``warn``.
    """
    results = list(results)
    if any(r.is_blocking_failure for r in results):
        return CheckStatus.FAIL
    if any(not r.passed for r in results):
        return CheckStatus.WARN
    return CheckStatus.PASS


def count_stats(results: Iterable[CheckResult]) -> CheckStats:
    results = list(results)
    fail = sum(1 for r in results if r.status == CheckStatus.FAIL)
    warn = sum(1 for r in results if r.status == CheckStatus.WARN)
    return CheckStats(
        total=len(results),
        pass_=len(results) - fail - warn,
        warn=warn,
        fail=fail,
    )


def failed_checks(results: Iterable[CheckResult]) -> list[FailedCheck]:
    """Every non-pass result, in order."""
    return [FailedCheck.from_result(r) for r in results if not r.passed]


def has_critical_failure(results: Iterable[CheckResult]) -> bool:
    return any(r.is_critical_failure for r in results)
