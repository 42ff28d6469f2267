"""One heartbeat cycle: run, evaluate, persist, capture."""

from __future__ import annotations

import time
from datetime import UTC, datetime

from pulsecheck.core.aggregate import (
    aggregate_status,
    count_stats,
    failed_checks,
    has_critical_failure,
)
from pulsecheck.core.budget import budget_check, evaluate_budget
from pulsecheck.core.context import ControllerContext
from pulsecheck.core.incident import capture_incident
from pulsecheck.core.log import logger
from pulsecheck.core.summary import Summary


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def run_cycle(ctx: ControllerContext, now: datetime | None = None) -> Summary:
    """Execute every selected check once and persist the outcome.

    Check failures are data: they end up in the Summary. Only artifact
    I/O errors propagate.

    Args:
        ctx: Controller context
        now: Cycle timestamp (defaults to the current UTC time)

    Returns:
        The persisted Summary, with incident_bundle set when a critical
        check failed and capture is enabled
    """
    started_at = now or datetime.now(UTC)
    started = time.perf_counter()
    sequence = ctx.next_sequence()

    with logger.span("Cycle {sequence}", sequence=sequence, mode=ctx.mode):
        results = [check.execute(ctx.check_runner) for check in ctx.checks]

        evaluation = evaluate_budget(
            ctx.store,
            ctx.thresholds,
            results,
            run_duration_ms=_elapsed_ms(started),
            now=started_at,
        )
        results.append(budget_check(evaluation))

        summary = Summary(
            command=ctx.command,
            status=aggregate_status(results),
            started_at=started_at,
            sequence=sequence,
            mode=ctx.mode,
            duration_ms=_elapsed_ms(started),
            checks=results,
            stats=count_stats(results),
            stability_budget=evaluation,
            failed_checks=failed_checks(results),
        )

        ctx.store.write_summary(summary)
        ctx.store.append(summary.event())

        if has_critical_failure(results) and ctx.incident.enabled:
            summary.incident_bundle = capture_incident(
                ctx.runner,
                ctx.incident,
                ctx.store.summary_path,
                ctx.store.event_log_path,
                cwd=ctx.workdir,
            )
            ctx.store.write_summary(summary)
            ctx.store.append(summary.incident_event())

        logger.info(
            "Cycle {sequence} finished: {status}",
            sequence=sequence,
            status=str(summary.status),
            duration_ms=summary.duration_ms,
            budget=str(evaluation.status),
        )
    return summary
