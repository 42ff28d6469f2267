"""Human and machine renderings of a Summary."""

from __future__ import annotations

from pulsecheck.core.eventlog import EventLogStore
from pulsecheck.core.summary import Summary

TOP_UNRESOLVED = 3


def render_json(summary: Summary) -> str:
    """Indented JSON; rendering the same Summary twice is byte-identical."""
    return summary.to_json()


def _budget_line(summary: Summary, with_window: bool) -> str:
    budget = summary.stability_budget
    line = (
        f"budget: {budget.status.upper()} "
        f"({budget.usage.failures}/{budget.thresholds.max_failures} failures"
    )
    if with_window:
        line += f" in {budget.window_minutes}m"
    return line + ")"


def _counts_line(summary: Summary) -> str:
    stats = summary.stats
    return (
        f"checks: pass={stats.pass_}, warn={stats.warn}, fail={stats.fail}"
    )


def _incident_line(summary: Summary) -> str | None:
    bundle = summary.incident_bundle
    if bundle is None:
        return None
    if bundle.ok and bundle.bundle_path:
        return f"incident bundle: {bundle.bundle_path}"
    if not bundle.ok:
        return f"incident bundle: capture failed ({bundle.error or 'unknown error'})"
    return None


def render_card(summary: Summary) -> str:
    """Status card printed after each cycle."""
    lines = [
        "",
        f"Reliability heartbeat: {summary.status.upper()}",
        f"run: {summary.sequence}",
        f"duration_ms: {summary.duration_ms}",
        _counts_line(summary),
        _budget_line(summary, with_window=True),
    ]
    for check in summary.checks:
        line = f"  [{check.status.upper()}:{check.severity}] {check.name}"
        if check.message:
            line += f" - {check.message}"
        lines.append(line)

    incident = _incident_line(summary)
    if incident:
        lines.append(f"  {incident}")
    return "\n".join(lines) + "\n"


def render_report(summary: Summary, store: EventLogStore) -> str:
    """Latest-report card for the ``report`` subcommand."""
    lines = [
        "",
        f"Reliability latest report ({summary.started_at.isoformat()})",
        f"status: {summary.status.upper()} (run {summary.sequence})",
        _counts_line(summary),
        _budget_line(summary, with_window=False),
        f"artifact dir: {store.artifact_dir}",
    ]
    if summary.failed_checks:
        lines.append("top unresolved checks:")
        for entry in summary.failed_checks[:TOP_UNRESOLVED]:
            lines.append(
                f"  - {entry.severity}/{entry.status}: "
                f"{entry.name} ({entry.message})"
            )
    lines.append(f"event log: {store.event_log_path}")

    incident = _incident_line(summary)
    if incident:
        lines.append(incident)
    return "\n".join(lines) + "\n"
