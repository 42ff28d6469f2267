"""Tests for a single heartbeat cycle."""

import json

from pulsecheck.checks import CommandCheck, JsonStatusCheck
from pulsecheck.core.budget import BUDGET_CHECK_NAME
from pulsecheck.core.incident import IncidentConfig
from pulsecheck.core.result import CheckStatus, Severity
from pulsecheck.core.summary import BudgetThresholds
from pulsecheck.workflow.cycle import run_cycle

BUNDLER = (
    "echo '{\"bundlePath\": \"output/incidents/b.tar.gz\", "
    "\"checksumSha256\": \"feed\"}' && true"
)


def passing_checks():
    return [
        CommandCheck(name="alive", command="echo", args=["ok"]),
        JsonStatusCheck(
            name="status gate",
            command="echo",
            args=['{"status": "pass"}'],
            severity=Severity.CRITICAL,
            required=True,
        ),
    ]


def event_lines(ctx):
    text = ctx.store.event_log_path.read_text(encoding="utf-8")
    return [json.loads(line) for line in text.splitlines()]


def test_three_passing_cycles(make_context):
    """Separate once invocations continue the sequence."""
    summaries = []
    for _ in range(3):
        ctx = make_context(passing_checks())
        summaries.append(run_cycle(ctx))

    assert [s.sequence for s in summaries] == [1, 2, 3]
    for summary in summaries:
        assert summary.status == CheckStatus.PASS
        assert summary.stability_budget.status == CheckStatus.PASS
        assert summary.incident_bundle is None
    assert [e["sequence"] for e in event_lines(ctx)] == [1, 2, 3]


def test_summary_contents(make_context, now):
    ctx = make_context(passing_checks())
    summary = run_cycle(ctx, now=now)

    assert summary.started_at == now
    assert summary.mode == "once"
    assert summary.command == "pulsecheck"
    assert [c.name for c in summary.checks] == [
        "alive", "status gate", BUDGET_CHECK_NAME,
    ]
    assert sum(c.name == BUDGET_CHECK_NAME for c in summary.checks) == 1
    assert summary.stats.total == 3
    assert summary.stats.pass_ == 3
    assert summary.failed_checks == []
    assert ctx.store.read_summary() == summary


def test_in_memory_sequence_advances(make_context):
    ctx = make_context(passing_checks(), mode="watch")
    first = run_cycle(ctx)
    second = run_cycle(ctx)
    assert (first.sequence, second.sequence) == (1, 2)
    assert second.mode == "watch"


def test_required_failure_fails_cycle_then_budget(make_context):
    checks = [CommandCheck(name="broken", command="false", required=True)]
    thresholds = BudgetThresholds(max_failures=1)

    first = run_cycle(make_context(checks, thresholds))
    assert first.status == CheckStatus.FAIL
    assert first.stability_budget.usage.failures == 1
    assert first.stability_budget.status == CheckStatus.WARN
    assert [f.name for f in first.failed_checks] == [
        "broken", BUDGET_CHECK_NAME,
    ]

    second = run_cycle(make_context(checks, thresholds))
    assert second.stability_budget.usage.failures == 2
    assert second.stability_budget.status == CheckStatus.FAIL
    budget = second.checks[-1]
    assert budget.status == CheckStatus.FAIL
    assert budget.severity == Severity.CRITICAL


def test_optional_failure_only_warns(make_context):
    checks = [
        *passing_checks(),
        CommandCheck(
            name="portal smoke", command="false",
            failure_status=CheckStatus.WARN,
        ),
    ]
    summary = run_cycle(make_context(checks))
    assert summary.status == CheckStatus.WARN
    assert summary.stability_budget.usage.failures == 0


def test_critical_failure_captures_incident(make_context, tmp_path):
    checks = [
        JsonStatusCheck(
            name="env contract",
            command="echo",
            args=['{"status": "fail"}'],
            severity=Severity.CRITICAL,
        ),
    ]
    incident = IncidentConfig(command=BUNDLER, output_dir=tmp_path / "inc")
    ctx = make_context(checks, incident=incident)
    summary = run_cycle(ctx)

    assert summary.status == CheckStatus.FAIL
    assert summary.incident_bundle.ok is True
    assert summary.incident_bundle.bundle_path == "output/incidents/b.tar.gz"
    assert ctx.store.read_summary().incident_bundle == summary.incident_bundle

    lines = event_lines(ctx)
    assert [line["kind"] for line in lines] == ["cycle", "incident"]
    assert lines[1]["incident_bundle"]["checksum_sha256"] == "feed"


def test_failed_capture_does_not_change_status(make_context, tmp_path):
    checks = [CommandCheck(
        name="db", command="false", severity=Severity.CRITICAL
    )]
    incident = IncidentConfig(
        command="sh -c 'echo bundler crashed; exit 2'",
        output_dir=tmp_path / "inc",
    )
    summary = run_cycle(make_context(checks, incident=incident))

    assert summary.status == CheckStatus.FAIL
    assert summary.incident_bundle.ok is False
    assert summary.incident_bundle.exit_code == 2
    assert "bundler crashed" in summary.incident_bundle.error


def test_capture_disabled(make_context):
    checks = [CommandCheck(
        name="db", command="false", severity=Severity.CRITICAL
    )]
    ctx = make_context(checks)
    summary = run_cycle(ctx)

    assert summary.incident_bundle is None
    assert len(event_lines(ctx)) == 1


def test_no_capture_without_critical_failure(make_context, tmp_path):
    checks = [CommandCheck(name="req", command="false", required=True)]
    incident = IncidentConfig(
        command="sh -c 'exit 9'", output_dir=tmp_path / "inc"
    )
    summary = run_cycle(make_context(checks, incident=incident))
    assert summary.status == CheckStatus.FAIL
    assert summary.incident_bundle is None


def test_unstartable_bundler_keeps_status(
    make_context, tmp_path, unstartable_runner
):
    checks = [CommandCheck(
        name="db", command="false", severity=Severity.CRITICAL
    )]
    incident = IncidentConfig(output_dir=tmp_path / "inc")
    ctx = make_context(checks, incident=incident)
    ctx.runner = unstartable_runner
    summary = run_cycle(ctx)

    assert summary.status == CheckStatus.FAIL
    assert summary.incident_bundle.ok is False
    assert "No such file or directory" in summary.incident_bundle.error
    assert ctx.store.read_summary().incident_bundle == summary.incident_bundle
    assert [line["kind"] for line in event_lines(ctx)] == ["cycle", "incident"]


def test_bundler_without_descriptor(make_context, tmp_path):
    checks = [CommandCheck(
        name="db", command="false", severity=Severity.CRITICAL
    )]
    incident = IncidentConfig(
        command="echo 'bundle skipped'", output_dir=tmp_path / "inc"
    )
    summary = run_cycle(make_context(checks, incident=incident))

    assert summary.status == CheckStatus.FAIL
    assert summary.incident_bundle.ok is False
    assert "unable to parse" in summary.incident_bundle.error
