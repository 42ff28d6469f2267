"""Cycle outcome models: what gets persisted and replayed."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pulsecheck.core.base import BaseConfig
from pulsecheck.core.result import CheckResult, CheckStatus, Severity


class BudgetThresholds(BaseConfig):
    """Stability budget limits for one rolling window."""

    window_minutes: int = Field(
        default=60, ge=1, description="Rolling window length in minutes"
    )
    max_failures: int = Field(
        default=3, ge=1, description="Max failed cycles per window"
    )
    max_critical_failures: int = Field(
        default=1, ge=1, description="Max critical-failed cycles per window"
    )
    max_slow_runs: int = Field(
        default=3, ge=1, description="Max slow cycles per window"
    )
    max_run_duration_ms: int = Field(
        default=30_000,
        ge=1_000,
        description="A cycle longer than this counts as slow",
    )


class FailedCheck(BaseModel):
    """Condensed view of a non-pass check."""

    name: str
    severity: Severity
    status: CheckStatus
    message: str = ""

    @classmethod
    def from_result(cls, result: CheckResult) -> FailedCheck:
        return cls(
            name=result.name,
            severity=result.severity,
            status=result.status,
            message=result.message,
        )


class BudgetUsage(BaseModel):
    failures: int = 0
    critical_failures: int = 0
    slow_runs: int = 0
    current_run_duration_ms: int = 0


class BudgetEvaluation(BaseModel):
    """Stability budget verdict for one cycle."""

    status: CheckStatus
    message: str
    window_minutes: int
    usage: BudgetUsage
    offenders: list[FailedCheck] = Field(default_factory=list)
    thresholds: BudgetThresholds


class IncidentBundle(BaseModel):
    """Descriptor returned by the incident bundler, or its failure."""

    ok: bool
    bundle_path: str | None = None
    checksum_path: str | None = None
    checksum_sha256: str | None = None
    generated_at: str | None = None
    exit_code: int | None = None
    error: str | None = None


class CheckStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int = 0
    pass_: int = Field(default=0, alias="pass")
    warn: int = 0
    fail: int = 0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Summary(BaseModel):
    """Full outcome of one cycle; the latest one is kept as a snapshot."""

    command: str = "pulsecheck"
    status: CheckStatus
    started_at: datetime
    sequence: int
    mode: Literal["once", "watch"] = "once"
    duration_ms: int = 0
    checks: list[CheckResult] = Field(default_factory=list)
    stats: CheckStats = Field(default_factory=CheckStats)
    stability_budget: BudgetEvaluation
    failed_checks: list[FailedCheck] = Field(default_factory=list)
    incident_bundle: IncidentBundle | None = None

    @field_validator("started_at")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, by_alias=True) + "\n"

    def event(self) -> EventLogEntry:
        """Event log line recording this cycle."""
        return EventLogEntry(
            timestamp=self.started_at,
            command=self.command,
            sequence=self.sequence,
            status=self.status,
            failed_checks=self.failed_checks,
            duration_ms=self.duration_ms,
            stability_budget=self.stability_budget,
        )

    def incident_event(self) -> EventLogEntry:
        """Second event line recording the incident bundle."""
        return EventLogEntry(
            kind="incident",
            timestamp=self.started_at,
            command=self.command,
            sequence=self.sequence,
            status=self.status,
            incident_bundle=self.incident_bundle,
        )


class EventLogEntry(BaseModel):
    """One line of the append-only event log.

    ``cycle`` lines feed the stability budget; ``incident`` lines only
    record bundles and are ignored when replaying the window.
    """

    kind: Literal["cycle", "incident"] = "cycle"
    timestamp: datetime
    command: str = "pulsecheck"
    sequence: int
    status: CheckStatus
    failed_checks: list[FailedCheck] = Field(default_factory=list)
    duration_ms: int = 0
    stability_budget: BudgetEvaluation | None = None
    incident_bundle: IncidentBundle | None = None

    @field_validator("timestamp")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def to_line(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True) + "\n"
