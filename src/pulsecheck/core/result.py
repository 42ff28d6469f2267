"""Result types for check execution."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

# Raw output kept on a result, in characters
MAX_OUTPUT_CHARS = 3000


class Severity(StrEnum):
    CRITICAL = "critical"
    WARNING = "warning"


class CheckStatus(StrEnum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


def truncate_output(value: str | None, limit: int = MAX_OUTPUT_CHARS) -> str:
    """Clip output to ``limit`` characters, marking the cut with '...'."""
    text = value or ""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


class CheckResult(BaseModel):
    """Result of one check execution."""

    name: str
    severity: Severity = Severity.WARNING
    required: bool = False
    command: str = ""
    status: CheckStatus
    duration_ms: int = 0
    message: str = ""
    output: str = ""
    payload: dict[str, Any] | None = Field(
        default=None,
        description="JSON object parsed from the check's output",
    )
    extra: dict[str, Any] | None = Field(
        default=None,
        description="Check-specific structured data",
    )

    @property
    def passed(self) -> bool:
        return self.status == CheckStatus.PASS

    @property
    def is_critical_failure(self) -> bool:
        return (
            self.status == CheckStatus.FAIL
            and self.severity == Severity.CRITICAL
        )

    @property
    def is_blocking_failure(self) -> bool:
        """A fail that forces the whole cycle to fail."""
        return self.status == CheckStatus.FAIL and (
            self.severity == Severity.CRITICAL or self.required
        )
