"""Base check interface."""

from __future__ import annotations

import shlex
from abc import abstractmethod
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from pulsecheck.core.result import (
    CheckResult,
    CheckStatus,
    Severity,
    truncate_output,
)

if TYPE_CHECKING:
    from pulsecheck.runner.check import CheckRunner


class Check(BaseModel):
    """One registered health check.

    A check knows how to spawn its executor (command, args, timeout)
    and how to turn the executor's combined output and exit code into a
    CheckResult. Spawning, timing and timeouts belong to CheckRunner;
    subclasses only implement parse().
    """

    name: str = Field(description="Unique check name")
    severity: Severity = Field(
        default=Severity.WARNING,
        description="critical checks force a cycle fail and incident capture",
    )
    required: bool = Field(
        default=False,
        description="A failing required check fails the whole cycle",
    )
    command: str = Field(description="Executable to run")
    args: list[str] = Field(
        default_factory=list, description="Arguments to the executable"
    )
    timeout: float = Field(
        default=120.0, gt=0, description="Deadline in seconds"
    )
    group: str | None = Field(
        default=None,
        description=(
            "Optional group name; grouped checks run only when the "
            "group is selected with --include-group"
        ),
    )
    failure_status: CheckStatus = Field(
        default=CheckStatus.FAIL,
        description="Status reported when the check does not pass",
    )

    @property
    def command_line(self) -> str:
        return shlex.join([self.command, *self.args])

    def execute(self, runner: CheckRunner) -> CheckResult:
        """Run this check through runner."""
        return runner.run(self)

    @abstractmethod
    def parse(self, output: str, exit_code: int) -> CheckResult | None:
        """Map raw output and exit code to a result.

        Args:
            output: Combined, stripped stdout and stderr
            exit_code: Process exit code

        Returns:
            CheckResult, or None if the output could not be understood
        """

    def result(
        self,
        status: CheckStatus,
        message: str,
        output: str = "",
        **kwargs,
    ) -> CheckResult:
        """Build a CheckResult carrying this check's identity."""
        return CheckResult(
            name=self.name,
            severity=self.severity,
            required=self.required,
            command=self.command_line,
            status=status,
            message=message,
            output=truncate_output(output),
            **kwargs,
        )
