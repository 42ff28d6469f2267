"""Exit-code check."""

from typing import Literal

from pulsecheck.checks.base import Check
from pulsecheck.core.result import CheckResult, CheckStatus


class CommandCheck(Check):
    """Pass on exit code 0, otherwise report failure_status.

    Used for executors with no machine-readable output, such as
    preflight scripts and browser smoke runs.
    """

    kind: Literal["command"] = "command"

    def parse(self, output: str, exit_code: int) -> CheckResult:
        if exit_code == 0:
            return self.result(CheckStatus.PASS, output or "ok", output)
        return self.result(self.failure_status, output or "fail", output)
