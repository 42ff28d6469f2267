"""Check runner: spawn, bound, parse."""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

from invoke.exceptions import ThreadException

from pulsecheck.core.log import logger
from pulsecheck.core.result import CheckResult, CheckStatus, truncate_output
from pulsecheck.core.runner import TIMED_OUT, Runner

if TYPE_CHECKING:
    from pulsecheck.checks.base import Check

PARSE_FAILURE_MESSAGE = "Unable to parse check output."


class CheckRunner:
    """Execute check commands and turn them into CheckResults.

    Failures of the check process itself (cannot start, killed at its
    deadline, unreadable output) come back as ``fail`` results rather
    than exceptions. There are no retries here; the next cycle is the
    retry.
    """

    def __init__(self, workdir: Path, runner: Runner | None = None):
        """Initialize check runner.

        Args:
            workdir: Working directory for check commands
            runner: Command runner (a fresh Runner by default)
        """
        self.workdir = workdir
        self.runner = runner or Runner()

    def run(self, check: Check) -> CheckResult:
        """Run one check and time it.

        Args:
            check: Check to execute

        Returns:
            CheckResult with duration_ms filled in
        """
        logger.info("Running check {check}", check=check.name)
        started = time.perf_counter()

        try:
            raw = self.runner.execute(
                check.command_line,
                cwd=self.workdir,
                timeout=check.timeout,
                log_level="spew",
            )
        except (OSError, ThreadException) as e:
            result = check.result(
                CheckStatus.FAIL, f"Failed to start: {e}"
            )
            return self._finish(result, started)

        output = f"{raw.stdout}{raw.stderr}".strip()

        if raw.exited == TIMED_OUT:
            result = check.result(
                CheckStatus.FAIL,
                f"timed out after {check.timeout:g}s",
                output,
            )
            return self._finish(result, started)

        result = check.parse(output, raw.exited)
        if result is None:
            result = check.result(
                CheckStatus.FAIL, PARSE_FAILURE_MESSAGE, output
            )
        return self._finish(result, started)

    def _finish(self, result: CheckResult, started: float) -> CheckResult:
        result.duration_ms = int((time.perf_counter() - started) * 1000)
        result.output = truncate_output(result.output)

        if result.status == CheckStatus.PASS:
            logger.debug(
                "Check {check} passed", check=result.name,
                duration_ms=result.duration_ms,
            )
        else:
            logger.warn(
                "Check {check} {status}: {message}",
                check=result.name,
                status=str(result.status),
                message=result.message,
                severity=str(result.severity),
            )
        return result
