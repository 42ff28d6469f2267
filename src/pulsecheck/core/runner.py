"""Bounded command execution on top of invoke."""

import contextlib
import os
import platform
import signal
from pathlib import Path
from subprocess import PIPE, Popen

from invoke import Config, Context, Local, Result
from invoke.exceptions import CommandTimedOut

from pulsecheck.core.log import logger

# Exit code reported for a process killed at its deadline
TIMED_OUT = -1


class GroupLocal(Local):
    """invoke Local runner that owns the whole process group.

    The shell starts in a session of its own, so killing at the deadline
    also takes down whatever the command spawned. Otherwise a surviving
    grandchild keeps the output pipes open and invoke waits on it.
    """

    def start(self, command: str, shell: str, env: dict) -> None:
        if self.using_pty:
            # pty.fork() already makes the child a session leader
            super().start(command, shell, env)
            return
        self.process = Popen(
            command,
            shell=True,
            executable=shell,
            env=env,
            stdout=PIPE,
            stderr=PIPE,
            stdin=PIPE,
            start_new_session=True,
        )

    def kill(self) -> None:
        """Kill the process group.

        invoke's kill() sends signal.SIGKILL, which does not exist on
        Windows. os.kill() there passes the number straight to
        TerminateProcess(), so 9 works for the process itself.
        """
        pid = self.get_pid()
        with contextlib.suppress(ProcessLookupError, PermissionError):
            if platform.system() == "Windows":
                os.kill(pid, 9)
            else:
                os.killpg(pid, signal.SIGKILL)


class Runner(Context):
    """invoke.Context with a single deadline-bounded execute() call.

    Every command runs to completion or is killed when its timeout
    elapses; either way the caller gets an invoke.Result back, with
    ``exited`` set to TIMED_OUT for the killed case.
    """

    def __init__(self):
        super().__init__(
            config=Config(overrides={"runners": {"local": GroupLocal}})
        )

    def execute(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: float | None = None,
        log_level: str | None = None,
    ) -> Result:
        """Run a command, never raising on non-zero exit.

        Args:
            command: Shell command line
            cwd: Working directory for the command
            timeout: Deadline in seconds; the process group is killed
                when it elapses
            log_level: If set, echo captured output lines at this level

        Returns:
            invoke.Result with stdout, stderr and exited

        Raises:
            OSError: If the process cannot be spawned
        """
        kwargs = {
            "hide": True,
            "warn": True,
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout

        logger.spew("Spawning command", command=command, timeout=timeout)
        try:
            if cwd:
                with self.cd(str(cwd)):
                    result = self.run(command, **kwargs)
            else:
                result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            result = e.result
            result.exited = TIMED_OUT

        if log_level:
            for line in (result.stdout + result.stderr).splitlines():
                logger.log(log_level, "{line}", line=line.rstrip())

        return result
