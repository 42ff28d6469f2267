#!/usr/bin/env python3
"""pulsecheck CLI - reliability heartbeat controller."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from pulsecheck.command.once import OnceCommand
from pulsecheck.command.report import ReportCommand
from pulsecheck.command.watch import WatchCommand
from pulsecheck.core.config import State
from pulsecheck.core.log import logger


class CliState(State):
    """Run a registry of health checks against a service stack,
    aggregate them into one pass/warn/fail verdict, and enforce a
    rolling-window stability budget.

    Subcommands:
      once    run one cycle (cron friendly)
      watch   run cycles on an interval
      report  print the latest persisted summary

    Configuration sources (in priority order):
    1. Command-line arguments (--config.budget.max_failures 5)
    2. Environment variables
       (PULSECHECK_CONFIG__BUDGET__MAX_FAILURES=5)
    3. .env file
    4. pulsecheck.yaml in the current directory, the user config
       directory, and the packaged defaults
    """

    once: CliSubCommand[OnceCommand]
    watch: CliSubCommand[WatchCommand]
    report: CliSubCommand[ReportCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Closes log sinks on exit
        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
