"""CLI subcommands for pulsecheck."""

from pulsecheck.command.once import OnceCommand
from pulsecheck.command.report import ReportCommand
from pulsecheck.command.watch import WatchCommand

__all__ = ["OnceCommand", "WatchCommand", "ReportCommand"]
