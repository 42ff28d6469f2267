"""Scheduler nodes for the heartbeat state machine."""

from pulsecheck.workflow.nodes.watch import Pause, RunCycle

__all__ = ["RunCycle", "Pause"]
