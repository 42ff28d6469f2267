"""Explicit per-process controller context."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

from pulsecheck.checks.base import Check
from pulsecheck.core.eventlog import EventLogStore
from pulsecheck.core.incident import IncidentConfig
from pulsecheck.core.runner import Runner
from pulsecheck.core.summary import BudgetThresholds
from pulsecheck.runner.check import CheckRunner

if TYPE_CHECKING:
    from pulsecheck.core.config import Config


class ControllerContext(BaseModel):
    """Everything a cycle needs, passed explicitly.

    Holds the artifact store, thresholds, incident settings, the
    selected checks and the sequence counter. The counter starts from
    the persisted snapshot and only moves forward in memory.
    """

    store: EventLogStore
    thresholds: BudgetThresholds = Field(default_factory=BudgetThresholds)
    incident: IncidentConfig = Field(default_factory=IncidentConfig)
    checks: list[Check] = Field(default_factory=list)
    check_runner: CheckRunner
    runner: Runner
    workdir: Path
    command: str = "pulsecheck"
    mode: Literal["once", "watch"] = "once"
    sequence: int = 0

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def from_config(
        cls,
        config: Config,
        mode: Literal["once", "watch"] = "once",
        groups: list[str] | None = None,
        runner: Runner | None = None,
    ) -> ControllerContext:
        """Build a context from loaded configuration.

        Args:
            config: Loaded configuration
            mode: once or watch, recorded on every Summary
            groups: Optional check groups to run in addition to the
                ungrouped checks
            runner: Command runner (a fresh Runner by default)

        Raises:
            ValueError: If the registry has duplicate check names
        """
        runner = runner or Runner()
        store = EventLogStore(config.artifact_dir)
        return cls(
            store=store,
            thresholds=config.budget,
            incident=config.incident,
            checks=config.registry().select(groups or []),
            check_runner=CheckRunner(config.workdir, runner),
            runner=runner,
            workdir=config.workdir,
            command=config.name,
            mode=mode,
            sequence=store.last_sequence(),
        )

    def next_sequence(self) -> int:
        self.sequence += 1
        return self.sequence
