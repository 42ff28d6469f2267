"""Watch command - run heartbeat cycles on an interval."""

from pydantic import BaseModel, ConfigDict, Field

from pulsecheck.core.config import WatchState
from pulsecheck.core.context import ControllerContext
from pulsecheck.core.log import logger


class WatchCommand(BaseModel):
    """Run cycles every --interval seconds until told to stop.

    The loop ends after --iterations cycles, after the first non-pass
    cycle with --stop-on-failure, or when the stability budget fails
    while auto-pause is on (exit 1). Otherwise it runs until the
    process is killed.
    """

    json_output: bool = Field(
        default=False,
        alias="json",
        description="Print each Summary as JSON instead of a status card",
    )
    fail_on_failure: bool = Field(
        default=False,
        alias="fail-on-failure",
        description="Exit 1 if any cycle status is not pass",
    )
    stop_on_failure: bool = Field(
        default=False,
        alias="stop-on-failure",
        description="Stop after the first non-pass cycle (implies --fail-on-failure)",
    )
    interval: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between cycles (at least 1)",
    )
    iterations: int | None = Field(
        default=None,
        ge=1,
        description="Stop after this many cycles (unbounded by default)",
    )
    auto_pause_budget: bool = Field(
        default=True,
        alias="auto-pause-budget",
        description="Stop with exit 1 when the stability budget fails",
    )
    include_group: list[str] = Field(
        default_factory=list,
        alias="include-group",
        description="Also run checks of this group (repeatable)",
    )

    model_config = ConfigDict(populate_by_name=True)

    async def run_workflow(self, state: "State") -> int:
        """Run the watch loop.

        Args:
            state: State instance

        Returns:
            Exit code
        """
        from pulsecheck.workflow.graph import run_heartbeat

        watch = state.runtime.watch = WatchState(
            controller=ControllerContext.from_config(
                state.config, mode="watch", groups=self.include_group
            ),
            interval=self.interval,
            iterations=self.iterations,
            stop_on_failure=self.stop_on_failure,
            fail_on_failure=self.fail_on_failure or self.stop_on_failure,
            auto_pause_budget=self.auto_pause_budget,
            json_output=self.json_output,
        )

        logger.info(
            "Watching {count} checks every {interval}s",
            count=len(watch.controller.checks),
            interval=self.interval,
            iterations=self.iterations,
        )
        exit_code = await run_heartbeat(state)
        logger.info(
            "Watch stopped after {iteration} cycles ({reason})",
            iteration=watch.iteration,
            reason=watch.stop_reason,
            exit_code=exit_code,
        )
        return exit_code
