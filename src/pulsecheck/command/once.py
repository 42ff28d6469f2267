"""Once command - run a single heartbeat cycle."""

from pydantic import BaseModel, ConfigDict, Field

from pulsecheck.core.config import WatchState
from pulsecheck.core.context import ControllerContext
from pulsecheck.core.log import logger


class OnceCommand(BaseModel):
    """Run every check once, persist the summary and print it.

    Suited to cron: consecutive invocations against the same artifact
    directory share one stability budget through the event log.
    """

    json_output: bool = Field(
        default=False,
        alias="json",
        description="Print the Summary as JSON instead of a status card",
    )
    fail_on_failure: bool = Field(
        default=False,
        alias="fail-on-failure",
        description="Exit 1 when the cycle status is not pass",
    )
    include_group: list[str] = Field(
        default_factory=list,
        alias="include-group",
        description="Also run checks of this group (repeatable)",
    )

    model_config = ConfigDict(populate_by_name=True)

    async def run_workflow(self, state: "State") -> int:
        """Run one cycle.

        Args:
            state: State instance

        Returns:
            Exit code (1 only with --fail-on-failure and a non-pass cycle)
        """
        from pulsecheck.workflow.graph import run_heartbeat

        state.runtime.watch = WatchState(
            controller=ControllerContext.from_config(
                state.config, mode="once", groups=self.include_group
            ),
            iterations=1,
            fail_on_failure=self.fail_on_failure,
            json_output=self.json_output,
        )

        exit_code = await run_heartbeat(state)
        logger.debug("Once finished", exit_code=exit_code)
        return exit_code
