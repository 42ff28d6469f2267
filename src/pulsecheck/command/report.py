"""Report command - show the latest persisted summary."""

import sys

from pydantic import BaseModel, ConfigDict, Field

from pulsecheck.core.eventlog import EventLogStore, SummaryNotFoundError
from pulsecheck.core.report import render_json, render_report


class ReportCommand(BaseModel):
    """Print the latest heartbeat summary without running any check."""

    json_output: bool = Field(
        default=False,
        alias="json",
        description="Print the stored Summary as JSON",
    )

    model_config = ConfigDict(populate_by_name=True)

    async def run_workflow(self, state: "State") -> int:
        """Read and print the snapshot.

        Returns:
            Exit code (1 when no cycle was ever persisted)
        """
        store = EventLogStore(state.config.artifact_dir)
        try:
            summary = store.read_summary()
        except SummaryNotFoundError as e:
            print(e, file=sys.stderr)
            return 1

        if self.json_output:
            print(render_json(summary), end="")
        else:
            print(render_report(summary, store), end="")
        return 0
