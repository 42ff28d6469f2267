"""Heartbeat scheduler graph."""

from pydantic_graph import Graph

from pulsecheck.core.config import State
from pulsecheck.core.log import logger


def create_workflow():
    """Create the heartbeat graph.

    RunCycle → Pause → RunCycle → ... → End(exit_code)

    Returns:
        Graph with State as state_type
    """
    logger.debug("Building heartbeat graph")

    from pulsecheck.workflow.nodes.watch import Pause, RunCycle

    return Graph(nodes=(RunCycle, Pause), state_type=State)


async def run_heartbeat(state: State) -> int:
    """Drive the graph until it ends and return the exit code."""
    from pulsecheck.workflow.nodes.watch import RunCycle

    workflow = create_workflow()
    async with workflow.iter(RunCycle(), state=state) as run:
        async for _node in run:
            pass
    return run.result.output
