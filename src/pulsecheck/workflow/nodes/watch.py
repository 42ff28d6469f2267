"""Scheduler nodes: RunCycle and Pause."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from pydantic_graph import BaseNode, End, GraphRunContext

from pulsecheck.core.config import State
from pulsecheck.core.log import logger
from pulsecheck.core.report import render_card, render_json
from pulsecheck.core.result import CheckStatus
from pulsecheck.workflow.cycle import run_cycle

# Shortest pause between two cycles, in seconds
MIN_INTERVAL = 1.0


async def _pause(seconds: float) -> None:
    await asyncio.sleep(seconds)


@dataclass
class RunCycle(BaseNode[State, None, int]):
    """Run one cycle, print it, and decide whether to go on."""

    async def run(self, ctx: GraphRunContext[State]) -> Pause | End[int]:
        """Run a cycle and route.

        Returns:
            End: iterations exhausted, stop-on-failure tripped, or the
                stability budget failed with auto-pause enabled
            Pause: otherwise
        """
        watch = ctx.state.runtime.watch
        summary = run_cycle(watch.controller)
        watch.iteration += 1
        watch.last_summary = summary

        print(
            render_json(summary) if watch.json_output
            else render_card(summary),
            end="",
            flush=True,
        )

        failed = summary.status != CheckStatus.PASS
        if watch.fail_on_failure and failed:
            watch.exit_code = 1
            if watch.stop_on_failure:
                logger.warn(
                    "Stopping after non-pass cycle {sequence}",
                    sequence=summary.sequence,
                )
                watch.stop_reason = "failure"
                return End(watch.exit_code)

        budget = summary.stability_budget
        if watch.auto_pause_budget and budget.status == CheckStatus.FAIL:
            logger.error(
                "Stability budget exceeded ({message}); auto-pausing watch loop",
                message=budget.message,
            )
            watch.exit_code = 1
            watch.stop_reason = "budget"
            return End(watch.exit_code)

        if watch.iterations is not None and watch.iteration >= watch.iterations:
            watch.stop_reason = "iterations"
            return End(watch.exit_code)

        return Pause(seconds=max(MIN_INTERVAL, watch.interval))


@dataclass
class Pause(BaseNode[State, None, int]):
    """Sleep between cycles."""

    seconds: float

    async def run(self, ctx: GraphRunContext[State]) -> RunCycle:
        logger.debug("Next cycle in {seconds}s", seconds=self.seconds)
        await _pause(self.seconds)
        return RunCycle()
