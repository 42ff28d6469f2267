"""Incident capture through the external bundler."""

from __future__ import annotations

import shlex
from pathlib import Path

from invoke.exceptions import ThreadException
from pydantic import Field

from pulsecheck.core.base import BaseConfig
from pulsecheck.core.jsonscan import extract_json_object
from pulsecheck.core.log import logger
from pulsecheck.core.runner import TIMED_OUT, Runner
from pulsecheck.core.summary import IncidentBundle

# Characters of bundler output kept as the error of a failed capture
MAX_ERROR_CHARS = 600
UNPARSABLE_MESSAGE = "unable to parse incident bundler output"


class IncidentConfig(BaseConfig):
    """Incident bundle capture on critical failures."""

    enabled: bool = Field(
        default=True,
        description="Capture an incident bundle when a critical check fails",
    )
    command: str = Field(
        default="node ./scripts/studiobrain-incident-bundle.mjs",
        description="Bundler command line (paths and --json are appended)",
    )
    output_dir: Path = Field(
        default=Path("output/incidents"),
        description="Directory the bundler writes bundles into",
    )
    timeout: float = Field(
        default=30.0, gt=0, description="Bundler deadline in seconds"
    )


def bundler_command(
    settings: IncidentConfig, summary_path: Path, event_log_path: Path
) -> str:
    return " ".join([
        settings.command,
        "--json",
        "--output-dir", shlex.quote(str(settings.output_dir)),
        "--summary", shlex.quote(str(summary_path)),
        "--events", shlex.quote(str(event_log_path)),
    ])


def capture_incident(
    runner: Runner,
    settings: IncidentConfig,
    summary_path: Path,
    event_log_path: Path,
    cwd: Path | None = None,
) -> IncidentBundle:
    """Run the bundler and describe what it produced.

    Never raises for bundler problems: a spawn error, timeout, non-zero
    exit or output without a JSON descriptor comes back as
    ``IncidentBundle(ok=False, ...)`` so the cycle can still complete.

    Args:
        runner: Command runner
        settings: Bundler command, output directory and timeout
        summary_path: Snapshot the bundle should include
        event_log_path: Event log the bundle should include
        cwd: Working directory for the bundler

    Returns:
        IncidentBundle descriptor
    """
    command = bundler_command(settings, summary_path, event_log_path)
    logger.info("Capturing incident bundle", command=command)

    try:
        raw = runner.execute(command, cwd=cwd, timeout=settings.timeout)
    except (OSError, ThreadException) as e:
        logger.error("Incident bundler failed to start: {error}", error=str(e))
        return IncidentBundle(ok=False, error=str(e))

    output = f"{raw.stdout}{raw.stderr}".strip()

    if raw.exited == TIMED_OUT:
        error = f"incident bundler timed out after {settings.timeout:g}s"
        logger.error(error)
        return IncidentBundle(ok=False, error=error)

    if raw.exited != 0:
        logger.error(
            "Incident bundler exited with {exit_code}", exit_code=raw.exited
        )
        return IncidentBundle(
            ok=False,
            exit_code=raw.exited,
            error=output[:MAX_ERROR_CHARS],
        )

    descriptor = extract_json_object(output)
    if descriptor is None:
        logger.error("Incident bundler output has no JSON descriptor")
        error = UNPARSABLE_MESSAGE
        if output:
            error = f"{error}: {output}"
        return IncidentBundle(
            ok=False, exit_code=raw.exited, error=error[:MAX_ERROR_CHARS]
        )

    def field(camel: str, snake: str) -> str:
        # The bundler speaks camelCase; accept snake_case as well
        return str(descriptor.get(camel) or descriptor.get(snake) or "")

    bundle = IncidentBundle(
        ok=True,
        bundle_path=field("bundlePath", "bundle_path"),
        checksum_path=field("checksumPath", "checksum_path"),
        checksum_sha256=field("checksumSha256", "checksum_sha256"),
        generated_at=field("generatedAt", "generated_at"),
    )
    logger.info("Incident bundle written to {path}", path=bundle.bundle_path)
    return bundle
