"""Heartbeat artifacts: latest summary snapshot and append-only event log.

Layout of the artifact directory::

    heartbeat-summary.json   latest Summary, overwritten every cycle
    heartbeat-events.log     one JSON object per line, newest last

A single writer per directory is assumed. The snapshot is replaced
atomically so readers never see a torn file, and each event line is
written with one append call, but two controllers sharing a directory
will still interleave their sequences.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from pulsecheck.core.log import logger
from pulsecheck.core.summary import EventLogEntry, Summary

SUMMARY_FILENAME = "heartbeat-summary.json"
EVENT_LOG_FILENAME = "heartbeat-events.log"


class SummaryNotFoundError(FileNotFoundError):
    """No cycle has ever been persisted in the artifact directory."""


class EventLogStore:
    """Reads and writes the heartbeat artifacts of one directory."""

    def __init__(self, artifact_dir: Path):
        self.artifact_dir = Path(artifact_dir)
        self.summary_path = self.artifact_dir / SUMMARY_FILENAME
        self.event_log_path = self.artifact_dir / EVENT_LOG_FILENAME

    def ensure(self) -> None:
        """Create the artifact directory if needed."""
        self.artifact_dir.mkdir(parents=True, exist_ok=True)

    def last_sequence(self) -> int:
        """Sequence of the persisted snapshot, 0 if none is readable."""
        try:
            return self.read_summary().sequence
        except (OSError, ValueError):
            return 0

    def read_summary(self) -> Summary:
        """Load the latest snapshot.

        Raises:
            SummaryNotFoundError: If no snapshot exists
            pydantic.ValidationError: If the snapshot is corrupt
        """
        if not self.summary_path.is_file():
            raise SummaryNotFoundError(
                f"No heartbeat summary found at {self.summary_path}"
            )
        return Summary.model_validate_json(
            self.summary_path.read_text(encoding="utf-8")
        )

    def write_summary(self, summary: Summary) -> None:
        """Replace the snapshot atomically."""
        self.ensure()
        fd, tmp = tempfile.mkstemp(
            dir=self.artifact_dir, prefix=".summary-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(summary.to_json())
            os.replace(tmp, self.summary_path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def append(self, entry: EventLogEntry) -> None:
        """Append one event line."""
        self.ensure()
        with open(self.event_log_path, "a", encoding="utf-8") as f:
            f.write(entry.to_line())

    def iter_entries(self) -> Iterator[EventLogEntry]:
        """Stream event log entries, skipping lines that do not parse.

        A crash mid-write can leave a partial trailing line, and
        operators occasionally edit the log by hand; neither may break
        a budget evaluation.
        """
        if not self.event_log_path.is_file():
            return
        with open(self.event_log_path, encoding="utf-8", errors="replace") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield EventLogEntry.model_validate_json(line)
                except ValidationError:
                    logger.debug(
                        "Skipping malformed event log line {lineno}",
                        lineno=lineno,
                        path=str(self.event_log_path),
                    )

    def recent_entries(self, cutoff: datetime) -> list[EventLogEntry]:
        """Cycle entries strictly newer than cutoff."""
        return [
            entry for entry in self.iter_entries()
            if entry.kind == "cycle" and entry.timestamp > cutoff
        ]
