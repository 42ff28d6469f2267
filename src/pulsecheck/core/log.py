"""Logger with composable output sinks.

Everything in pulsecheck imports the module-level ``logger`` proxy.
Before setup_logger() runs, the proxy swallows calls; afterwards it
forwards them to the configured Logger, which emits through logfire
(console, logfire.dev) and OpenTelemetry span processors (file).
"""

from __future__ import annotations

import contextlib
from abc import abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from pulsecheck.core.base import BaseConfig

_current_logger: Logger | None = None


class _LoggerProxy:
    """Forwards attribute access to the current Logger, or no-ops."""

    def __getattr__(self, name):
        if _current_logger is None:
            if name == "span":
                return lambda *args, **kwargs: contextlib.nullcontext()

            def _noop(*args, **kwargs):  # noqa: ARG001
                pass
            return _noop
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *args):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*args)


logger = _LoggerProxy()


class LevelFilteringExporter(SpanExporter):
    """Span exporter that drops spans below a minimum level."""

    # Level names mapped to OpenTelemetry severity numbers
    _level_thresholds = {
        'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
        'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
        'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
        'info': logs_pb2.SEVERITY_NUMBER_INFO,
        'warn': logs_pb2.SEVERITY_NUMBER_WARN,
        'error': logs_pb2.SEVERITY_NUMBER_ERROR,
        'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
    }

    def __init__(self, exporter: SpanExporter, min_level: str | None):
        self._exporter = exporter
        self._min_severity = self._level_thresholds.get(
            (min_level or "info").lower(), logs_pb2.SEVERITY_NUMBER_INFO
        )

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [
            span for span in spans
            if (span.attributes or {}).get(
                'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
            ) >= self._min_severity
        ]
        if kept:
            return self._exporter.export(kept)
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)

    @classmethod
    def level_name(cls, level_num: int) -> str:
        """Map a severity number back to the closest level name."""
        for name in ('fatal', 'error', 'warn', 'info', 'debug', 'trace'):
            if level_num >= cls._level_thresholds[name]:
                return name
        return 'spew'


class Sink(BaseConfig):
    """Base class for log output sinks."""

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Log level for this sink. If None, inherits from Logger.level. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        )
    )
    format_template: str | None = Field(
        default="{timestamp:%Y-%m-%dT%H:%M:%S} {level:<5} {message}",
        description="Line template; None writes raw span JSON",
    )

    _processor: Any = PrivateAttr(default=None)

    def _format_span(self, span) -> str:
        """Render one span as a single log line."""
        if not self.format_template:
            return span.to_json() + "\n"

        attrs = dict(span.attributes or {})
        level_num = attrs.get(
            "logfire.level_num", logs_pb2.SEVERITY_NUMBER_INFO
        )
        data = {
            'timestamp': datetime.fromtimestamp(span.start_time / 1e9, tz=UTC),
            'level': LevelFilteringExporter.level_name(level_num),
            'message': attrs.get("logfire.msg", span.name),
        }
        try:
            line = self.format_template.format(**data)
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        custom = {
            k: v for k, v in attrs.items()
            if not k.startswith(('logfire.', 'code.', 'otel.'))
        }
        if custom:
            line += " │ " + " ".join(
                f"{k}={v!r}" for k, v in sorted(custom.items())
            )
        return line + "\n"

    @abstractmethod
    def create_processor(self, log_root: Path, run_name: str):
        """Return an OpenTelemetry span processor, or None."""

    def close(self):
        if self._processor:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """Console output, rendered by logfire itself."""

    verbose: bool = Field(default=False, description="Show span details")
    colors: str = Field(
        default="auto", description="Color mode: auto, always, never"
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class FileSink(Sink):
    """Line-buffered log file under the log root."""

    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(
        default="{log_root}/{run_name}.log",
        description="Log file path template",
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        log_path = Path(
            self.path.format(log_root=log_root, run_name=run_name)
        )
        log_path.parent.mkdir(parents=True, exist_ok=True)
        # Stays open for the lifetime of the sink
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        exporter = ConsoleSpanExporter(
            out=self._file, formatter=self._format_span
        )
        return BatchSpanProcessor(
            LevelFilteringExporter(exporter, self.level)
        )

    def close(self):
        # Processor first so queued spans reach the file
        super().close()
        if self._file and not self._file.closed:
            self._file.flush()
            self._file.close()


class LogfireSink(Sink):
    """Logfire.dev cloud sink."""

    enabled: bool = Field(
        default=False, description="Send telemetry to logfire.dev"
    )
    token: str | None = Field(
        default=None,
        description="API token (or use LOGFIRE_TOKEN env var)",
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class Logger(BaseConfig):
    """Logger with console, file and logfire.dev sinks."""

    level: str = Field(
        default="info",
        description=(
            "Default level for sinks without their own. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        )
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    file: FileSink = Field(default_factory=FileSink)
    logfire: LogfireSink = Field(default_factory=LogfireSink)

    @model_validator(mode='after')
    def _cascade_level_to_sinks(self) -> 'Logger':
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, run_name: str):
        """Create sink processors and configure logfire."""
        import logfire
        from logfire import ConsoleOptions

        for sink in (self.console, self.file, self.logfire):
            if sink.enabled:
                sink._processor = sink.create_processor(log_root, run_name)

        processors = [
            sink._processor
            for sink in (self.file,)
            if sink.enabled and sink._processor
        ]

        console = (
            ConsoleOptions(
                # logfire has no level below trace
                min_log_level=(
                    "trace" if self.console.level == "spew"
                    else self.console.level
                ),
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=True,
            )
            if self.console.enabled
            else False
        )

        logfire.configure(
            service_name=run_name,
            send_to_logfire=self.logfire.enabled,
            token=self.logfire.token if self.logfire.enabled else None,
            console=console,
            additional_span_processors=processors or None,
        )

    def info(self, msg: str, **kwargs):
        import logfire
        logfire.info(msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        import logfire
        logfire.debug(msg, **kwargs)

    def trace(self, msg: str, **kwargs):
        import logfire
        logfire.log(
            level=LevelFilteringExporter._level_thresholds['trace'],
            msg_template=msg,
            attributes=kwargs or None,
        )

    def spew(self, msg: str, **kwargs):
        """Below trace: subprocess chatter and raw output lines."""
        import logfire
        logfire.log(
            level=LevelFilteringExporter._level_thresholds['spew'],
            msg_template=msg,
            attributes=kwargs or None,
        )

    def warn(self, msg: str, **kwargs):
        import logfire
        logfire.warn(msg, **kwargs)

    warning = warn

    def error(self, msg: str, **kwargs):
        import logfire
        logfire.error(msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Span context manager: ``with logger.span("cycle"): ...``"""
        import logfire
        return logfire.span(msg, **kwargs)

    def log(self, level: str, msg: str, **kwargs):
        """Log at a level given by name, including spew."""
        import logfire
        logfire.log(
            level=LevelFilteringExporter._level_thresholds.get(
                level, logs_pb2.SEVERITY_NUMBER_INFO
            ),
            msg_template=msg,
            attributes=kwargs or None,
        )


def setup_logger(
    log_root: Path,
    run_name: str,
    level: str = "info",
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
    logfire: LogfireSink | None = None,
) -> Logger:
    """Initialize the global logger singleton.

    Called by Config once configuration has loaded; tests call it
    directly.

    Args:
        log_root: Root directory for log files
        run_name: Service name and default log file stem
        level: Default level for sinks without their own
        console: Console sink config (or None for defaults)
        file: File sink config (or None for defaults)
        logfire: Logfire sink config (or None for defaults)

    Returns:
        The initialized global Logger
    """
    global _current_logger

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        file=file or FileSink(),
        logfire=logfire or LogfireSink(),
    )
    _current_logger.setup(log_root, run_name)
    return _current_logger
