"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from pulsecheck.checks.registry import CheckDefinition, CheckRegistry
from pulsecheck.core.base import BaseConfig, BaseState
from pulsecheck.core.incident import IncidentConfig
from pulsecheck.core.log import Logger
from pulsecheck.core.summary import BudgetThresholds
from pulsecheck.core.yaml_settings import YamlWithIncludesSettingsSource

# Modules available for template substitution in YAML files
# Usage: {platformdirs.user_state_dir}, {config.workdir}
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}


# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class Config(BaseConfig):
    """Controller configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance"
    )
    name: str = Field(
        default="pulsecheck",
        description="Command name recorded in summaries and event lines",
    )
    workdir: Path = Field(
        default_factory=Path.cwd,
        description="Working directory for check and bundler commands",
    )
    artifact_dir: Path = Field(
        default=Path("{config.workdir}/output/stability"),
        description=(
            "Directory holding heartbeat-summary.json and "
            "heartbeat-events.log (supports {config.*} templates)"
        ),
    )
    log_level: str = Field(
        default="info",
        alias="log-level",
        description=(
            "Console log level: 'spew', 'trace', 'debug', 'info', "
            "'warn', 'error', 'fatal'"
        ),
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "pulsecheck"
        ),
        description="Root directory for log files",
    )
    budget: BudgetThresholds = Field(
        default_factory=BudgetThresholds,
        description="Stability budget thresholds",
    )
    incident: IncidentConfig = Field(
        default_factory=IncidentConfig,
        description="Incident bundle capture settings",
    )
    checks: list[CheckDefinition] = Field(
        default_factory=list,
        description="Ordered check registry (kind: command, json-status, json-exit)",
    )

    model_config = ConfigDict(populate_by_name=True)

    def registry(self) -> CheckRegistry:
        """Build the check registry.

        Raises:
            ValueError: If two checks share a name
        """
        return CheckRegistry(self.checks)

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Initialize the global logger once configuration has loaded."""
        from pulsecheck.core.log import setup_logger

        if self.logger is None:
            self.logger = Logger(level=self.log_level)

        setup_logger(
            log_root=self.log_root,
            run_name=self.name,
            level=self.logger.level,
            console=self.logger.console,
            file=self.logger.file,
            logfire=self.logger.logfire,
        )

        from pulsecheck.core.yaml_settings import _cleanup_bootstrap_logger
        _cleanup_bootstrap_logger()

        return self

    def close(self):
        """Close config and the global logger singleton."""
        from pulsecheck.core.log import logger
        logger.close()
        super().close()


# ============================================================
# RUNTIME STATE MODELS (mutable while cycles run)
# ============================================================

class WatchState(BaseState):
    """Scheduler runtime state (mutates during execution)."""

    controller: Any = Field(
        default=None,
        description="ControllerContext for the active run",
    )
    interval: float = Field(
        default=60.0, description="Seconds between cycles"
    )
    iterations: int | None = Field(
        default=None, description="Stop after this many cycles"
    )
    fail_on_failure: bool = False
    stop_on_failure: bool = False
    auto_pause_budget: bool = False
    json_output: bool = False
    iteration: int = Field(
        default=0, description="Cycles completed in this process"
    )
    exit_code: int = Field(
        default=0, description="Exit code the process will end with"
    )
    last_summary: Any = Field(
        default=None, description="Summary of the most recent cycle"
    )
    stop_reason: str | None = Field(
        default=None,
        description=(
            "Why the loop ended: iterations, failure, budget"
        ),
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)


class Runtime(BaseModel):
    """All runtime state, grouped by concern."""

    watch: WatchState = Field(
        default_factory=WatchState,
        description="Scheduler runtime state",
    )


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Complete application state: configuration and runtime.

    This is the object that flows through every subcommand and
    scheduler node. Being a pydantic BaseSettings, it loads from YAML
    files, .env, environment variables and CLI arguments, and
    validates everything on load.
    """

    config: Config = Field(
        default_factory=Config,
        description="Controller configuration (from YAML/env/CLI)",
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates while cycles run)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file="pulsecheck.yaml",
        env_file=".env",
        env_prefix="PULSECHECK_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        extra='ignore'
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Source priority, highest first.

        CLI arguments are prepended by pydantic-settings ahead of all
        of these, so a flag always beats its environment variable.

        1. init_settings
        2. Environment variables (PULSECHECK_CONFIG__BUDGET__MAX_FAILURES)
        3. .env file
        4. YAML files (defaults, user, project, --include)
        5. File secrets
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Replace {config.*} and {platformdirs.*} templates in
        string and Path fields, recursively."""
        self._substitute_recursive(self)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value and new_value != value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i in range(len(obj)):
                obj[i] = self._substitute_value(obj[i])

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._substitute_string(value)
        elif isinstance(value, Path):
            return Path(self._substitute_string(str(value)))
        elif isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
            return value
        else:
            return value

    def _substitute_string(self, value: str) -> str:
        """Replace {field.path} templates with field values.

        Examples:
            "{config.workdir}/output/stability"
            → "/srv/studio/output/stability"
            "{platformdirs.user_state_dir}"
            → "~/.local/state/pulsecheck"
        """
        def replace_template(match):
            parts = match.group(1).split(".")

            if parts[0] in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            else:
                obj = self

            try:
                for part in parts:
                    obj = getattr(obj, part)

                if callable(obj):
                    obj = obj('pulsecheck', appauthor=False)

                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'\{([a-z._]+)\}', replace_template, value)


__all__ = ["Config", "State", "Runtime", "WatchState"]
