"""YAML configuration loading with include: support."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import yaml
from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, YamlConfigSettingsSource

DEFAULTS_FILE = Path(__file__).parent.parent / "defaults" / "default.yaml"
CONFIG_FILENAME = "pulsecheck.yaml"

# Logger used while configuration is still loading
_bootstrap_logger = None


def _get_bootstrap_logger():
    global _bootstrap_logger
    if _bootstrap_logger is None:
        from pulsecheck.core.log import Logger
        _bootstrap_logger = Logger()
        _bootstrap_logger.setup(log_root=Path.home(), run_name="bootstrap")
    return _bootstrap_logger


def _cleanup_bootstrap_logger():
    """Close the bootstrap logger once Config has set up the real one."""
    global _bootstrap_logger
    if _bootstrap_logger:
        _bootstrap_logger.close()
        _bootstrap_logger = None


def cli_includes(argv: list[str]) -> list[str]:
    """Values of every ``--include FILE`` pair in argv."""
    includes = []
    args = iter(argv[1:])
    for arg in args:
        if arg == "--include":
            value = next(args, None)
            if value is not None:
                includes.append(value)
        elif arg.startswith("--include="):
            includes.append(arg.split("=", 1)[1])
    return includes


def merge_dicts(base: dict, override: dict) -> dict:
    """Merge override into a copy of base; override wins, dicts merge."""
    result = base.copy()
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = merge_dicts(result[key], value)
        else:
            result[key] = value
    return result


class YamlWithIncludesSettingsSource(YamlConfigSettingsSource):
    """YAML settings source layering several files.

    Merge order, later wins:
        package defaults < user config < ./pulsecheck.yaml < --include

    Each file may itself carry an ``include:`` key (string or list),
    resolved relative to that file. Lists such as ``checks`` are
    replaced, not concatenated, by a later file.
    """

    def __init__(self, settings_cls: type[BaseSettings], yaml_file=None):
        # --include must be known before pydantic parses the CLI
        self.includes = cli_includes(sys.argv)
        super().__init__(settings_cls, yaml_file)

    def _read_files(self, files, deep_merge: bool = True):
        """Load and merge every configuration layer that exists.

        Args:
            files: yaml_file from the model config (project config)
            deep_merge: Ignored; layers are always deep merged

        Returns:
            Deep-merged dictionary of all loaded data
        """
        if isinstance(files, (str, os.PathLike)):
            files = [files]

        candidates = [
            DEFAULTS_FILE,
            Path(user_config_dir("pulsecheck", appauthor=False))
            / CONFIG_FILENAME,
            *(Path(f) for f in files or []),
            *(Path(f).expanduser() for f in self.includes),
        ]

        result: dict = {}
        for path in candidates:
            if not path.is_file():
                _get_bootstrap_logger().debug(
                    "Configuration file not found (skipping)",
                    file=str(path),
                )
                continue
            with _get_bootstrap_logger().span(
                "Configuration loading", file=str(path)
            ):
                result = merge_dicts(result, self._load_file_recursive(path))
        return result

    def _load_file_recursive(
        self, path: Path, visited: frozenset[Path] = frozenset()
    ) -> dict:
        """Load one file with its include: directives resolved.

        Raises:
            ValueError: On a circular include
        """
        path = path.resolve()
        if path in visited:
            raise ValueError(f"Circular include: {path}")
        visited = visited | {path}

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        includes = data.pop("include", None) or []
        if isinstance(includes, str):
            includes = [includes]

        merged: dict = {}
        for include in includes:
            include_path = Path(include).expanduser()
            if not include_path.is_absolute():
                include_path = path.parent / include_path
            merged = merge_dicts(
                merged, self._load_file_recursive(include_path, visited)
            )
        # The including file wins over what it includes
        return merge_dicts(merged, data)
