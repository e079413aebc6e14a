"""
Build configuration for tsbundle.

Settings come from an optional YAML or JSON file, then a handful of
environment variables, then whatever the command line overrides. Each
concern lives in its own dataclass section.
"""

import json
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import psutil
import yaml

from .exceptions import ConfigErrorKind, ConfigurationError
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILES = ("tsbundle.yaml", "tsbundle.yml", "tsbundle.json")

# Bundle names become C macro prefixes and library names.
BUNDLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_bundle_name(name: str) -> str:
    """
    Check that ``name`` can prefix C macros and name a library.

    Raises:
        ConfigurationError: If ``name`` is not a C identifier
    """
    if not isinstance(name, str) or not BUNDLE_NAME_PATTERN.match(name):
        raise ConfigurationError(
            f"Invalid bundle name {name!r}: must be a C identifier (letters, digits, underscores)",
            ConfigErrorKind.INVALID_CONFIG,
            str(name),
        )
    return name


def _int_setting(section: str, data: Dict[str, Any], key: str, default: int, env_value: str = "") -> int:
    """Read an integer setting from ``section``, preferring a non-empty environment value."""
    raw = env_value or data.get(key, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid value for '{section}.{key}': {raw!r} is not an integer",
            ConfigErrorKind.INVALID_CONFIG,
            f"{section}.{key}",
        ) from e


class Optimize(Enum):
    """Optimization modes and the C flags each one maps to."""

    DEBUG = "Debug"
    RELEASE_SAFE = "ReleaseSafe"
    RELEASE_FAST = "ReleaseFast"
    RELEASE_SMALL = "ReleaseSmall"

    @classmethod
    def parse(cls, value: str) -> "Optimize":
        for mode in cls:
            if value == mode.value or value.upper() == mode.name:
                return mode
        choices = ", ".join(m.value for m in cls)
        raise ConfigurationError(
            f"Invalid optimize mode '{value}' (expected one of: {choices})",
            ConfigErrorKind.INVALID_CONFIG,
            value,
        )

    @property
    def cflags(self) -> List[str]:
        return {
            Optimize.DEBUG: ["-O0", "-g"],
            Optimize.RELEASE_SAFE: ["-O2"],
            Optimize.RELEASE_FAST: ["-O3", "-DNDEBUG"],
            Optimize.RELEASE_SMALL: ["-Os", "-DNDEBUG"],
        }[self]


@dataclass
class ToolchainConfig:
    """C compiler and archiver settings."""

    cc: str = "cc"
    ar: str = "ar"
    c_std: str = "c11"
    extra_cflags: List[str] = field(default_factory=list)
    timeout_seconds: int = 300


@dataclass
class GeneratorConfig:
    """External grammar generator settings."""

    executable: str = "tree-sitter"
    subcommand: str = "generate"
    bundled_path: Optional[str] = None
    timeout_seconds: int = 600


@dataclass
class FetchConfig:
    """Dependency manifest and source cache settings."""

    manifest: str = "tsbundle.deps.yaml"
    cache_dir: Optional[str] = None
    git: str = "git"
    timeout_seconds: int = 600


@dataclass
class OutputConfig:
    """Build and install locations."""

    build_dir: str = "build"
    prefix: str = "dist"
    bundle_name: str = "tsbundle"


@dataclass
class TargetConfig:
    """Target triple, optimization mode and parallelism."""

    target: Optional[str] = None
    optimize: Optimize = Optimize.DEBUG
    jobs: int = 0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    log_file: Optional[str] = None


class BuildConfig:
    """
    Unified configuration for a tsbundle build.

    Sections are populated from a config file when one is given (or one
    of ``DEFAULT_CONFIG_FILES`` exists in the working directory), then
    adjusted by environment variables. ``options`` holds the raw
    declarative module switches from the file; they are validated
    against the registry later.
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to configuration file. If None, the default
                file names are tried in the current directory.
        """
        self.config_file = self._get_config_file_path(config_file)
        self._config_data = self._load_config()

        self.toolchain = self._create_toolchain_config()
        self.generator = self._create_generator_config()
        self.fetch = self._create_fetch_config()
        self.output = self._create_output_config()
        self.build = self._create_target_config()
        self.logging = self._create_logging_config()
        self.extra_modules: List[Dict[str, Any]] = list(
            self._section("registry").get("extra_modules", []) or []
        )
        self.options: Dict[str, Any] = dict(self._config_data.get("options") or {})

    def _get_config_file_path(self, config_file: Optional[str]) -> Optional[Path]:
        if config_file:
            return Path(config_file)
        for name in DEFAULT_CONFIG_FILES:
            candidate = Path(name)
            if candidate.exists():
                return candidate
        return None

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file (JSON or YAML)."""
        if self.config_file is None:
            logger.debug("No configuration file, using defaults")
            return {}
        if not self.config_file.exists():
            raise ConfigurationError(
                f"Configuration file {self.config_file} not found",
                ConfigErrorKind.INVALID_CONFIG,
                str(self.config_file),
            )
        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                if self.config_file.suffix.lower() == ".json":
                    config_data = json.load(f)
                else:
                    config_data = yaml.safe_load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load configuration {self.config_file}: {e}",
                ConfigErrorKind.INVALID_CONFIG,
                str(self.config_file),
            ) from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigurationError(
                f"Configuration file {self.config_file} must contain a mapping",
                ConfigErrorKind.INVALID_CONFIG,
                str(self.config_file),
            )
        logger.info(f"Loaded configuration from {self.config_file}")
        return config_data

    def _section(self, name: str) -> Dict[str, Any]:
        data = self._config_data.get(name) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration section '{name}' must be a mapping",
                ConfigErrorKind.INVALID_CONFIG,
                name,
            )
        return data

    def _create_toolchain_config(self) -> ToolchainConfig:
        data = self._section("toolchain")
        return ToolchainConfig(
            cc=os.environ.get("CC") or data.get("cc", "cc"),
            ar=os.environ.get("AR") or data.get("ar", "ar"),
            c_std=data.get("c_std", "c11"),
            extra_cflags=list(data.get("extra_cflags", [])),
            timeout_seconds=_int_setting("toolchain", data, "timeout_seconds", 300),
        )

    def _create_generator_config(self) -> GeneratorConfig:
        data = self._section("generator")
        return GeneratorConfig(
            executable=data.get("executable", "tree-sitter"),
            subcommand=data.get("subcommand", "generate"),
            bundled_path=data.get("bundled_path"),
            timeout_seconds=_int_setting("generator", data, "timeout_seconds", 600),
        )

    def _create_fetch_config(self) -> FetchConfig:
        data = self._section("fetch")
        return FetchConfig(
            manifest=data.get("manifest", "tsbundle.deps.yaml"),
            cache_dir=os.environ.get("TSBUNDLE_CACHE_DIR") or data.get("cache_dir"),
            git=data.get("git", "git"),
            timeout_seconds=_int_setting("fetch", data, "timeout_seconds", 600),
        )

    def _create_output_config(self) -> OutputConfig:
        data = self._section("output")
        return OutputConfig(
            build_dir=data.get("build_dir", "build"),
            prefix=data.get("prefix", "dist"),
            bundle_name=validate_bundle_name(data.get("bundle_name", "tsbundle")),
        )

    def _create_target_config(self) -> TargetConfig:
        data = self._section("build")
        return TargetConfig(
            target=data.get("target"),
            optimize=Optimize.parse(data.get("optimize", Optimize.DEBUG.value)),
            jobs=_int_setting("build", data, "jobs", 0, os.environ.get("TSBUNDLE_JOBS", "")),
        )

    def _create_logging_config(self) -> LoggingConfig:
        data = self._section("logging")
        return LoggingConfig(
            level=os.environ.get("TSBUNDLE_LOG_LEVEL") or data.get("level", "INFO"),
            log_file=data.get("log_file"),
        )

    def effective_jobs(self) -> int:
        """Number of module pipelines to run at once."""
        if self.build.jobs > 0:
            return self.build.jobs
        return psutil.cpu_count(logical=True) or 1

    def cache_dir(self) -> Path:
        """Directory that holds fetched git checkouts."""
        if self.fetch.cache_dir:
            return Path(self.fetch.cache_dir)
        return Path(self.output.build_dir) / "deps"


def load_config(config_file: Optional[str] = None) -> BuildConfig:
    """Load configuration from a specific file (or the defaults)."""
    return BuildConfig(config_file)
