"""
Utils package for tsbundle.

Logging, configuration, exceptions and external command execution shared
by every build component.
"""

from .commands import CommandResult, CommandRunner, CommandTimeout, SubprocessRunner
from .config import (
    BuildConfig,
    FetchConfig,
    GeneratorConfig,
    LoggingConfig,
    Optimize,
    OutputConfig,
    TargetConfig,
    ToolchainConfig,
    load_config,
)
from .exceptions import (
    CompilationError,
    ConfigErrorKind,
    ConfigurationError,
    ConfigurationErrorGroup,
    DependencyError,
    GenerationError,
    HeaderError,
    TSBundleError,
)
from .logging import BuildLogger, get_logger, setup_logging

__all__ = [
    # Commands
    "CommandResult",
    "CommandRunner",
    "CommandTimeout",
    "SubprocessRunner",

    # Configuration
    "BuildConfig",
    "FetchConfig",
    "GeneratorConfig",
    "LoggingConfig",
    "Optimize",
    "OutputConfig",
    "TargetConfig",
    "ToolchainConfig",
    "load_config",

    # Exceptions
    "CompilationError",
    "ConfigErrorKind",
    "ConfigurationError",
    "ConfigurationErrorGroup",
    "DependencyError",
    "GenerationError",
    "HeaderError",
    "TSBundleError",

    # Logging
    "BuildLogger",
    "get_logger",
    "setup_logging",
]
