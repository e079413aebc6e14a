"""
Custom exception definitions.

This module defines the exception hierarchy for tsbundle errors. Every
error is fatal for the build invocation: nothing in the package retries
or recovers locally.
"""

from enum import Enum
from typing import List, Optional, Sequence


class TSBundleError(Exception):
    """
    Base exception for all tsbundle errors.

    Carries a human-readable message plus an optional dictionary of
    structured context that is appended when the error is printed.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize tsbundle error.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return formatted error message."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigErrorKind(Enum):
    """Categories of configuration problems."""

    UNKNOWN_MODULE = "unknown_module"
    DUPLICATE_MODULE = "duplicate_module"
    UNKNOWN_OPTION = "unknown_option"
    INVALID_OPTION_VALUE = "invalid_option_value"
    INVALID_REGISTRY = "invalid_registry"
    INVALID_CONFIG = "invalid_config"


class ConfigurationError(TSBundleError):
    """
    Raised when the requested selection or build options are invalid.

    Configuration errors are detected before any fetch or compile step
    starts. ``token`` is the offending command-line token, option name or
    module name.
    """

    def __init__(self, message: str, kind: ConfigErrorKind, token: Optional[str] = None):
        details = {"kind": kind.value}
        if token is not None:
            details["token"] = token
        super().__init__(message, details)
        self.kind = kind
        self.token = token


class ConfigurationErrorGroup(ConfigurationError):
    """
    Several configuration errors reported together.

    Only produced when a caller explicitly asks for error aggregation;
    the default behaviour is to raise the first problem found.
    """

    def __init__(self, errors: Sequence[ConfigurationError]):
        self.errors: List[ConfigurationError] = list(errors)
        first = self.errors[0]
        summary = "; ".join(e.message for e in self.errors)
        super().__init__(f"{len(self.errors)} configuration error(s): {summary}", first.kind, first.token)
        self.details["count"] = len(self.errors)


class DependencyError(TSBundleError):
    """
    Raised when a module's sources cannot be materialized.

    Covers missing package declarations, fetch failures and integrity
    mismatches. Aborts the whole build.
    """

    def __init__(self, message: str, module: str, command_output: str = ""):
        details = {"module": module}
        if command_output:
            details["output_length"] = len(command_output)
        super().__init__(message, details)
        self.module = module
        self.command_output = command_output


class GenerationError(TSBundleError):
    """
    Raised when the grammar generator is missing or fails.

    The message always names the module whose sources could not be
    generated; compilation of that module never starts.
    """

    def __init__(self, message: str, module: str, tool_output: str = ""):
        details = {"module": module}
        super().__init__(message, details)
        self.module = module
        self.tool_output = tool_output


class HeaderError(TSBundleError):
    """Raised when a synthesized module header cannot be written."""

    def __init__(self, module: str, path: str, os_error: OSError):
        message = f"Failed to write header for grammar '{module}' at {path}: {os_error}"
        super().__init__(message, {"module": module})
        self.module = module
        self.path = path
        self.os_error = os_error


class CompilationError(TSBundleError):
    """
    Raised when compiling, archiving or linking native code fails.

    ``module`` names the grammar (or the composed bundle) being built.
    """

    def __init__(self, message: str, module: str = "", compiler_output: str = ""):
        details = {}
        if module:
            details["module"] = module
        if compiler_output:
            details["compiler_output_length"] = len(compiler_output)
        super().__init__(message, details)
        self.module = module
        self.compiler_output = compiler_output

    def get_compiler_errors(self) -> list:
        """
        Extract error messages from compiler output.

        Returns:
            List of error message strings
        """
        if not self.compiler_output:
            return []

        errors = []
        for line in self.compiler_output.split("\n"):
            if "error:" in line.lower() or "failed:" in line.lower():
                errors.append(line.strip())
        return errors
