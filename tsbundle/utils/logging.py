"""
Logging configuration and utilities.

This module provides centralized logging configuration for the
tsbundle package with appropriate formatting and levels.
"""

import logging
import os
from typing import Iterable, Optional


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the tsbundle package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
    """
    if level is None:
        level = os.environ.get("TSBUNDLE_LOG_LEVEL", "INFO")

    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("tsbundle")
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance under the ``tsbundle`` hierarchy
    """
    if name == "tsbundle" or name.startswith("tsbundle."):
        return logging.getLogger(name)
    return logging.getLogger(f"tsbundle.{name}")


class BuildLogger:
    """
    Structured log messages for the grammar build pipeline.

    Each pipeline stage reports through one of these helpers so the
    console output reads the same regardless of which component emits it.
    """

    def __init__(self, name: str):
        """
        Initialize logger for specific component.

        Args:
            name: Component name for logging context
        """
        self.logger = get_logger(name)

    def log_selection(self, included: Iterable[str], all_flag: bool) -> None:
        """Log the resolved module selection."""
        names = list(included)
        if all_flag:
            self.logger.info(f"Resolved selection: all grammars ({len(names)} modules)")
        elif names:
            self.logger.info(f"Resolved selection: {', '.join(names)}")
        else:
            self.logger.info("Resolved selection: no grammar modules, core library only")

    def log_module_start(self, module: str, stage: str) -> None:
        """Log the start of a pipeline stage for one module."""
        self.logger.info(f"[{module}] {stage}...")

    def log_module_done(self, module: str, artifact: str, duration: float) -> None:
        """Log a finished module pipeline."""
        self.logger.info(f"[{module}] built {artifact} in {duration:.2f}s")

    def log_command(self, argv: Iterable[str], cwd: Optional[str] = None) -> None:
        """Log an external command at debug level."""
        where = f" (cwd={cwd})" if cwd else ""
        self.logger.debug(f"Running: {' '.join(argv)}{where}")

    def log_failure(self, module: str, error: Exception) -> None:
        """Log a fatal failure for one module."""
        self.logger.error(f"[{module}] {error}")

    def log_summary(self, library: str, module_count: int, duration: float) -> None:
        """Log the final composition summary."""
        self.logger.info(
            f"Composed {library} with {module_count} grammar module(s) in {duration:.2f}s"
        )


# Initialize logging on module import
setup_logging()
