"""
Package information utility.

This module provides a command-line utility for displaying
information about the tsbundle installation and build environment.
"""

import platform
import sys
from typing import Any, Dict, Optional

import tsbundle
from tsbundle.registry import default_registry

from .commands import CommandRunner, SubprocessRunner

TOOLS = ("cc", "ar", "git", "tree-sitter")


def get_system_info() -> Dict[str, Any]:
    """
    Get system information relevant to tsbundle.

    Returns:
        Dictionary containing system information
    """
    return {
        'python_version': sys.version,
        'platform': platform.platform(),
        'architecture': platform.architecture(),
        'processor': platform.processor(),
    }


def get_tool_info(runner: Optional[CommandRunner] = None) -> Dict[str, Optional[str]]:
    """Locate each external tool the build may invoke."""
    runner = runner or SubprocessRunner()
    return {tool: runner.which(tool) for tool in TOOLS}


def get_tsbundle_info(runner: Optional[CommandRunner] = None) -> Dict[str, Any]:
    """
    Get tsbundle-specific information.

    Returns:
        Dictionary containing version, tools and registry information
    """
    registry = default_registry()
    return {
        'version': tsbundle.__version__,
        'author': tsbundle.__author__,
        'tools': get_tool_info(runner),
        'modules': [spec.name for spec in registry],
        'generated_modules': [spec.name for spec in registry if spec.needs_generation],
    }


def print_info(runner: Optional[CommandRunner] = None) -> None:
    """Print formatted information about tsbundle and the system."""
    print("tsbundle Grammar Bundle Builder")
    print("=" * 40)

    info = get_tsbundle_info(runner)
    print(f"\ntsbundle Version: {info['version']}")
    print(f"Author: {info['author']}")

    print("\nTools:")
    for tool, path in info['tools'].items():
        print(f"  {tool:<12} {path or 'not found'}")

    print(f"\nRegistered Grammars ({len(info['modules'])}): {', '.join(info['modules'])}")
    if info['generated_modules']:
        print(f"Require tree-sitter generate: {', '.join(info['generated_modules'])}")

    system_info = get_system_info()
    print(f"\nPython Version: {system_info['python_version'].split()[0]}")
    print(f"Platform: {system_info['platform']}")
    print(f"Architecture: {system_info['architecture'][0]}")


def main() -> None:
    """Main entry point for the tsbundle-info command."""
    try:
        print_info()
    except Exception as e:
        print(f"Error getting system information: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
