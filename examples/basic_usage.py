#!/usr/bin/env python3
"""
Basic usage example for tsbundle.

Resolves a grammar selection, prints the resulting switches and, when a
dependency manifest is present, builds the bundle.

Usage:
    python3 basic_usage.py [--build] [-- --language python rust]
"""

import os
import sys

# Add tsbundle to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import tsbundle
from tsbundle import BuildConfig, BuildContext, BuildOrchestrator
from tsbundle.utils.exceptions import TSBundleError


def main():
    print(f"tsbundle {tsbundle.__version__}")
    argv = sys.argv[1:] or ["--", "--language", "python", "rust"]
    here = os.path.dirname(os.path.abspath(__file__))

    config = BuildConfig(os.path.join(here, "tsbundle.yaml"))
    config.fetch.manifest = os.path.join(here, "tsbundle.deps.yaml")
    orchestrator = BuildOrchestrator(BuildContext.from_config(config))

    print("\n1. Resolving selection...")
    resolved = orchestrator.resolve(argv, config.options)
    print(f"Included grammars: {', '.join(resolved.included) or '(none)'}")
    for macro, value in resolved.feature_defines(config.output.bundle_name):
        if value:
            print(f"  #define {macro} {value}")

    if "--build" not in argv:
        print("\nPass --build to fetch and compile the selection.")
        return

    print("\n2. Building...")
    try:
        result = orchestrator.build_all(resolved)
    except TSBundleError as e:
        print(f"Build failed: {e}")
        sys.exit(1)
    print(f"✓ Library: {result.composed.library}")
    print(f"✓ Manifest: {result.manifest}")


if __name__ == '__main__':
    main()
