"""
Command-line entry point for ``tsbundle-build``.

Arguments before ``--`` configure the build itself; grammar selection
flags follow it:

    tsbundle-build -Dpython=false --optimize ReleaseFast -- --all-languages
    tsbundle-build --prefix out -- --language c rust zig
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .pipeline import BuildContext, BuildOrchestrator, registry_from_config, resolve_build_selection
from .selection.arguments import split_at_separator
from .selection.options import merge_option_sources, parse_define_tokens
from .utils.config import BuildConfig, Optimize, load_config
from .utils.exceptions import ConfigurationError, TSBundleError
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tsbundle-build",
        description="Build a tree-sitter grammar bundle. Grammar selection flags "
        "(--language NAME..., --all-languages) go after a literal '--'.",
    )
    parser.add_argument(
        "-D",
        dest="define",
        action="append",
        default=[],
        metavar="NAME[=BOOL]",
        help="Declarative option for one grammar module or 'all'; overrides the selection flags",
    )
    parser.add_argument("--config", help="Configuration file (YAML or JSON)")
    parser.add_argument("--manifest", help="Dependency manifest (YAML or JSON)")
    parser.add_argument("--prefix", help="Install prefix")
    parser.add_argument("--build-dir", help="Directory for intermediate build files")
    parser.add_argument("--target", help="Target triple passed to the C compiler")
    parser.add_argument(
        "--optimize",
        choices=[mode.value for mode in Optimize],
        help="Optimization mode",
    )
    parser.add_argument("--jobs", "-j", type=int, help="Number of grammar pipelines to run at once")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument(
        "--collect-errors",
        action="store_true",
        help="Report every selection error instead of stopping at the first",
    )
    parser.add_argument("--list", action="store_true", help="List registered grammar modules and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def apply_overrides(config: BuildConfig, args: argparse.Namespace) -> BuildConfig:
    """Apply command-line settings on top of the loaded configuration."""
    if args.manifest:
        config.fetch.manifest = args.manifest
    if args.prefix:
        config.output.prefix = args.prefix
    if args.build_dir:
        config.output.build_dir = args.build_dir
    if args.target:
        config.build.target = args.target
    if args.optimize:
        config.build.optimize = Optimize.parse(args.optimize)
    if args.jobs is not None:
        config.build.jobs = args.jobs
    if args.log_level:
        config.logging.level = args.log_level
    return config


def list_modules(config: BuildConfig) -> None:
    registry = registry_from_config(config)
    for spec in registry:
        notes = []
        if spec.source_root != "src":
            notes.append(f"root={spec.source_root}")
        if not spec.has_scanner:
            notes.append("no scanner")
        if spec.needs_generation:
            notes.append("needs generation")
        suffix = f"  ({', '.join(notes)})" if notes else ""
        print(f"{spec.name}{suffix}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the tsbundle-build command."""
    argv = list(sys.argv[1:] if argv is None else argv)
    driver_args, _ = split_at_separator(argv)
    args, unknown = build_parser().parse_known_args(driver_args)

    try:
        config = apply_overrides(load_config(args.config), args)
        setup_logging(config.logging.level, config.logging.log_file)
        if unknown:
            logger.warning(f"Ignoring unrecognized build arguments: {' '.join(unknown)}")

        if args.list:
            list_modules(config)
            return EXIT_OK

        registry = registry_from_config(config)
        option_values = merge_option_sources(config.options, parse_define_tokens(args.define))
        resolved = resolve_build_selection(registry, argv, option_values, collect_errors=args.collect_errors)
        orchestrator = BuildOrchestrator(BuildContext.from_config(config, registry=registry))
        result = orchestrator.build_all(resolved)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR
    except TSBundleError as e:
        logger.error(f"Build failed: {e}")
        return EXIT_BUILD_FAILED

    print(result.composed.library)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
