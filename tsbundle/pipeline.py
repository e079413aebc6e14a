"""
Build orchestration.

Resolves the grammar selection once, then runs one independent pipeline
per included module (fetch, optional generation, compile, header install)
alongside the core library build, and finally composes everything into
the exported bundle. The first failure aborts the whole build.
"""

import json
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from . import __version__
from .compiler.composer import ComposedModule, ModuleComposer
from .compiler.core_library import CoreLibrary, CoreLibraryBuilder
from .compiler.generator import GrammarGenerator
from .compiler.headers import accessor_name
from .compiler.toolchain import CToolchain
from .compiler.unit_builder import CompilationUnitBuilder, CompiledModule
from .fetch.manifest import CORE_PACKAGE, DependencyManifest
from .fetch.materializer import DependencyMaterializer, FetchRequest
from .registry import ModuleRegistry, ModuleSpec, default_registry
from .selection.resolver import ResolvedConfig, read_selection_intent, resolve_selection
from .utils.commands import CommandRunner, SubprocessRunner
from .utils.config import BuildConfig, Optimize
from .utils.exceptions import CompilationError
from .utils.logging import BuildLogger

build_log = BuildLogger(__name__)


def registry_from_config(config: BuildConfig) -> ModuleRegistry:
    """Built-in registry plus any modules declared in the config file."""
    registry = default_registry()
    if config.extra_modules:
        registry = registry.extended(ModuleSpec.from_dict(e) for e in config.extra_modules)
    return registry


def resolve_build_selection(
    registry: ModuleRegistry,
    argv: Sequence[str],
    option_values: Optional[Mapping[str, Any]] = None,
    collect_errors: bool = False,
) -> ResolvedConfig:
    """
    Resolve the selection from argv and declarative options.

    Needs only the registry, so selection errors are reported before the
    dependency manifest or any build directory is touched.
    """
    intent = read_selection_intent(argv, registry, option_values, collect_errors)
    config = resolve_selection(intent, registry)
    build_log.log_selection(config.included, config.all)
    return config


@dataclass
class BuildContext:
    """
    Everything a build needs, passed explicitly to each component.

    Nothing in the pipeline reads module-level state; two contexts can
    drive two builds in the same process.
    """

    config: BuildConfig
    registry: ModuleRegistry
    runner: CommandRunner
    manifest: DependencyManifest
    build_dir: Path
    install_dir: Path
    optimize: Optimize = Optimize.DEBUG
    target: Optional[str] = None
    jobs: int = 1

    @classmethod
    def from_config(
        cls,
        config: BuildConfig,
        runner: Optional[CommandRunner] = None,
        registry: Optional[ModuleRegistry] = None,
        manifest: Optional[DependencyManifest] = None,
    ) -> "BuildContext":
        """Assemble a context from a loaded configuration."""
        if registry is None:
            registry = registry_from_config(config)
        if manifest is None:
            manifest = DependencyManifest.load(config.fetch.manifest)
        return cls(
            config=config,
            registry=registry,
            runner=runner or SubprocessRunner(),
            manifest=manifest,
            build_dir=Path(config.output.build_dir).absolute(),
            install_dir=Path(config.output.prefix).absolute(),
            optimize=config.build.optimize,
            target=config.build.target,
            jobs=config.effective_jobs(),
        )

    @property
    def bundle_name(self) -> str:
        return self.config.output.bundle_name

    @property
    def manifest_path(self) -> Path:
        """Install manifest; present only after a fully successful build."""
        return self.install_dir / "share" / self.bundle_name / "manifest.json"


@dataclass(frozen=True)
class BuildResult:
    """Outcome of a successful build."""

    config: ResolvedConfig
    composed: ComposedModule
    manifest: Path


class BuildOrchestrator:
    """Drives resolution, per-module pipelines and composition."""

    def __init__(self, context: BuildContext):
        self.context = context
        ctx = context
        self.toolchain = CToolchain(ctx.runner, ctx.config.toolchain)
        self.materializer = DependencyMaterializer(
            ctx.manifest,
            ctx.config.cache_dir().absolute(),
            ctx.runner,
            git=ctx.config.fetch.git,
            timeout=ctx.config.fetch.timeout_seconds,
        )
        self.generator = GrammarGenerator(ctx.runner, ctx.config.generator)
        self.unit_builder = CompilationUnitBuilder(self.toolchain, ctx.build_dir, ctx.install_dir)
        self.core_builder = CoreLibraryBuilder(self.toolchain, ctx.build_dir, ctx.install_dir)
        self.composer = ModuleComposer(self.toolchain, ctx.build_dir, ctx.install_dir, ctx.bundle_name)

    def resolve(
        self,
        argv: Sequence[str],
        option_values: Optional[Mapping[str, Any]] = None,
        collect_errors: bool = False,
    ) -> ResolvedConfig:
        """Resolve the selection against this build's registry."""
        return resolve_build_selection(self.context.registry, argv, option_values, collect_errors)

    def _request(self, name: str) -> FetchRequest:
        return FetchRequest(name, self.context.target, self.context.optimize)

    def build_module(self, spec: ModuleSpec) -> CompiledModule:
        """Fetch, optionally generate, then compile one grammar module."""
        start = time.time()
        build_log.log_module_start(spec.name, "fetching")
        source = self.materializer.materialize(self._request(spec.name))

        if spec.needs_generation:
            build_log.log_module_start(spec.name, "generating")
            staging = self.context.build_dir / "staging" / spec.name
            source = self.generator.generate(spec, source, staging)

        build_log.log_module_start(spec.name, "compiling")
        compiled = self.unit_builder.build(spec, source, self.context.optimize, self.context.target)
        build_log.log_module_done(spec.name, compiled.archive.name, time.time() - start)
        return compiled

    def build_core(self) -> CoreLibrary:
        source = self.materializer.materialize(self._request(CORE_PACKAGE))
        return self.core_builder.build(source, self.context.optimize, self.context.target)

    def build_all(self, config: ResolvedConfig) -> BuildResult:
        """
        Build every included module plus the core library and compose them.

        Raises:
            TSBundleError: The first failure from any pipeline; remaining
                queued pipelines are cancelled and no manifest is written
        """
        start = time.time()
        self._retract_manifest()

        specs = [self.context.registry.require(name) for name in config.included]
        core, modules = self._run_pipelines(specs)

        composed = self.composer.compose(core, modules, config, self.context.target)
        manifest = self._write_manifest(composed)
        build_log.log_summary(composed.library.name, len(composed.modules), time.time() - start)
        return BuildResult(config=config, composed=composed, manifest=manifest)

    def run(
        self,
        argv: Sequence[str],
        option_values: Optional[Mapping[str, Any]] = None,
    ) -> BuildResult:
        """Resolve the selection, then build it."""
        return self.build_all(self.resolve(argv, option_values))

    def _run_pipelines(self, specs: List[ModuleSpec]):
        jobs = max(1, self.context.jobs)
        executor = ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="tsbundle")
        try:
            core_future = executor.submit(self.build_core)
            module_futures: Dict[str, Future] = {
                spec.name: executor.submit(self.build_module, spec) for spec in specs
            }
            ordered = [(CORE_PACKAGE, core_future)] + list(module_futures.items())

            wait([f for _, f in ordered], return_when=FIRST_EXCEPTION)
            for name, future in ordered:
                if future.done() and not future.cancelled() and future.exception() is not None:
                    error = future.exception()
                    build_log.log_failure(name, error)
                    executor.shutdown(wait=True, cancel_futures=True)
                    raise error

            return core_future.result(), [module_futures[spec.name].result() for spec in specs]
        finally:
            executor.shutdown(wait=True)

    def _retract_manifest(self) -> None:
        path = self.context.manifest_path
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            raise CompilationError(
                f"Failed to remove previous install manifest {path}: {e}", self.context.bundle_name
            ) from e

    def _write_manifest(self, composed: ComposedModule) -> Path:
        ctx = self.context
        data = {
            "name": composed.name,
            "version": __version__,
            "target": ctx.target,
            "optimize": ctx.optimize.value,
            "library": str(composed.library),
            "config_header": str(composed.config_header),
            "config": composed.config.to_dict(),
            "defines": list(composed.defines),
            "core": {
                "archive": str(composed.core.archive),
                "revision": composed.core.revision,
            },
            "modules": [
                {
                    "name": m.name,
                    "archive": str(m.archive),
                    "header": str(m.header),
                    "accessor": accessor_name(m.name),
                    "revision": m.revision,
                }
                for m in composed.modules
            ],
        }
        path = ctx.manifest_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise CompilationError(f"Failed to write install manifest {path}: {e}", composed.name) from e
        return path
