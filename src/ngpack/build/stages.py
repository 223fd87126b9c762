"""Build stages and the orchestrator of the ngpack pipeline.

The pipeline runs its stages strictly in sequence, threading one
``BuildArtifacts`` record through them:

    CLEAN → DERIVE_CONFIG → EXTRACT_REFERENCES → PROCESS_ASSETS →
    INLINE_REFERENCES → COMPILE → BUNDLE_ES2015 → REMAP_SOURCE_MAP →
    DOWNLEVEL_ES5 → REMAP_SOURCE_MAP → BUNDLE_UMD → REMAP_SOURCE_MAP →
    MINIFY → REMAP_SOURCE_MAP → COPY_FILES → WRITE_METADATA

Nothing is written to disk before COMPILE except the cleaned build directory;
templates and stylesheets are resolved in memory. Any stage failure aborts
the build and propagates to the caller. No stage is retried.
"""

from __future__ import annotations

import asyncio
import shutil
import time
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from ngpack.telemetry.sanitization import sanitize_error_message
from ngpack.telemetry.tracing import create_span

if TYPE_CHECKING:
    from ngpack.schemas.artifacts import BuildArtifacts, BuildResult
    from ngpack.schemas.package import PackageDescriptor
    from ngpack.styles.dispatcher import StylesheetDispatcher
    from ngpack.toolchain.base import Toolchain

logger = structlog.get_logger(__name__)


class BuildStage(str, Enum):
    """Stage of the build pipeline.

    Example:
        >>> BuildStage.PROCESS_ASSETS.exit_code
        4
    """

    LOAD = "LOAD"
    """Read ng-package.json and package.json into a PackageDescriptor."""

    CLEAN = "CLEAN"
    """Remove the build directory of a previous run."""

    DERIVE_CONFIG = "DERIVE_CONFIG"
    """Derive the compiler configuration from the descriptor."""

    EXTRACT_REFERENCES = "EXTRACT_REFERENCES"
    """First compiler pass: collect templateUrl and styleUrls references."""

    PROCESS_ASSETS = "PROCESS_ASSETS"
    """Resolve referenced templates and render referenced stylesheets."""

    INLINE_REFERENCES = "INLINE_REFERENCES"
    """Second compiler pass: inline resolved templates and styles."""

    COMPILE = "COMPILE"
    """Compile the inlined sources with ngc."""

    BUNDLE_ES2015 = "BUNDLE_ES2015"
    """Bundle the ES2015 module graph into a flat module."""

    DOWNLEVEL_ES5 = "DOWNLEVEL_ES5"
    """Transpile the ES2015 flat module to ES5."""

    BUNDLE_UMD = "BUNDLE_UMD"
    """Bundle the ES5 flat module as UMD."""

    MINIFY = "MINIFY"
    """Minify the UMD bundle."""

    REMAP_SOURCE_MAP = "REMAP_SOURCE_MAP"
    """Rewrite a bundle's source map to point at the original sources."""

    COPY_FILES = "COPY_FILES"
    """Copy staged output into the distribution directory."""

    WRITE_METADATA = "WRITE_METADATA"
    """Write package.json and documentation files."""

    @property
    def exit_code(self) -> int:
        """CLI exit code for errors raised in this stage.

        Returns:
            3 for configuration stages, 4 for asset stages, 5 for the
            delegated toolchain stages.
        """
        if self in _CONFIGURATION_STAGES:
            return 3
        if self in _ASSET_STAGES:
            return 4
        return 5

    @property
    def description(self) -> str:
        """Human-readable description of this stage."""
        return _DESCRIPTIONS[self]


_CONFIGURATION_STAGES = frozenset({BuildStage.LOAD, BuildStage.CLEAN, BuildStage.DERIVE_CONFIG})
_ASSET_STAGES = frozenset(
    {
        BuildStage.EXTRACT_REFERENCES,
        BuildStage.PROCESS_ASSETS,
        BuildStage.INLINE_REFERENCES,
    }
)
_DESCRIPTIONS = {
    BuildStage.LOAD: "Read the package descriptor",
    BuildStage.CLEAN: "Clean the build directory",
    BuildStage.DERIVE_CONFIG: "Derive the compiler configuration",
    BuildStage.EXTRACT_REFERENCES: "Extract templateUrl and styleUrls",
    BuildStage.PROCESS_ASSETS: "Process templates and stylesheets",
    BuildStage.INLINE_REFERENCES: "Inline templateUrl and styleUrls",
    BuildStage.COMPILE: "Compile with ngc",
    BuildStage.BUNDLE_ES2015: "Bundle to FESM2015",
    BuildStage.DOWNLEVEL_ES5: "Downlevel to FESM5",
    BuildStage.BUNDLE_UMD: "Bundle to UMD",
    BuildStage.MINIFY: "Minify the UMD bundle",
    BuildStage.REMAP_SOURCE_MAP: "Remap source map",
    BuildStage.COPY_FILES: "Copy staged files",
    BuildStage.WRITE_METADATA: "Write package metadata",
}


class _StageRunner:
    """Runs one stage at a time with logging, tracing and completion marking."""

    def __init__(self, artifacts: BuildArtifacts, log: Any) -> None:
        self.artifacts = artifacts
        self.log = log
        self.current: BuildStage | None = None

    @contextmanager
    def stage(self, stage: BuildStage, **attributes: Any) -> Iterator[None]:
        self.current = stage
        stage_start = time.perf_counter()
        attributes = {key: str(value) for key, value in attributes.items()}
        span_attributes = {"build.stage": stage.value}
        span_attributes.update({f"build.{key}": value for key, value in attributes.items()})
        with create_span(f"build.{stage.value.lower()}", attributes=span_attributes):
            self.log.info(
                "build_stage_start",
                stage=stage.value,
                description=stage.description,
                **attributes,
            )
            yield
            self.artifacts.mark_complete(stage)
            self.log.info(
                "build_stage_complete",
                stage=stage.value,
                duration_ms=round((time.perf_counter() - stage_start) * 1000, 2),
                **attributes,
            )
        self.current = None


def _rimraf(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)


async def transform_sources(
    descriptor: PackageDescriptor,
    *,
    toolchain: Toolchain | None = None,
    dispatcher: StylesheetDispatcher | None = None,
) -> BuildResult:
    """Transform the library's TypeScript sources into the package format.

    Args:
        descriptor: The package to build.
        toolchain: Delegated compiler/bundler/minifier stages. Defaults to
            ``NodeToolchain`` rooted at the project.
        dispatcher: Stylesheet renderer dispatcher. Defaults to
            ``StylesheetDispatcher.default()``.

    Returns:
        Summary of the finished build.

    Raises:
        BuildException: If a configuration or asset stage fails.
        ToolchainError: If a delegated stage fails.

    Example:
        >>> result = asyncio.run(transform_sources(descriptor))
        >>> result.full_package_name
        '@my/lib'
    """
    # Local imports: schemas import this module for BuildStage
    from ngpack.build.assets import process_assets
    from ngpack.build.paths import (
        calculate_artifact_paths_for_build,
        calculate_artifact_paths_for_package_json,
    )
    from ngpack.build.references import (
        collect_template_and_stylesheet_files,
        inline_templates_and_styles,
    )
    from ngpack.build.tsconfig import prepare_ts_config
    from ngpack.schemas.artifacts import BuildArtifacts, BuildResult, BundleConfig
    from ngpack.styles.dispatcher import StylesheetDispatcher
    from ngpack.styles.renderers import RenderContext
    from ngpack.toolchain.node import NodeToolchain, umd_globals

    if toolchain is None:
        toolchain = NodeToolchain(descriptor.source_path)
    if dispatcher is None:
        dispatcher = StylesheetDispatcher.default()

    log = logger.bind(package=descriptor.full_package_name)
    log.info("build_start", entry_file=str(descriptor.entry_file))

    artifacts = BuildArtifacts(paths=calculate_artifact_paths_for_build(descriptor))
    runner = _StageRunner(artifacts, log)
    pipeline_start = time.perf_counter()

    with create_span(
        "build.pipeline",
        attributes={
            "build.package": descriptor.full_package_name,
            "build.module_name": descriptor.module_name,
        },
    ):
        try:
            with runner.stage(BuildStage.CLEAN, directory=descriptor.build_directory):
                await asyncio.to_thread(_rimraf, descriptor.build_directory)
                artifacts.temp.stage_dir = descriptor.stage_directory
                artifacts.temp.source_dir = descriptor.source_stage_directory

            with runner.stage(BuildStage.DERIVE_CONFIG):
                artifacts.extras.ts_config = prepare_ts_config(descriptor)

            ts_config = artifacts.require_ts_config(BuildStage.EXTRACT_REFERENCES)
            with runner.stage(BuildStage.EXTRACT_REFERENCES):
                collect_template_and_stylesheet_files(ts_config, artifacts)
                log.debug(
                    "references_extracted",
                    templates=len(artifacts.temp.templates),
                    stylesheets=len(artifacts.temp.stylesheets),
                )

            with runner.stage(BuildStage.PROCESS_ASSETS):
                await process_assets(artifacts, dispatcher, RenderContext.for_package(descriptor))

            with runner.stage(BuildStage.INLINE_REFERENCES):
                artifacts.temp.ts_sources = inline_templates_and_styles(ts_config, artifacts)

            with runner.stage(BuildStage.COMPILE):
                es2015_entry_file = await toolchain.compile(ts_config, artifacts)

            with runner.stage(BuildStage.BUNDLE_ES2015, dest=artifacts.es2015):
                await toolchain.bundle(
                    BundleConfig(
                        module_name=descriptor.module_name,
                        entry=es2015_entry_file,
                        format="es",
                        dest=artifacts.es2015,
                        externals=descriptor.lib_externals,
                    )
                )
            with runner.stage(BuildStage.REMAP_SOURCE_MAP, file=artifacts.es2015):
                await toolchain.remap_source_map(artifacts.es2015)

            with runner.stage(BuildStage.DOWNLEVEL_ES5, dest=artifacts.module):
                await toolchain.downlevel(artifacts.es2015, artifacts.module)
            with runner.stage(BuildStage.REMAP_SOURCE_MAP, file=artifacts.module):
                await toolchain.remap_source_map(artifacts.module)

            with runner.stage(BuildStage.BUNDLE_UMD, dest=artifacts.main):
                await toolchain.bundle(
                    BundleConfig(
                        module_name=descriptor.module_name,
                        entry=artifacts.module,
                        format="umd",
                        dest=artifacts.main,
                        externals=descriptor.lib_externals,
                        globals=umd_globals(descriptor.lib_externals, descriptor.umd_module_ids),
                    )
                )
            with runner.stage(BuildStage.REMAP_SOURCE_MAP, file=artifacts.main):
                await toolchain.remap_source_map(artifacts.main)

            with runner.stage(BuildStage.MINIFY, file=artifacts.main):
                minified_file_path = await toolchain.minify(artifacts.main)
            with runner.stage(BuildStage.REMAP_SOURCE_MAP, file=minified_file_path):
                await toolchain.remap_source_map(minified_file_path)

            stage_dir = artifacts.require_stage_dir(BuildStage.COPY_FILES)
            with runner.stage(BuildStage.COPY_FILES, destination=descriptor.destination_path):
                await toolchain.copy_files(descriptor, stage_dir)

            package_json_paths = calculate_artifact_paths_for_package_json(descriptor)
            with runner.stage(BuildStage.WRITE_METADATA):
                await toolchain.write_package(descriptor, package_json_paths)
        except Exception as e:
            log.error(
                "build_failed",
                stage=runner.current.value if runner.current else None,
                error_type=type(e).__name__,
                error=sanitize_error_message(str(e)),
            )
            raise

    duration_ms = round((time.perf_counter() - pipeline_start) * 1000, 2)
    log.info(
        "build_complete",
        module_name=descriptor.module_name,
        destination=str(descriptor.destination_path),
        stages=artifacts.revision,
        duration_ms=duration_ms,
    )
    return BuildResult(
        full_package_name=descriptor.full_package_name,
        module_name=descriptor.module_name,
        destination_path=descriptor.destination_path,
        artifacts=package_json_paths,
        duration_ms=duration_ms,
    )


async def build_package(
    project: Path,
    *,
    toolchain: Toolchain | None = None,
    dispatcher: StylesheetDispatcher | None = None,
) -> BuildResult:
    """Load the package descriptor at ``project`` and build it.

    Args:
        project: Project directory, or path to ng-package.json/package.json.
        toolchain: Optional toolchain override.
        dispatcher: Optional stylesheet dispatcher override.

    Returns:
        Summary of the finished build.

    Raises:
        BuildException: If the descriptor is invalid or a stage fails.
        ToolchainError: If a delegated stage fails.
    """
    from ngpack.build.loader import load_package_descriptor

    with create_span("build.load", attributes={"build.stage": BuildStage.LOAD.value}):
        descriptor = load_package_descriptor(project)
    logger.info(
        "package_loaded",
        package=descriptor.full_package_name,
        source_path=str(descriptor.source_path),
    )
    return await transform_sources(descriptor, toolchain=toolchain, dispatcher=dispatcher)


__all__ = ["BuildStage", "build_package", "transform_sources"]
