"""Default toolchain: the Node CLIs of the Angular package format.

Stage → tool:
    COMPILE           ngc -p <derived tsconfig>
    BUNDLE_*          rollup (formats es and umd)
    DOWNLEVEL_ES5     tsc --target es5 --module es2015 --allowJs
    MINIFY            uglifyjs
    REMAP_SOURCE_MAP  sorcery -i
    COPY_FILES        shutil
    WRITE_METADATA    json
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterable, Mapping
from pathlib import Path

import structlog

from ngpack.build.package_json import write_package
from ngpack.build.stages import BuildStage
from ngpack.schemas.artifacts import ArtifactPaths, BuildArtifacts, BundleConfig
from ngpack.schemas.package import PackageDescriptor, default_module_name
from ngpack.schemas.tsconfig import TsConfig
from ngpack.toolchain.errors import ToolchainError
from ngpack.toolchain.process import run_tool
from ngpack.toolchain.transfer import copy_source_files_to_destination

logger = structlog.get_logger(__name__)

TSCONFIG_FILE_NAME = "tsconfig.lib.json"

# UMD globals of externals that do not follow the camel-cased module id rule
WELL_KNOWN_GLOBALS: dict[str, str] = {
    "@angular/animations": "ng.animations",
    "@angular/common": "ng.common",
    "@angular/common/http": "ng.common.http",
    "@angular/compiler": "ng.compiler",
    "@angular/core": "ng.core",
    "@angular/forms": "ng.forms",
    "@angular/http": "ng.http",
    "@angular/platform-browser": "ng.platformBrowser",
    "@angular/platform-browser/animations": "ng.platformBrowser.animations",
    "@angular/platform-browser-dynamic": "ng.platformBrowserDynamic",
    "@angular/router": "ng.router",
    "rxjs": "Rx",
    "rxjs/operators": "Rx.operators",
    "tslib": "tslib",
}


def umd_global(module_id: str) -> str:
    """UMD global name of an external module id.

    Example:
        >>> umd_global("@angular/core")
        'ng.core'
        >>> umd_global("@angular/cdk")
        'ng.cdk'
        >>> umd_global("lodash-es")
        'lodashEs'
    """
    if module_id in WELL_KNOWN_GLOBALS:
        return WELL_KNOWN_GLOBALS[module_id]
    if module_id.startswith("@angular/"):
        return "ng." + default_module_name(module_id.removeprefix("@angular/"))
    return default_module_name(module_id)


def umd_globals(externals: Iterable[str], overrides: Mapping[str, str]) -> dict[str, str]:
    """UMD global mapping for the bundler.

    Args:
        externals: Module ids excluded from the bundle.
        overrides: Explicit ``umdModuleIds`` from the descriptor; these win.

    Returns:
        Module id -> global name for every external and override.
    """
    globals_ = {module_id: umd_global(module_id) for module_id in externals}
    globals_.update(overrides)
    return globals_


def _stage_sources(ts_config: TsConfig, ts_sources: Mapping[str, str], source_dir: Path) -> Path:
    for source, text in ts_sources.items():
        target = source_dir / Path(source).relative_to(ts_config.base_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    tsconfig_path = source_dir / TSCONFIG_FILE_NAME
    tsconfig_path.write_text(
        json.dumps(ts_config.to_json_dict(source_root=source_dir), indent=2),
        encoding="utf-8",
    )
    return tsconfig_path


class NodeToolchain:
    """Runs the delegated stages with the project's Node CLIs.

    Args:
        project_root: Library project; binaries resolve from its
            ``node_modules/.bin`` first.
        timeout: Per-invocation timeout in seconds. Defaults to
            ``NGPACK_TOOL_TIMEOUT`` or 300.
    """

    def __init__(self, project_root: Path, timeout: float | None = None) -> None:
        self.project_root = project_root
        self.timeout = timeout

    async def _run(self, tool: str, args: list[str], cwd: Path | None = None) -> str:
        result = await run_tool(
            tool,
            args,
            project_root=self.project_root,
            cwd=cwd,
            timeout=self.timeout,
        )
        return result.stdout

    async def compile(self, ts_config: TsConfig, artifacts: BuildArtifacts) -> Path:
        source_dir = artifacts.require_source_dir(BuildStage.COMPILE)
        ts_sources = artifacts.require_ts_sources(BuildStage.COMPILE)
        try:
            tsconfig_path = await asyncio.to_thread(
                _stage_sources, ts_config, ts_sources, source_dir
            )
        except (OSError, ValueError) as e:
            raise ToolchainError(f"Cannot stage sources in {source_dir}: {e}", tool="ngc") from e
        logger.debug("sources_staged", source_dir=str(source_dir), files=len(ts_sources))

        await self._run("ngc", ["-p", str(tsconfig_path)])
        flat_module = ts_config.flat_module_out_file or f"{ts_config.entry_file.stem}.js"
        return ts_config.out_dir / flat_module

    async def bundle(self, config: BundleConfig) -> Path:
        config.dest.parent.mkdir(parents=True, exist_ok=True)
        args = [
            "--input",
            str(config.entry),
            "--file",
            str(config.dest),
            "--format",
            config.format,
            "--name",
            config.module_name,
            "--sourcemap",
            "--silent",
        ]
        if config.externals:
            args += ["--external", ",".join(config.externals)]
        if config.format == "umd" and config.globals:
            args += ["--globals", ",".join(f"{key}:{value}" for key, value in config.globals.items())]
        await self._run("rollup", args)
        return config.dest

    async def downlevel(self, entry: Path, dest: Path) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        await self._run(
            "tsc",
            [
                str(entry),
                "--target",
                "es5",
                "--module",
                "es2015",
                "--allowJs",
                "--sourceMap",
                "--importHelpers",
                "--skipLibCheck",
                "--outDir",
                str(dest.parent),
            ],
        )
        written = dest.parent / entry.name
        if written != dest:
            written.replace(dest)
            written_map = written.with_name(f"{written.name}.map")
            if written_map.exists():
                written_map.replace(dest.with_name(f"{dest.name}.map"))
        return dest

    async def minify(self, path: Path) -> Path:
        minified = path.with_name(f"{path.stem}.min{path.suffix}")
        source_map = path.with_name(f"{path.name}.map")
        source_map_options = f"url='{minified.name}.map'"
        if source_map.exists():
            source_map_options = f"content='{source_map}',{source_map_options}"
        await self._run(
            "uglifyjs",
            [
                str(path),
                "--compress",
                "--mangle",
                "--comments",
                "--source-map",
                source_map_options,
                "--output",
                str(minified),
            ],
        )
        return minified

    async def remap_source_map(self, path: Path) -> None:
        await self._run("sorcery", ["-i", str(path)])

    async def copy_files(self, descriptor: PackageDescriptor, stage_dir: Path) -> None:
        await asyncio.to_thread(
            copy_source_files_to_destination, stage_dir, descriptor.destination_path
        )

    async def write_package(self, descriptor: PackageDescriptor, paths: ArtifactPaths) -> Path:
        return await asyncio.to_thread(write_package, descriptor, paths)


__all__ = ["NodeToolchain", "WELL_KNOWN_GLOBALS", "umd_global", "umd_globals"]
