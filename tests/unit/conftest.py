"""Unit test fixtures for ngpack.

Unit tests:
- Run without Node, rollup or any other external tool
- Use recording fakes for the toolchain and stylesheet renderers
- Build sample projects in ``tmp_path``

For shared fixtures across all test tiers, see ../conftest.py.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

PACKAGE_JSON: dict[str, Any] = {
    "name": "@my/lib",
    "version": "1.2.3",
    "scripts": {"build": "ngpack build"},
    "devDependencies": {"ngpack": "*"},
    "dependencies": {"tslib": "^1.9.0"},
    "peerDependencies": {"@angular/core": "^5.0.0", "rxjs": "^5.5.0"},
}

NG_PACKAGE_JSON: dict[str, Any] = {
    "lib": {
        "entryFile": "src/public_api.ts",
        "moduleName": "MyLib",
    },
}

PUBLIC_API_TS = """\
export * from './comp';
"""

COMP_TS = """\
import { Component } from '@angular/core';

@Component({
  selector: 'my-comp',
  templateUrl: './comp.html',
  styleUrls: ['./comp.scss']
})
export class MyComponent {}
"""

COMP_HTML = "<p class=\"greeting\">Hello</p>\n"
COMP_SCSS = "$color: red;\np { color: $color; }\n"


class RecordingToolchain:
    """Toolchain fake recording every delegated call into a shared list."""

    def __init__(self, calls: list[str]) -> None:
        self.calls = calls
        self.bundles: list[Any] = []
        self.references_at_compile: set[str] | None = None
        self.ts_sources_at_compile: dict[str, str] | None = None
        self.fail_on: str | None = None
        self.error: Exception | None = None

    def _record(self, call: str) -> None:
        self.calls.append(call)
        if self.fail_on is not None and call.startswith(self.fail_on):
            raise self.error or RuntimeError(f"{call} failed")

    async def compile(self, ts_config: Any, artifacts: Any) -> Path:
        self.references_at_compile = artifacts.references()
        self.ts_sources_at_compile = dict(artifacts.temp.ts_sources or {})
        self._record("compile")
        return ts_config.out_dir / ts_config.flat_module_out_file

    async def bundle(self, config: Any) -> Path:
        self._record(f"bundle:{config.format}")
        self.bundles.append(config)
        return config.dest

    async def downlevel(self, entry: Path, dest: Path) -> Path:
        self._record("downlevel")
        return dest

    async def minify(self, path: Path) -> Path:
        self._record("minify")
        return path.with_name(f"{path.stem}.min{path.suffix}")

    async def remap_source_map(self, path: Path) -> None:
        self._record(f"remap:{path.name}")

    async def copy_files(self, descriptor: Any, stage_dir: Path) -> None:
        self._record("copy_files")

    async def write_package(self, descriptor: Any, paths: Any) -> Path:
        self._record("write_package")
        return descriptor.destination_path / "package.json"


class RecordingRenderer:
    """Stylesheet renderer fake returning a fixed CSS string."""

    def __init__(self, calls: list[str], css: str = "p{color:red}") -> None:
        self.calls = calls
        self.css = css

    async def render(self, path: Path, content: str, context: Any) -> str:
        self.calls.append(f"render:{path.name}")
        return self.css


@pytest.fixture
def calls() -> list[str]:
    """Shared call log for the recording fakes."""
    return []


@pytest.fixture
def toolchain(calls: list[str]) -> RecordingToolchain:
    """Recording toolchain fake."""
    return RecordingToolchain(calls)


@pytest.fixture
def dispatcher(calls: list[str]) -> Any:
    """Dispatcher rendering .scss with a recording fake and no prefixing."""
    from ngpack.styles.dispatcher import StylesheetDispatcher
    from ngpack.styles.prefixer import NoopPrefixer

    return StylesheetDispatcher({".scss": RecordingRenderer(calls)}, prefixer=NoopPrefixer())


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """Library project with one component referencing comp.html and comp.scss."""
    project = tmp_path / "my-lib"
    src = project / "src"
    src.mkdir(parents=True)
    (project / "package.json").write_text(json.dumps(PACKAGE_JSON, indent=2))
    (project / "ng-package.json").write_text(json.dumps(NG_PACKAGE_JSON, indent=2))
    (project / "README.md").write_text("# my-lib\n")
    (src / "public_api.ts").write_text(PUBLIC_API_TS)
    (src / "comp.ts").write_text(COMP_TS)
    (src / "comp.html").write_text(COMP_HTML)
    (src / "comp.scss").write_text(COMP_SCSS)
    return project


@pytest.fixture
def descriptor(sample_project: Path) -> Any:
    """PackageDescriptor loaded from the sample project."""
    from ngpack.build.loader import load_package_descriptor

    return load_package_descriptor(sample_project)


@pytest.fixture
def make_descriptor(tmp_path: Path) -> Any:
    """Factory for PackageDescriptor instances rooted in ``tmp_path``."""
    from ngpack.schemas.package import PackageDescriptor

    def _make(**overrides: Any) -> PackageDescriptor:
        root = tmp_path / "project"
        fields: dict[str, Any] = {
            "full_package_name": "@my/lib",
            "module_name": "my.lib",
            "source_path": root,
            "entry_file": root / "public_api.ts",
            "destination_path": root / "dist",
            "build_directory": root / ".ng_build",
            "flat_module_file_name": "lib",
        }
        fields.update(overrides)
        return PackageDescriptor(**fields)

    return _make
