"""Artifact record threaded through the build pipeline.

``BuildArtifacts`` is created once per build by the orchestrator and handed
to each stage by reference. Stages mark themselves complete on the record,
and readers of the ``temp``/``extras`` regions go through ``require_*``
accessors that raise ``ArtifactStateError`` if the producing stage has not
completed yet.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ngpack.build.errors import ArtifactStateError
from ngpack.build.stages import BuildStage
from ngpack.schemas.tsconfig import TsConfig


class ArtifactPaths(BaseModel):
    """Output locations of one build, one per distribution format.

    Build paths are absolute; package.json paths are POSIX paths relative to
    the distribution root.

    Attributes:
        es2015: ES2015 flat module (FESM2015)
        module: ES5 flat module (FESM5)
        main: UMD bundle
        main_min: Minified UMD bundle
        typings: Type definitions entry
        metadata: Angular metadata entry
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    es2015: str
    module: str
    main: str
    main_min: str
    typings: str
    metadata: str


class TempArtifacts(BaseModel):
    """In-memory intermediate state of a build. Never persisted.

    Attributes:
        stage_dir: Staging directory of the entry point
        source_dir: Directory the inlined sources are written to for compilation
        templates: Template path -> resolved content
        stylesheets: Stylesheet path -> rendered CSS
        ts_sources: Source path -> source text with references inlined
    """

    model_config = ConfigDict(extra="forbid")

    stage_dir: Path | None = None
    source_dir: Path | None = None
    templates: dict[str, str] = Field(default_factory=dict)
    stylesheets: dict[str, str] = Field(default_factory=dict)
    ts_sources: dict[str, str] | None = None


class ExtraArtifacts(BaseModel):
    """Derived configuration of a build.

    Attributes:
        ts_config: Compiler configuration from the DERIVE_CONFIG stage
    """

    model_config = ConfigDict(extra="forbid")

    ts_config: TsConfig | None = None


class BuildArtifacts(BaseModel):
    """Mutable artifact record owned by the orchestrator for one build.

    Attributes:
        paths: Absolute output paths of the build
        temp: Intermediate in-memory state
        extras: Derived configuration
        completed: Stages completed so far, in order

    Example:
        >>> artifacts = BuildArtifacts(paths=paths)
        >>> artifacts.require_templates(BuildStage.PROCESS_ASSETS)
        Traceback (most recent call last):
        ...
        ArtifactStateError: [PROCESS_ASSETS] E601: ...
    """

    model_config = ConfigDict(extra="forbid")

    paths: ArtifactPaths
    temp: TempArtifacts = Field(default_factory=TempArtifacts)
    extras: ExtraArtifacts = Field(default_factory=ExtraArtifacts)
    completed: list[BuildStage] = Field(default_factory=list)

    @property
    def es2015(self) -> Path:
        return Path(self.paths.es2015)

    @property
    def module(self) -> Path:
        return Path(self.paths.module)

    @property
    def main(self) -> Path:
        return Path(self.paths.main)

    @property
    def revision(self) -> int:
        """Number of stage completions recorded on this record."""
        return len(self.completed)

    def mark_complete(self, stage: BuildStage) -> None:
        """Record that ``stage`` finished and its outputs are readable."""
        self.completed.append(stage)

    def has_completed(self, stage: BuildStage) -> bool:
        return stage in self.completed

    def _require(self, field: str, producer: BuildStage, reader: BuildStage) -> None:
        if not self.has_completed(producer):
            raise ArtifactStateError(field, producer, stage=reader)

    def require_stage_dir(self, reader: BuildStage) -> Path:
        self._require("temp.stage_dir", BuildStage.CLEAN, reader)
        assert self.temp.stage_dir is not None
        return self.temp.stage_dir

    def require_source_dir(self, reader: BuildStage) -> Path:
        self._require("temp.source_dir", BuildStage.CLEAN, reader)
        assert self.temp.source_dir is not None
        return self.temp.source_dir

    def require_ts_config(self, reader: BuildStage) -> TsConfig:
        self._require("extras.ts_config", BuildStage.DERIVE_CONFIG, reader)
        assert self.extras.ts_config is not None
        return self.extras.ts_config

    def require_templates(self, reader: BuildStage) -> dict[str, str]:
        self._require("temp.templates", BuildStage.EXTRACT_REFERENCES, reader)
        return self.temp.templates

    def require_stylesheets(self, reader: BuildStage) -> dict[str, str]:
        self._require("temp.stylesheets", BuildStage.EXTRACT_REFERENCES, reader)
        return self.temp.stylesheets

    def require_resolved_assets(self, reader: BuildStage) -> tuple[dict[str, str], dict[str, str]]:
        """Templates and stylesheets after PROCESS_ASSETS replaced their values."""
        self._require("temp.templates", BuildStage.PROCESS_ASSETS, reader)
        return self.temp.templates, self.temp.stylesheets

    def require_ts_sources(self, reader: BuildStage) -> dict[str, str]:
        self._require("temp.ts_sources", BuildStage.INLINE_REFERENCES, reader)
        assert self.temp.ts_sources is not None
        return self.temp.ts_sources

    def references(self) -> set[str]:
        """All template and stylesheet paths recorded on the record."""
        return set(self.temp.templates) | set(self.temp.stylesheets)


class BundleConfig(BaseModel):
    """Input of one bundler invocation.

    Attributes:
        module_name: Module identifier (UMD global name)
        entry: Entry file of the module graph
        format: Output module format tag
        dest: Bundle file to write
        externals: Module ids excluded from the bundle
        globals: External module id -> UMD global, used by ``umd`` bundles
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    module_name: str = Field(..., min_length=1)
    entry: Path
    format: Literal["es", "umd"]
    dest: Path
    externals: tuple[str, ...] = ()
    globals: dict[str, str] = Field(default_factory=dict)


class BuildResult(BaseModel):
    """Summary of a successful build.

    Attributes:
        full_package_name: Canonical npm name of the built package
        module_name: Module identifier of the bundles
        destination_path: Distribution directory
        artifacts: Relative paths written into package.json
        duration_ms: Wall-clock duration of the build
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    full_package_name: str
    module_name: str
    destination_path: Path
    artifacts: ArtifactPaths
    duration_ms: float = Field(..., ge=0)


__all__ = [
    "ArtifactPaths",
    "BuildArtifacts",
    "BuildResult",
    "BundleConfig",
    "ExtraArtifacts",
    "TempArtifacts",
]
