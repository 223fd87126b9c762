"""Derived compiler configuration handed to the Angular compiler."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TsConfig(BaseModel):
    """Compiler configuration derived from the package descriptor.

    Serialized as a ``tsconfig.json`` for ``ngc -p`` by the compile stage.

    Attributes:
        root_names: Entry files handed to the compiler
        base_path: Directory the sources are resolved against
        out_dir: Directory receiving compiler output
        compiler_options: TypeScript ``compilerOptions``
        angular_compiler_options: ``angularCompilerOptions`` for ngc
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    root_names: tuple[Path, ...] = Field(..., min_length=1)
    base_path: Path
    out_dir: Path
    compiler_options: dict[str, Any] = Field(default_factory=dict)
    angular_compiler_options: dict[str, Any] = Field(default_factory=dict)

    @property
    def entry_file(self) -> Path:
        """The first root name, the library's entry point."""
        return self.root_names[0]

    @property
    def flat_module_out_file(self) -> str | None:
        """File name of the flat module index ngc writes into ``out_dir``."""
        return self.angular_compiler_options.get("flatModuleOutFile")

    def to_json_dict(self, source_root: Path | None = None) -> dict[str, Any]:
        """Render as a ``tsconfig.json`` document.

        Args:
            source_root: Root the ``files`` entries point into. Defaults to
                ``base_path``. The compile stage passes the staged source tree.

        Returns:
            JSON-serializable tsconfig dictionary.
        """
        root = source_root or self.base_path
        files = [str(root / name.relative_to(self.base_path)) for name in self.root_names]
        compiler_options = {
            **self.compiler_options,
            "baseUrl": str(root),
            "rootDir": str(root),
            "outDir": str(self.out_dir),
        }
        return {
            "compilerOptions": compiler_options,
            "angularCompilerOptions": dict(self.angular_compiler_options),
            "files": files,
        }


__all__ = ["TsConfig"]
