"""Unit tests for the package descriptor loader.

Requirements:
    - FR-001: Load ng-package.json and package.json
    - FR-002: Actionable configuration errors
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ngpack.build.errors import BuildException
from ngpack.build.loader import find_descriptor_file, load_package_descriptor
from ngpack.build.stages import BuildStage


def _write_project(
    root: Path,
    package: dict[str, object],
    ng_package: dict[str, object] | None = None,
    entry: str = "public_api.ts",
) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "package.json").write_text(json.dumps(package))
    if ng_package is not None:
        (root / "ng-package.json").write_text(json.dumps(ng_package))
    (root / entry).parent.mkdir(parents=True, exist_ok=True)
    (root / entry).write_text("export const x = 1;\n")
    return root


class TestLoadPackageDescriptor:
    """Tests for load_package_descriptor."""

    @pytest.mark.requirement("FR-001")
    def test_load_sample_project(self, sample_project: Path) -> None:
        """Names, paths and externals come from both files."""
        descriptor = load_package_descriptor(sample_project)

        assert descriptor.full_package_name == "@my/lib"
        assert descriptor.module_name == "MyLib"
        assert descriptor.flat_module_file_name == "lib"
        assert descriptor.entry_file == sample_project / "src" / "public_api.ts"
        assert descriptor.destination_path == sample_project / "dist"
        assert descriptor.build_directory == sample_project / ".ng_build"
        assert descriptor.lib_externals == ("tslib", "@angular/core", "rxjs")

    @pytest.mark.requirement("FR-001")
    def test_defaults(self, tmp_path: Path) -> None:
        """Module name and flat module file derive from the package name."""
        project = _write_project(tmp_path / "p", {"name": "@my-org/my-lib"}, {})

        descriptor = load_package_descriptor(project)

        assert descriptor.module_name == "myOrg.myLib"
        assert descriptor.flat_module_file_name == "my-lib"
        assert descriptor.scope == "@my-org"
        assert descriptor.lib_externals == ()

    @pytest.mark.requirement("FR-001")
    def test_lib_options(self, tmp_path: Path) -> None:
        """dest, workingDirectory and lib options override the defaults."""
        project = _write_project(
            tmp_path / "p",
            {"name": "lib", "dependencies": {"a": "1"}},
            {
                "dest": "out/lib",
                "workingDirectory": "tmp/build",
                "lib": {
                    "entryFile": "src/index.ts",
                    "flatModuleFile": "my-flat",
                    "externals": ["b", "a"],
                    "umdModuleIds": {"a": "A"},
                },
            },
            entry="src/index.ts",
        )

        descriptor = load_package_descriptor(project)

        assert descriptor.destination_path == project / "out" / "lib"
        assert descriptor.build_directory == project / "tmp" / "build"
        assert descriptor.flat_module_file_name == "my-flat"
        assert descriptor.lib_externals == ("a", "b")
        assert descriptor.umd_module_ids == {"a": "A"}

    @pytest.mark.requirement("FR-001")
    def test_ng_package_key_in_package_json(self, tmp_path: Path) -> None:
        """Options may live under package.json#ngPackage."""
        project = _write_project(
            tmp_path / "p",
            {"name": "lib", "ngPackage": {"lib": {"moduleName": "Lib"}}},
        )

        assert find_descriptor_file(project) == project / "package.json"
        assert load_package_descriptor(project).module_name == "Lib"

    @pytest.mark.requirement("FR-001")
    def test_yaml_descriptor(self, tmp_path: Path) -> None:
        """ng-package.yaml is accepted."""
        project = _write_project(tmp_path / "p", {"name": "lib"})
        (project / "ng-package.yaml").write_text("dest: build/out\nlib:\n  moduleName: YamlLib\n")

        descriptor = load_package_descriptor(project)

        assert descriptor.module_name == "YamlLib"
        assert descriptor.destination_path == project / "build" / "out"

    @pytest.mark.requirement("FR-002")
    def test_missing_descriptor(self, tmp_path: Path) -> None:
        """A directory without any descriptor raises E001."""
        tmp_path.joinpath("empty").mkdir()

        with pytest.raises(BuildException) as exc_info:
            load_package_descriptor(tmp_path / "empty")

        assert exc_info.value.error.code == "E001"
        assert exc_info.value.error.stage == BuildStage.LOAD
        assert exc_info.value.exit_code == 3

    @pytest.mark.requirement("FR-002")
    def test_invalid_json(self, tmp_path: Path) -> None:
        """Malformed JSON raises E002."""
        project = _write_project(tmp_path / "p", {"name": "lib"})
        (project / "ng-package.json").write_text("{not json")

        with pytest.raises(BuildException) as exc_info:
            load_package_descriptor(project)

        assert exc_info.value.error.code == "E002"

    @pytest.mark.requirement("FR-002")
    def test_invalid_package_name(self, tmp_path: Path) -> None:
        """An invalid npm name raises E003 naming the field."""
        project = _write_project(tmp_path / "p", {"name": "Not A Name"}, {})

        with pytest.raises(BuildException) as exc_info:
            load_package_descriptor(project)

        assert exc_info.value.error.code == "E003"
        assert exc_info.value.error.context is not None
        assert exc_info.value.error.context["field"] == "full_package_name"

    @pytest.mark.requirement("FR-002")
    def test_missing_entry_file(self, tmp_path: Path) -> None:
        """A missing entry file raises E004."""
        project = _write_project(tmp_path / "p", {"name": "lib"}, {"lib": {"entryFile": "nope.ts"}})

        with pytest.raises(BuildException) as exc_info:
            load_package_descriptor(project)

        assert exc_info.value.error.code == "E004"

    @pytest.mark.requirement("FR-002")
    def test_missing_package_json(self, tmp_path: Path) -> None:
        """ng-package.json without package.json raises E005."""
        project = tmp_path / "p"
        project.mkdir()
        (project / "ng-package.json").write_text("{}")

        with pytest.raises(BuildException) as exc_info:
            load_package_descriptor(project)

        assert exc_info.value.error.code == "E005"
