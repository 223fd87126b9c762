"""Unit tests for the ngpack CLI.

Requirements:
    - FR-090: Build command and exit codes
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from ngpack.build.errors import AssetInlineError, BuildError, BuildException
from ngpack.build.stages import BuildStage
from ngpack.cli.main import cli
from ngpack.schemas.artifacts import ArtifactPaths, BuildResult
from ngpack.toolchain.errors import ToolchainError

BUILD_PACKAGE = "ngpack.build.stages.build_package"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def build_result(tmp_path: Path) -> BuildResult:
    return BuildResult(
        full_package_name="@my/lib",
        module_name="MyLib",
        destination_path=tmp_path / "dist",
        artifacts=ArtifactPaths(
            es2015="fesm2015/lib.js",
            module="fesm5/lib.js",
            main="bundles/lib.umd.js",
            main_min="bundles/lib.umd.min.js",
            typings="lib.d.ts",
            metadata="lib.metadata.json",
        ),
        duration_ms=12.0,
    )


class TestCliGroup:
    """Tests for the root command group."""

    @pytest.mark.requirement("FR-090")
    def test_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "build" in result.output

    @pytest.mark.requirement("FR-090")
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert result.output.startswith("ngpack ")


class TestBuildCommand:
    """Tests for ngpack build."""

    @pytest.mark.requirement("FR-090")
    def test_success(
        self, runner: CliRunner, sample_project: Path, build_result: BuildResult
    ) -> None:
        with patch(BUILD_PACKAGE, new=AsyncMock(return_value=build_result)) as build:
            result = runner.invoke(cli, ["build", "--project", str(sample_project)])

        assert result.exit_code == 0, result.output
        assert "Built @my/lib (MyLib)" in result.output
        assert build.await_args.args[0] == sample_project.resolve()

    @pytest.mark.requirement("FR-090")
    def test_configuration_error(self, runner: CliRunner, tmp_path: Path) -> None:
        """A missing descriptor exits 3 with the formatted error."""
        result = runner.invoke(cli, ["build", "-p", str(tmp_path)])

        assert result.exit_code == 3
        assert "[LOAD] E001" in result.output

    @pytest.mark.requirement("FR-090")
    def test_asset_error(self, runner: CliRunner, tmp_path: Path) -> None:
        error = AssetInlineError("/a/b/style.scss")
        with patch(BUILD_PACKAGE, new=AsyncMock(side_effect=error)):
            result = runner.invoke(cli, ["build", "-p", str(tmp_path)])

        assert result.exit_code == 4
        assert "Cannot inline stylesheet /a/b/style.scss" in result.output

    @pytest.mark.requirement("FR-090")
    def test_output_error(self, runner: CliRunner, tmp_path: Path) -> None:
        error = BuildException(
            BuildError(stage=BuildStage.COPY_FILES, code="E501", message="Failed to copy")
        )
        with patch(BUILD_PACKAGE, new=AsyncMock(side_effect=error)):
            result = runner.invoke(cli, ["build", "-p", str(tmp_path)])

        assert result.exit_code == 5

    @pytest.mark.requirement("FR-090")
    def test_toolchain_error(self, runner: CliRunner, tmp_path: Path) -> None:
        """Tool failures exit 5 and show the tool's stderr."""
        error = ToolchainError(
            "rollup exited with code 1",
            tool="rollup",
            returncode=1,
            stderr="Could not resolve './missing'",
        )
        with patch(BUILD_PACKAGE, new=AsyncMock(side_effect=error)):
            result = runner.invoke(cli, ["build", "-p", str(tmp_path)])

        assert result.exit_code == 5
        assert "Could not resolve './missing'" in result.output
        assert "tool=rollup" in result.output

    @pytest.mark.requirement("FR-090")
    def test_unexpected_error(self, runner: CliRunner, tmp_path: Path) -> None:
        with patch(BUILD_PACKAGE, new=AsyncMock(side_effect=RuntimeError("boom"))):
            result = runner.invoke(cli, ["build", "-p", str(tmp_path)])

        assert result.exit_code == 1
        assert "Build failed: boom" in result.output

    @pytest.mark.requirement("FR-090")
    def test_missing_project(self, runner: CliRunner, tmp_path: Path) -> None:
        """A project path that does not exist is a usage error."""
        result = runner.invoke(cli, ["build", "-p", str(tmp_path / "nope")])

        assert result.exit_code == 2

    @pytest.mark.requirement("FR-090")
    def test_invalid_log_level(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["build", "-p", str(tmp_path), "--log-level", "LOUD"])

        assert result.exit_code == 2
