"""Unit tests for Node CLI invocation.

Uses small shell scripts in a fake ``node_modules/.bin`` in place of the
real Node tools.

Requirements:
    - FR-040: Tool binaries resolved from node_modules/.bin, then PATH
    - FR-041: Tool failures surface as ToolchainError
"""

from __future__ import annotations

from pathlib import Path

import pytest

from ngpack.toolchain.errors import ToolchainError, ToolNotFoundError
from ngpack.toolchain.process import (
    DEFAULT_TIMEOUT_SECONDS,
    TIMEOUT_ENV_VAR,
    default_timeout,
    find_binary,
    run_tool,
)


def _write_tool(project: Path, name: str, script: str) -> Path:
    binary = project / "node_modules" / ".bin" / name
    binary.parent.mkdir(parents=True, exist_ok=True)
    binary.write_text(f"#!/bin/sh\n{script}\n")
    binary.chmod(0o755)
    return binary


class TestFindBinary:
    """Tests for find_binary."""

    @pytest.mark.requirement("FR-040")
    def test_local_binary_first(self, tmp_path: Path) -> None:
        binary = _write_tool(tmp_path, "sh", "exit 0")

        assert find_binary("sh", tmp_path) == binary

    @pytest.mark.requirement("FR-040")
    def test_path_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        on_path = _write_tool(tmp_path / "global", "rollup", "exit 0")
        monkeypatch.setenv("PATH", str(on_path.parent))

        assert find_binary("rollup", tmp_path / "project") == on_path

    @pytest.mark.requirement("FR-040")
    def test_not_found(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PATH", str(tmp_path / "empty"))

        with pytest.raises(ToolNotFoundError) as exc_info:
            find_binary("ngc", tmp_path)

        assert exc_info.value.tool == "ngc"
        assert exc_info.value.exit_code == 5
        assert "npm install --save-dev ngc" in str(exc_info.value)


class TestDefaultTimeout:
    """Tests for default_timeout."""

    @pytest.mark.requirement("FR-041")
    def test_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(TIMEOUT_ENV_VAR, raising=False)

        assert default_timeout() == DEFAULT_TIMEOUT_SECONDS

    @pytest.mark.requirement("FR-041")
    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(TIMEOUT_ENV_VAR, "12.5")

        assert default_timeout() == 12.5

    @pytest.mark.requirement("FR-041")
    @pytest.mark.parametrize("raw", ["soon", "0", "-3"])
    def test_invalid(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        monkeypatch.setenv(TIMEOUT_ENV_VAR, raw)

        assert default_timeout() == DEFAULT_TIMEOUT_SECONDS


class TestRunTool:
    """Tests for run_tool."""

    @pytest.mark.requirement("FR-040")
    @pytest.mark.asyncio
    async def test_captures_output(self, tmp_path: Path) -> None:
        """Arguments, stdin and environment reach the tool."""
        _write_tool(tmp_path, "echo-tool", 'echo "$1 $NGPACK_TEST"; cat')

        result = await run_tool(
            "echo-tool",
            ["hello"],
            project_root=tmp_path,
            stdin="from stdin",
            env={"NGPACK_TEST": "env"},
        )

        assert result.returncode == 0
        assert result.stdout == "hello env\nfrom stdin"

    @pytest.mark.requirement("FR-041")
    @pytest.mark.asyncio
    async def test_non_zero_exit(self, tmp_path: Path) -> None:
        """A failing tool raises with its sanitized stderr."""
        _write_tool(tmp_path, "rollup", 'echo "Could not resolve ./missing token=abc" >&2; exit 3')

        with pytest.raises(ToolchainError) as exc_info:
            await run_tool("rollup", [], project_root=tmp_path)

        error = exc_info.value
        assert error.tool == "rollup"
        assert error.returncode == 3
        assert error.stderr is not None
        assert "Could not resolve ./missing" in error.stderr
        assert "abc" not in error.stderr
        assert str(error) == "rollup exited with code 3"

    @pytest.mark.requirement("FR-041")
    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path: Path) -> None:
        """A hanging tool is killed after the timeout."""
        _write_tool(tmp_path, "ngc", "exec sleep 10")

        with pytest.raises(ToolchainError, match="timed out"):
            await run_tool("ngc", [], project_root=tmp_path, timeout=0.2)

    @pytest.mark.requirement("FR-040")
    @pytest.mark.asyncio
    async def test_cwd(self, tmp_path: Path) -> None:
        _write_tool(tmp_path, "pwd-tool", "pwd")
        workdir = tmp_path / "work"
        workdir.mkdir()

        result = await run_tool("pwd-tool", [], project_root=tmp_path, cwd=workdir)

        assert Path(result.stdout.strip()).resolve() == workdir.resolve()
