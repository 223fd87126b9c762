"""Subprocess invocation of Node CLI tools.

Binaries are resolved from ``<project>/node_modules/.bin`` first, then from
``PATH``. Every invocation is bounded by a timeout (``NGPACK_TOOL_TIMEOUT``
seconds, default 300).
"""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from ngpack.telemetry.sanitization import sanitize_error_message
from ngpack.toolchain.errors import ToolchainError, ToolNotFoundError

logger = structlog.get_logger(__name__)

TIMEOUT_ENV_VAR = "NGPACK_TOOL_TIMEOUT"
DEFAULT_TIMEOUT_SECONDS = 300.0


@dataclass(frozen=True)
class ToolResult:
    """Captured output of a finished tool invocation."""

    tool: str
    returncode: int
    stdout: str
    stderr: str


def default_timeout() -> float:
    """Tool timeout in seconds from ``NGPACK_TOOL_TIMEOUT``."""
    raw = os.environ.get(TIMEOUT_ENV_VAR)
    if raw is None:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        logger.warning("invalid_tool_timeout", value=raw, default=DEFAULT_TIMEOUT_SECONDS)
        return DEFAULT_TIMEOUT_SECONDS
    return value if value > 0 else DEFAULT_TIMEOUT_SECONDS


def find_binary(name: str, project_root: Path) -> Path:
    """Locate a Node CLI binary.

    Args:
        name: Binary name (e.g. ``rollup``).
        project_root: Project whose ``node_modules/.bin`` is searched first.

    Returns:
        Path to the binary.

    Raises:
        ToolNotFoundError: If the binary is not installed.

    Example:
        >>> find_binary("ngc", Path("/work/my-lib"))
        PosixPath('/work/my-lib/node_modules/.bin/ngc')
    """
    local_bin = project_root / "node_modules" / ".bin"
    local = local_bin / name
    if local.is_file():
        return local

    path_result = shutil.which(name)
    if path_result:
        return Path(path_result)

    raise ToolNotFoundError(name, searched_paths=[str(local_bin)])


async def run_tool(
    tool: str,
    args: Sequence[str],
    *,
    project_root: Path,
    cwd: Path | None = None,
    stdin: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> ToolResult:
    """Run a Node CLI tool and capture its output.

    Args:
        tool: Binary name, resolved with ``find_binary``.
        args: Command-line arguments.
        project_root: Project root for binary resolution; default ``cwd``.
        cwd: Working directory of the process.
        stdin: Text written to the process's standard input.
        env: Extra environment variables on top of the current environment.
        timeout: Seconds before the process is killed. Defaults to
            ``default_timeout()``.

    Returns:
        The tool's exit status and decoded output.

    Raises:
        ToolchainError: If the tool is missing, cannot start, times out, or
            exits non-zero.
    """
    binary = find_binary(tool, project_root)
    timeout = timeout if timeout is not None else default_timeout()
    cmd = [str(binary), *args]

    log = logger.bind(tool=tool)
    log.debug("tool_started", cmd=cmd, cwd=str(cwd or project_root))

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd or project_root),
            env={**os.environ, **env} if env else None,
        )
    except OSError as err:
        raise ToolchainError(f"Cannot start {tool}: {err}", tool=tool) from err

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(stdin.encode("utf-8") if stdin is not None else None),
            timeout,
        )
    except asyncio.TimeoutError as err:
        process.kill()
        await process.wait()
        log.error("tool_timeout", timeout=timeout)
        raise ToolchainError(
            f"{tool} timed out after {timeout:g} seconds",
            tool=tool,
        ) from err

    result = ToolResult(
        tool=tool,
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
    log.debug("tool_completed", returncode=result.returncode)

    if result.returncode != 0:
        detail = sanitize_error_message(result.stderr.strip() or result.stdout.strip())
        log.error("tool_failed", returncode=result.returncode, stderr=detail)
        raise ToolchainError(
            f"{tool} exited with code {result.returncode}",
            tool=tool,
            returncode=result.returncode,
            stderr=detail,
        )
    return result


__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "TIMEOUT_ENV_VAR",
    "ToolResult",
    "default_timeout",
    "find_binary",
    "run_tool",
]
