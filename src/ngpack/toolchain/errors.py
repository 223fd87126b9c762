"""Errors raised by the delegated Node toolchain.

Exception Hierarchy:
    ToolchainError (base)
    └── ToolNotFoundError   # binary in neither node_modules/.bin nor PATH

Example:
    >>> raise ToolNotFoundError("rollup", searched_paths=["/work/node_modules/.bin"])
    Traceback (most recent call last):
        ...
    ToolNotFoundError: rollup not found
        Searched paths: /work/node_modules/.bin, PATH
        Install with: npm install --save-dev rollup
"""

from __future__ import annotations

TOOLCHAIN_EXIT_CODE = 5


class ToolchainError(Exception):
    """A delegated tool failed, timed out, or could not be started.

    Attributes:
        message: Human-readable error description.
        tool: Name of the tool that failed.
        returncode: Process exit status, if the tool ran to completion.
        stderr: Sanitized standard error of the tool, if any.

    Example:
        >>> try:
        ...     await toolchain.bundle(config)
        ... except ToolchainError as e:
        ...     print(f"{e.tool} failed: {e}")
    """

    def __init__(
        self,
        message: str,
        *,
        tool: str,
        returncode: int | None = None,
        stderr: str | None = None,
    ) -> None:
        self.message = message
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)

    @property
    def exit_code(self) -> int:
        return TOOLCHAIN_EXIT_CODE


class ToolNotFoundError(ToolchainError):
    """Raised when a tool binary cannot be located.

    Attributes:
        searched_paths: Directories searched before falling back to PATH.
    """

    def __init__(self, tool: str, searched_paths: list[str] | None = None) -> None:
        self.searched_paths = searched_paths or []
        searched = ", ".join([*self.searched_paths, "PATH"])
        super().__init__(
            f"{tool} not found\n"
            f"    Searched paths: {searched}\n"
            f"    Install with: npm install --save-dev {tool}",
            tool=tool,
        )


__all__ = ["TOOLCHAIN_EXIT_CODE", "ToolNotFoundError", "ToolchainError"]
