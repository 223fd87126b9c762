"""Delegated build stages: compiler, bundler, downlevel, minifier, remapper."""

from __future__ import annotations

from ngpack.toolchain.base import Toolchain
from ngpack.toolchain.errors import ToolchainError, ToolNotFoundError
from ngpack.toolchain.node import NodeToolchain, umd_global, umd_globals
from ngpack.toolchain.process import find_binary, run_tool

__all__ = [
    "NodeToolchain",
    "ToolNotFoundError",
    "Toolchain",
    "ToolchainError",
    "find_binary",
    "run_tool",
    "umd_global",
    "umd_globals",
]
