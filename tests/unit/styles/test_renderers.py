"""Unit tests for the stylesheet renderers.

Requirements:
    - FR-032: Module-prefixed SASS imports resolve into node_modules
    - FR-033: Import search paths
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from ngpack.styles.renderers import (
    LessRenderer,
    PassthroughRenderer,
    RenderContext,
    SassRenderer,
    StylesheetRenderer,
    StylusRenderer,
    resolve_import,
)
from ngpack.toolchain.process import ToolResult


@pytest.fixture
def context(tmp_path: Path) -> RenderContext:
    return RenderContext(project_root=tmp_path, node_modules=tmp_path / "node_modules")


class TestResolveImport:
    """Tests for resolve_import."""

    @pytest.mark.requirement("FR-032")
    def test_module_prefix(self, tmp_path: Path) -> None:
        """~foo/bar maps to node_modules/foo/bar."""
        node_modules = tmp_path / "node_modules"

        assert resolve_import("~foo/bar", node_modules) == str(node_modules / "foo" / "bar")

    @pytest.mark.requirement("FR-032")
    def test_relative_untouched(self, tmp_path: Path) -> None:
        """Other URLs fall back to the default resolution."""
        assert resolve_import("./local", tmp_path / "node_modules") is None
        assert resolve_import("variables", tmp_path / "node_modules") is None

    @pytest.mark.requirement("FR-032")
    def test_partial_found(self, tmp_path: Path) -> None:
        """An existing partial file is preferred."""
        partial = tmp_path / "node_modules" / "theme" / "_colors.scss"
        partial.parent.mkdir(parents=True)
        partial.write_text("$brand: blue;")

        assert resolve_import("~theme/colors", tmp_path / "node_modules") == str(partial)


class TestRenderContext:
    """Tests for RenderContext."""

    @pytest.mark.requirement("FR-033")
    def test_search_paths(self, tmp_path: Path) -> None:
        """The stylesheet directory comes first, then root, cwd and node_modules."""
        extra = tmp_path / "shared"
        context = RenderContext(
            project_root=tmp_path,
            node_modules=tmp_path / "node_modules",
            include_paths=(extra, tmp_path),
        )

        paths = context.search_paths(tmp_path / "src" / "comp.scss")

        assert paths[0] == str(tmp_path / "src")
        assert paths[1] == str(tmp_path)
        assert paths[2] == str(Path.cwd())
        assert str(tmp_path / "node_modules") in paths
        assert paths[-1] == str(extra)
        assert len(paths) == len(set(paths))

    @pytest.mark.requirement("FR-033")
    def test_for_package(self, make_descriptor: Any, tmp_path: Path) -> None:
        context = RenderContext.for_package(make_descriptor())

        assert context.project_root == tmp_path / "project"
        assert context.node_modules == tmp_path / "project" / "node_modules"


class TestSassRenderer:
    """Tests for SassRenderer with libsass."""

    @pytest.mark.requirement("FR-030")
    def test_satisfies_protocol(self) -> None:
        assert isinstance(SassRenderer(), StylesheetRenderer)
        assert isinstance(PassthroughRenderer(), StylesheetRenderer)

    @pytest.mark.requirement("FR-030")
    @pytest.mark.asyncio
    async def test_scss(self, tmp_path: Path, context: RenderContext) -> None:
        """SCSS variables compile to plain CSS."""
        css = await SassRenderer().render(
            tmp_path / "comp.scss", "$color: red;\np { color: $color; }\n", context
        )

        assert "color: red" in css
        assert "$color" not in css

    @pytest.mark.requirement("FR-030")
    @pytest.mark.asyncio
    async def test_indented_syntax(self, tmp_path: Path, context: RenderContext) -> None:
        """.sass files use the indented syntax."""
        css = await SassRenderer().render(
            tmp_path / "comp.sass", "$w: 10px\np\n  width: $w\n", context
        )

        assert "width: 10px" in css

    @pytest.mark.requirement("FR-032")
    @pytest.mark.asyncio
    async def test_module_import(self, tmp_path: Path, context: RenderContext) -> None:
        """@import "~theme/colors" reads from node_modules."""
        partial = tmp_path / "node_modules" / "theme" / "_colors.scss"
        partial.parent.mkdir(parents=True)
        partial.write_text("$brand: #00f;\n")

        css = await SassRenderer().render(
            tmp_path / "comp.scss",
            '@import "~theme/colors";\na { color: $brand; }\n',
            context,
        )

        assert "color: #00f" in css

    @pytest.mark.requirement("FR-033")
    @pytest.mark.asyncio
    async def test_sibling_import(self, tmp_path: Path, context: RenderContext) -> None:
        """Plain imports resolve next to the stylesheet."""
        src = tmp_path / "src"
        src.mkdir()
        (src / "_vars.scss").write_text("$gap: 4px;\n")

        css = await SassRenderer().render(
            src / "comp.scss", '@import "vars";\ndiv { margin: $gap; }\n', context
        )

        assert "margin: 4px" in css


class TestCliRenderers:
    """Tests for the LESS and Stylus CLI renderers."""

    @pytest.mark.requirement("FR-030")
    @pytest.mark.asyncio
    async def test_less(self, tmp_path: Path, context: RenderContext) -> None:
        """lessc reads the stylesheet from stdin with the search paths."""
        result = ToolResult(tool="lessc", returncode=0, stdout="p {\n  color: red;\n}\n", stderr="")
        with patch(
            "ngpack.styles.renderers.run_tool", new=AsyncMock(return_value=result)
        ) as run_tool:
            css = await LessRenderer().render(tmp_path / "src" / "comp.less", "@c: red;", context)

        assert css == result.stdout
        tool, args = run_tool.await_args.args
        assert tool == "lessc"
        assert args[0].startswith("--include-path=")
        assert str(tmp_path / "src") in args[0]
        assert args[-1] == "-"
        assert run_tool.await_args.kwargs["stdin"] == "@c: red;"
        assert run_tool.await_args.kwargs["cwd"] == tmp_path / "src"

    @pytest.mark.requirement("FR-030")
    @pytest.mark.asyncio
    async def test_stylus(self, tmp_path: Path, context: RenderContext) -> None:
        """stylus gets one --include per search path."""
        result = ToolResult(tool="stylus", returncode=0, stdout="p {\n  color: red;\n}\n", stderr="")
        with patch(
            "ngpack.styles.renderers.run_tool", new=AsyncMock(return_value=result)
        ) as run_tool:
            css = await StylusRenderer().render(tmp_path / "comp.styl", "p\n  color red", context)

        assert css == result.stdout
        tool, args = run_tool.await_args.args
        assert tool == "stylus"
        assert args.count("--include") == len(context.search_paths(tmp_path / "comp.styl"))
        assert args[-2:] == ["--resolve-url", "--print"]
