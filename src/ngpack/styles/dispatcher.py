"""Stylesheet renderer dispatch by file extension.

The dispatcher owns a lookup table ``extension -> renderer``. Extensions not
in the table, ``.css`` included, go to the fallback renderer, which returns
the content unchanged. Every failure surfaces as ``AssetInlineError`` naming
the stylesheet path; the engine's own message stays on ``__cause__`` and in
the DEBUG log.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import structlog

from ngpack.build.errors import AssetInlineError
from ngpack.styles.prefixer import Autoprefixer, NoopPrefixer, Prefixer
from ngpack.styles.renderers import (
    LessRenderer,
    PassthroughRenderer,
    RenderContext,
    SassRenderer,
    StylesheetRenderer,
    StylusRenderer,
)
from ngpack.telemetry.sanitization import sanitize_error_message
from ngpack.telemetry.tracing import traced
from ngpack.toolchain.errors import ToolNotFoundError

logger = structlog.get_logger(__name__)

# npm packages providing each stylesheet tool binary
_TOOL_PACKAGES = {
    "postcss": "postcss-cli autoprefixer",
    "lessc": "less",
    "stylus": "stylus",
}


def default_renderers() -> dict[str, StylesheetRenderer]:
    """The built-in extension table."""
    sass_renderer = SassRenderer()
    stylus_renderer = StylusRenderer()
    return {
        ".scss": sass_renderer,
        ".sass": sass_renderer,
        ".less": LessRenderer(),
        ".styl": stylus_renderer,
        ".stylus": stylus_renderer,
    }


def _normalize_extension(extension: str) -> str:
    extension = extension.lower()
    return extension if extension.startswith(".") else f".{extension}"


class StylesheetDispatcher:
    """Routes stylesheets to renderers and post-processes the CSS.

    Args:
        renderers: Extension -> renderer table. Defaults to empty.
        prefixer: CSS post-processor. Defaults to ``NoopPrefixer``.
        fallback: Renderer for extensions not in the table.

    Example:
        >>> dispatcher = StylesheetDispatcher.default()
        >>> type(dispatcher.pick_renderer("/a/b/style.scss")).__name__
        'SassRenderer'
        >>> type(dispatcher.pick_renderer("/a/b/style.css")).__name__
        'PassthroughRenderer'
    """

    def __init__(
        self,
        renderers: Mapping[str, StylesheetRenderer] | None = None,
        prefixer: Prefixer | None = None,
        fallback: StylesheetRenderer | None = None,
    ) -> None:
        self._renderers = {
            _normalize_extension(extension): renderer
            for extension, renderer in (renderers or {}).items()
        }
        self.prefixer = prefixer or NoopPrefixer()
        self.fallback = fallback or PassthroughRenderer()

    @classmethod
    def default(cls) -> StylesheetDispatcher:
        """Dispatcher with the SASS, LESS and Stylus renderers and Autoprefixer."""
        return cls(default_renderers(), prefixer=Autoprefixer())

    @property
    def extensions(self) -> list[str]:
        return sorted(self._renderers)

    def register(self, extension: str, renderer: StylesheetRenderer) -> None:
        """Register (or replace) the renderer for an extension."""
        self._renderers[_normalize_extension(extension)] = renderer

    def pick_renderer(self, path: str | Path) -> StylesheetRenderer:
        return self._renderers.get(Path(path).suffix.lower(), self.fallback)

    @traced(name="styles.render")
    async def render(self, path: str, content: str, context: RenderContext) -> str:
        """Render one stylesheet to prefixed CSS.

        Args:
            path: Absolute path of the stylesheet.
            content: Source text.
            context: Project locations for import resolution.

        Returns:
            Rendered, vendor-prefixed CSS.

        Raises:
            AssetInlineError: If rendering or post-processing fails.
        """
        renderer = self.pick_renderer(path)
        logger.debug("stylesheet_rendering", path=path, renderer=type(renderer).__name__)
        try:
            css = await renderer.render(Path(path), content, context)
            return await self.prefixer.process(Path(path), css, context)
        except AssetInlineError:
            raise
        except ToolNotFoundError as e:
            logger.warning(
                "stylesheet_tool_missing",
                path=path,
                tool=e.tool,
                hint=f"npm install --save-dev {_TOOL_PACKAGES.get(e.tool, e.tool)}",
            )
            raise AssetInlineError(path, kind="stylesheet") from e
        except Exception as e:
            logger.debug(
                "stylesheet_render_failed",
                path=path,
                error_type=type(e).__name__,
                error=sanitize_error_message(str(e)),
            )
            raise AssetInlineError(path, kind="stylesheet") from e


__all__ = ["StylesheetDispatcher", "default_renderers"]
