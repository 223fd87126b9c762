"""Stylesheet rendering: preprocessors, dispatch and vendor prefixing."""

from __future__ import annotations

from ngpack.styles.dispatcher import StylesheetDispatcher, default_renderers
from ngpack.styles.prefixer import Autoprefixer, NoopPrefixer, Prefixer, resolve_browsers
from ngpack.styles.renderers import (
    LessRenderer,
    PassthroughRenderer,
    RenderContext,
    SassRenderer,
    StylesheetRenderer,
    StylusRenderer,
    resolve_import,
)

__all__ = [
    "Autoprefixer",
    "LessRenderer",
    "NoopPrefixer",
    "PassthroughRenderer",
    "Prefixer",
    "RenderContext",
    "SassRenderer",
    "StylesheetDispatcher",
    "StylesheetRenderer",
    "StylusRenderer",
    "default_renderers",
    "resolve_browsers",
    "resolve_import",
]
