"""Vendor-prefix post-processing of rendered CSS.

``Autoprefixer`` runs the ``postcss`` CLI with the ``autoprefixer`` plugin.
Browser targets come from the nearest ``.browserslistrc`` or
``package.json#browserslist`` above the stylesheet. Advisories printed by
postcss are logged as warnings and never fail the build.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog

from ngpack.styles.renderers import RenderContext
from ngpack.toolchain.process import run_tool

logger = structlog.get_logger(__name__)

DEFAULT_BROWSERS = "defaults"
BROWSERSLIST_RC = ".browserslistrc"


@runtime_checkable
class Prefixer(Protocol):
    """Post-processes rendered CSS."""

    async def process(self, path: Path, css: str, context: RenderContext) -> str: ...


def _parse_browserslistrc(text: str) -> list[str]:
    queries = []
    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        # [production] style environment sections are not supported
        if line and not line.startswith("["):
            queries.append(line)
    return queries


def _package_json_browsers(path: Path) -> list[str] | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.debug("package_json_unreadable", path=str(path))
        return None
    value = data.get("browserslist") if isinstance(data, dict) else None
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [str(query) for query in value]
    return None


def resolve_browsers(stylesheet: Path) -> str:
    """Browserslist query for a stylesheet.

    Walks up from the stylesheet's directory. In each directory a
    ``.browserslistrc`` wins over a ``browserslist`` key in ``package.json``.

    Args:
        stylesheet: Absolute path of the stylesheet.

    Returns:
        Comma separated browserslist query, ``"defaults"`` if none is configured.
    """
    for directory in stylesheet.parents:
        rc_file = directory / BROWSERSLIST_RC
        if rc_file.is_file():
            queries = _parse_browserslistrc(rc_file.read_text(encoding="utf-8"))
            if queries:
                return ", ".join(queries)
        package_json = directory / "package.json"
        if package_json.is_file():
            queries = _package_json_browsers(package_json)
            if queries:
                return ", ".join(queries)
    return DEFAULT_BROWSERS


class Autoprefixer:
    """Adds vendor prefixes with postcss and autoprefixer."""

    async def process(self, path: Path, css: str, context: RenderContext) -> str:
        if not css.strip():
            return css
        browsers = resolve_browsers(path)
        result = await run_tool(
            "postcss",
            ["--use", "autoprefixer", "--no-map"],
            project_root=context.project_root,
            cwd=path.parent,
            stdin=css,
            env={"BROWSERSLIST": browsers},
        )
        for line in result.stderr.splitlines():
            if line.strip():
                logger.warning("stylesheet_prefix_warning", path=str(path), warning=line.strip())
        return result.stdout


class NoopPrefixer:
    """Leaves CSS untouched."""

    async def process(self, path: Path, css: str, context: RenderContext) -> str:
        return css


__all__ = ["Autoprefixer", "DEFAULT_BROWSERS", "NoopPrefixer", "Prefixer", "resolve_browsers"]
