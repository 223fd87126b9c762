"""PROCESS_ASSETS stage: resolve templates and render stylesheets.

Every template and stylesheet recorded by EXTRACT_REFERENCES is processed
concurrently. The stage either resolves all of them or none: values are
written back to the artifact record only after every task succeeded, and the
first failure cancels the tasks still running.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING, TypeVar

import structlog

from ngpack.build.errors import AssetInlineError
from ngpack.build.stages import BuildStage
from ngpack.schemas.artifacts import BuildArtifacts
from ngpack.telemetry.sanitization import sanitize_error_message

if TYPE_CHECKING:
    from ngpack.styles.dispatcher import StylesheetDispatcher
    from ngpack.styles.renderers import RenderContext

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def gather_all(aws: Iterable[Awaitable[T]]) -> list[T]:
    """Await every awaitable concurrently, failing fast on the first error.

    Unlike ``asyncio.gather``, the remaining tasks are cancelled and awaited
    before the first exception propagates, so no task outlives the call.

    Args:
        aws: Awaitables to run.

    Returns:
        Results in the order of ``aws``.

    Raises:
        Exception: The first exception raised by any awaitable.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()  # type: ignore[misc]
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    return [task.result() for task in tasks]


async def process_template(path: str) -> str:
    """Read a template file as UTF-8 text.

    Raises:
        AssetInlineError: If the template cannot be read or decoded.
    """
    try:
        data = await asyncio.to_thread(Path(path).read_bytes)
        return data.decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(
            "template_read_failed",
            path=path,
            error_type=type(e).__name__,
            error=sanitize_error_message(str(e)),
        )
        raise AssetInlineError(path, kind="template") from e


async def process_stylesheet(
    path: str,
    dispatcher: StylesheetDispatcher,
    context: RenderContext,
) -> str:
    """Read a stylesheet and render it to prefixed CSS.

    Raises:
        AssetInlineError: If the stylesheet cannot be read or rendered.
    """
    try:
        data = await asyncio.to_thread(Path(path).read_bytes)
        source = data.decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(
            "stylesheet_read_failed",
            path=path,
            error_type=type(e).__name__,
            error=sanitize_error_message(str(e)),
        )
        raise AssetInlineError(path, kind="stylesheet") from e
    return await dispatcher.render(path, source, context)


async def process_assets(
    artifacts: BuildArtifacts,
    dispatcher: StylesheetDispatcher,
    context: RenderContext,
) -> BuildArtifacts:
    """Resolve every recorded template and stylesheet.

    Args:
        artifacts: Artifact record after EXTRACT_REFERENCES.
        dispatcher: Renders stylesheets by file extension.
        context: Project paths handed to the renderers.

    Returns:
        The same record, with template and stylesheet values replaced.

    Raises:
        ArtifactStateError: If EXTRACT_REFERENCES has not completed.
        AssetInlineError: If any asset fails. The record is left unchanged.
    """
    templates = artifacts.require_templates(BuildStage.PROCESS_ASSETS)
    stylesheets = artifacts.require_stylesheets(BuildStage.PROCESS_ASSETS)
    template_paths = list(templates)
    stylesheet_paths = list(stylesheets)

    logger.debug(
        "assets_processing",
        templates=len(template_paths),
        stylesheets=len(stylesheet_paths),
    )
    results = await gather_all(
        [process_template(path) for path in template_paths]
        + [process_stylesheet(path, dispatcher, context) for path in stylesheet_paths]
    )

    templates.update(zip(template_paths, results[: len(template_paths)]))
    stylesheets.update(zip(stylesheet_paths, results[len(template_paths) :]))
    logger.debug("assets_processed", count=len(results))
    return artifacts


__all__ = ["gather_all", "process_assets", "process_stylesheet", "process_template"]
