"""templateUrl and styleUrls extraction and inlining.

Both compiler passes work on a ``CompilationSession``: the set of TypeScript
sources reachable from the entry file through relative imports. The session
is opened for one pass and released when the pass ends, including when the
pass fails, so no cached sources cross from the first pass to the second.

First pass (EXTRACT_REFERENCES):
    Every ``templateUrl: '...'`` and ``styleUrls: [...]`` annotation is
    resolved against its source file and recorded on the artifact record with
    an empty value.

Second pass (INLINE_REFERENCES):
    Annotations are rewritten to ``template: "..."`` and ``styles: [...]``
    using the values resolved by PROCESS_ASSETS.
"""

from __future__ import annotations

import json
import os
import re
from collections import deque
from pathlib import Path
from types import TracebackType

import structlog

from ngpack.build.errors import BuildError, BuildException
from ngpack.build.stages import BuildStage
from ngpack.schemas.artifacts import BuildArtifacts
from ngpack.schemas.tsconfig import TsConfig

logger = structlog.get_logger(__name__)

TEMPLATE_URL_PATTERN = re.compile(r"""\btemplateUrl\s*:\s*(['"`])(.+?)\1""")
STYLE_URLS_PATTERN = re.compile(r"""\bstyleUrls\s*:\s*\[(.*?)\]""", re.DOTALL)
STRING_LITERAL_PATTERN = re.compile(r"""(['"`])(.+?)\1""")
RELATIVE_IMPORT_PATTERN = re.compile(r"""(?:\bfrom|\bimport)\s*(['"])(\.{1,2}/[^'"\n]+)\1""")


def mask_comments(text: str) -> str:
    """Blank out line and block comments, keeping offsets and newlines.

    String and template literals are copied unchanged, so a ``//`` inside a
    URL is not a comment.

    Example:
        >>> mask_comments("a /* b */ c")
        'a         c'
    """
    out = list(text)
    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        if char in "\"'`":
            i += 1
            while i < length and text[i] != char:
                i += 2 if text[i] == "\\" else 1
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            end = length if end == -1 else end
            out[i:end] = " " * (end - i)
            i = end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = length if end == -1 else end + 2
            out[i:end] = [c if c == "\n" else " " for c in text[i:end]]
            i = end
        else:
            i += 1
    return "".join(out)


def resolve_reference(source_file: Path, url: str) -> str:
    """Absolute, normalized path of a URL referenced from ``source_file``."""
    return os.path.normpath(source_file.parent / url)


def _resolve_import(source_file: Path, specifier: str) -> Path | None:
    target = Path(os.path.normpath(source_file.parent / specifier))
    candidates = [target] if target.suffix == ".ts" else []
    candidates += [target.with_name(target.name + ".ts"), target / "index.ts"]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def _source_error(stage: BuildStage, message: str, path: Path) -> BuildException:
    return BuildException(
        BuildError(
            stage=stage,
            code="E103",
            message=message,
            suggestion="Keep library sources inside the entry file's directory",
            context={"path": str(path)},
        )
    )


def load_program(ts_config: TsConfig, *, stage: BuildStage) -> dict[Path, str]:
    """Load every source reachable from the configured root names.

    Args:
        ts_config: Compiler configuration naming the root files.
        stage: Stage the load runs in, used to tag errors.

    Returns:
        Source path -> source text, in discovery order.

    Raises:
        BuildException: If a source cannot be read or lies outside the
            compiler's base path (E103).
    """
    base_path = Path(os.path.normpath(ts_config.base_path))
    sources: dict[Path, str] = {}
    pending = deque(Path(os.path.normpath(name)) for name in ts_config.root_names)

    while pending:
        path = pending.popleft()
        if path in sources:
            continue
        if not path.is_relative_to(base_path):
            raise _source_error(stage, f"Source file outside of {base_path}: {path}", path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise _source_error(stage, f"Cannot read source file {path}", path) from e
        sources[path] = text

        for match in RELATIVE_IMPORT_PATTERN.finditer(mask_comments(text)):
            resolved = _resolve_import(path, match.group(2))
            if resolved is None:
                logger.debug("import_not_resolved", source=str(path), specifier=match.group(2))
                continue
            pending.append(resolved)

    return sources


class CompilationSession:
    """Sources of one compiler pass, loaded on entry and released on exit.

    Example:
        >>> with CompilationSession(ts_config, stage=BuildStage.EXTRACT_REFERENCES) as session:
        ...     len(session.source_files)
        3
        >>> session.disposed
        True
    """

    def __init__(self, ts_config: TsConfig, *, stage: BuildStage) -> None:
        self._ts_config = ts_config
        self._stage = stage
        self._source_files: dict[Path, str] | None = None

    def __enter__(self) -> CompilationSession:
        self._source_files = load_program(self._ts_config, stage=self._stage)
        logger.debug(
            "compilation_session_opened",
            stage=self._stage.value,
            source_files=len(self._source_files),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.dispose()

    @property
    def disposed(self) -> bool:
        return self._source_files is None

    @property
    def source_files(self) -> dict[Path, str]:
        if self._source_files is None:
            raise RuntimeError("Compilation session is not open")
        return self._source_files

    def dispose(self) -> None:
        """Release the loaded sources. Safe to call more than once."""
        if self._source_files is not None:
            self._source_files.clear()
            self._source_files = None
            logger.debug("compilation_session_disposed", stage=self._stage.value)


def find_references(source_file: Path, text: str) -> tuple[list[str], list[str]]:
    """Template and stylesheet paths referenced by one source file.

    Args:
        source_file: Absolute path of the source, used to resolve URLs.
        text: Source text.

    Returns:
        Tuple of (template paths, stylesheet paths), absolute and normalized.
        Annotations inside comments are ignored.
    """
    code = mask_comments(text)
    templates = [
        resolve_reference(source_file, match.group(2))
        for match in TEMPLATE_URL_PATTERN.finditer(code)
    ]
    stylesheets = [
        resolve_reference(source_file, literal.group(2))
        for match in STYLE_URLS_PATTERN.finditer(code)
        for literal in STRING_LITERAL_PATTERN.finditer(match.group(1))
    ]
    return templates, stylesheets


def collect_template_and_stylesheet_files(
    ts_config: TsConfig,
    artifacts: BuildArtifacts,
) -> None:
    """First compiler pass: record every referenced template and stylesheet.

    Keys are added to ``artifacts.temp.templates`` and
    ``artifacts.temp.stylesheets`` with empty values for PROCESS_ASSETS to fill.

    Args:
        ts_config: Compiler configuration of the build.
        artifacts: Artifact record to populate.
    """
    with CompilationSession(ts_config, stage=BuildStage.EXTRACT_REFERENCES) as session:
        for source_file, text in session.source_files.items():
            templates, stylesheets = find_references(source_file, text)
            for template in templates:
                artifacts.temp.templates.setdefault(template, "")
            for stylesheet in stylesheets:
                artifacts.temp.stylesheets.setdefault(stylesheet, "")
            if templates or stylesheets:
                logger.debug(
                    "component_references_found",
                    source=str(source_file),
                    templates=templates,
                    stylesheets=stylesheets,
                )


def _unresolved(source_file: Path, reference: str) -> BuildException:
    return BuildException(
        BuildError(
            stage=BuildStage.INLINE_REFERENCES,
            code="E104",
            message=f"Referenced asset not resolved: {reference}",
            suggestion="Run reference extraction and asset processing before inlining",
            context={"source": str(source_file), "path": reference},
        )
    )


def inline_source(
    source_file: Path,
    text: str,
    templates: dict[str, str],
    stylesheets: dict[str, str],
) -> str:
    """Rewrite templateUrl/styleUrls annotations of one source file.

    Args:
        source_file: Absolute path of the source.
        text: Source text.
        templates: Resolved template contents keyed by absolute path.
        stylesheets: Rendered CSS keyed by absolute path.

    Returns:
        Source text with references replaced by inline string literals.
        Comments, including commented-out annotations, are left as written.

    Raises:
        BuildException: If a reference has no resolved value (E104).
    """

    def _template(match: re.Match[str]) -> str:
        reference = resolve_reference(source_file, match.group(2))
        if reference not in templates:
            raise _unresolved(source_file, reference)
        return f"template: {json.dumps(templates[reference])}"

    def _styles(match: re.Match[str]) -> str:
        inlined = []
        for literal in STRING_LITERAL_PATTERN.finditer(match.group(1)):
            reference = resolve_reference(source_file, literal.group(2))
            if reference not in stylesheets:
                raise _unresolved(source_file, reference)
            inlined.append(json.dumps(stylesheets[reference]))
        return f"styles: [{', '.join(inlined)}]"

    # Matched on the masked copy, spliced into the original by offset
    code = mask_comments(text)
    edits = [(m.start(), m.end(), _template(m)) for m in TEMPLATE_URL_PATTERN.finditer(code)]
    edits += [(m.start(), m.end(), _styles(m)) for m in STYLE_URLS_PATTERN.finditer(code)]
    parts = []
    position = 0
    for start, end, replacement in sorted(edits):
        parts.append(text[position:start])
        parts.append(replacement)
        position = end
    parts.append(text[position:])
    return "".join(parts)


def inline_templates_and_styles(
    ts_config: TsConfig,
    artifacts: BuildArtifacts,
) -> dict[str, str]:
    """Second compiler pass: inline resolved templates and stylesheets.

    Args:
        ts_config: Compiler configuration of the build.
        artifacts: Artifact record with resolved templates and stylesheets.

    Returns:
        Source path -> inlined source text, for every source of the program.

    Raises:
        ArtifactStateError: If PROCESS_ASSETS has not completed.
        BuildException: If a reference has no resolved value (E104).
    """
    templates, stylesheets = artifacts.require_resolved_assets(BuildStage.INLINE_REFERENCES)
    with CompilationSession(ts_config, stage=BuildStage.INLINE_REFERENCES) as session:
        return {
            str(source_file): inline_source(source_file, text, templates, stylesheets)
            for source_file, text in session.source_files.items()
        }


__all__ = [
    "CompilationSession",
    "collect_template_and_stylesheet_files",
    "find_references",
    "inline_source",
    "inline_templates_and_styles",
    "load_program",
    "mask_comments",
    "resolve_reference",
]
