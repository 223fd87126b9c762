"""Build error handling for the ngpack pipeline.

Errors carry:
- the stage that failed,
- an error code for programmatic handling,
- a user-facing message and an optional suggestion.

Exit Code Mapping:
    3: Configuration error (LOAD, CLEAN, DERIVE_CONFIG)
    4: Asset error (EXTRACT_REFERENCES, PROCESS_ASSETS, INLINE_REFERENCES)
    5: Delegated toolchain error (COMPILE and later stages)
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ngpack.build.stages import BuildStage


class BuildError(BaseModel):
    """Structured error from the build pipeline.

    Attributes:
        stage: Pipeline stage where the error occurred
        code: Error code for programmatic handling (e.g., "E001")
        message: Human-readable error message
        suggestion: Actionable suggestion for fixing the error
        context: Optional additional context (file path, tool name, etc.)

    Example:
        >>> error = BuildError(
        ...     stage=BuildStage.LOAD,
        ...     code="E001",
        ...     message="File not found: ng-package.json",
        ...     suggestion="Run ngpack from the library's project root",
        ... )
        >>> print(error.format())
        [LOAD] E001: File not found: ng-package.json
        Suggestion: Run ngpack from the library's project root
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    stage: BuildStage = Field(
        ...,
        description="Pipeline stage where the error occurred",
    )
    code: str = Field(
        ...,
        min_length=1,
        pattern=r"^E\d{3}$",
        description="Error code (E001-E999)",
        examples=["E001", "E102", "E201"],
    )
    message: str = Field(
        ...,
        min_length=1,
        description="Human-readable error message",
    )
    suggestion: str | None = Field(
        default=None,
        description="Actionable suggestion for fixing the error",
    )
    context: dict[str, Any] | None = Field(
        default=None,
        description="Additional context (file path, tool name, etc.)",
    )

    @property
    def exit_code(self) -> int:
        """CLI exit code for this error, taken from its stage."""
        return self.stage.exit_code

    def format(self, include_suggestion: bool = True) -> str:
        """Format the error for display.

        Args:
            include_suggestion: Whether to include the suggestion line.

        Returns:
            Formatted error string for CLI output.
        """
        lines = [f"[{self.stage.value}] {self.code}: {self.message}"]
        if include_suggestion and self.suggestion:
            lines.append(f"Suggestion: {self.suggestion}")
        return "\n".join(lines)


class BuildException(Exception):
    """Exception raised by the pipeline with structured error details.

    Attributes:
        error: The structured BuildError.

    Example:
        >>> raise BuildException(
        ...     BuildError(stage=BuildStage.LOAD, code="E001", message="File not found: x")
        ... )
        Traceback (most recent call last):
        ...
        BuildException: [LOAD] E001: File not found: x
    """

    def __init__(self, error: BuildError) -> None:
        self.error = error
        super().__init__(error.format(include_suggestion=False))

    @property
    def exit_code(self) -> int:
        """Exit code from the underlying error."""
        return self.error.exit_code


class AssetInlineError(BuildException):
    """A template or stylesheet could not be resolved for inlining.

    The message names the offending path only. The engine or I/O error that
    caused it is chained as ``__cause__`` and never copied into the message.

    Attributes:
        path: Absolute path of the asset that failed.
        kind: ``"template"`` or ``"stylesheet"``.

    Example:
        >>> str(AssetInlineError("/a/b/style.scss"))
        '[PROCESS_ASSETS] E102: Cannot inline stylesheet /a/b/style.scss'
    """

    def __init__(self, path: str, kind: str = "stylesheet") -> None:
        self.path = path
        self.kind = kind
        super().__init__(
            BuildError(
                stage=BuildStage.PROCESS_ASSETS,
                code="E101" if kind == "template" else "E102",
                message=f"Cannot inline {kind} {path}",
                context={"path": path},
            )
        )


class ArtifactStateError(BuildException):
    """A stage read an artifact field whose producing stage has not completed.

    Attributes:
        field: Name of the artifact field that was read.
        required: Stage that must complete before the field is readable.
    """

    def __init__(self, field: str, required: BuildStage, *, stage: BuildStage) -> None:
        self.field = field
        self.required = required
        super().__init__(
            BuildError(
                stage=stage,
                code="E601",
                message=(
                    f"Artifact field '{field}' read before stage {required.value} completed"
                ),
                context={"field": field, "required_stage": required.value},
            )
        )


# Common error codes
# E0xx: configuration errors
# E1xx: reference and asset errors
# E2xx: compiler errors
# E3xx: bundling errors
# E4xx: post-processing errors
# E5xx: output errors
# E6xx: pipeline state errors

ERROR_CODES = {
    "E001": "Package descriptor file not found",
    "E002": "Invalid descriptor syntax",
    "E003": "Invalid descriptor field",
    "E004": "Entry file not found",
    "E005": "package.json not found",
    "E101": "Template cannot be inlined",
    "E102": "Stylesheet cannot be inlined",
    "E103": "Source file cannot be read",
    "E104": "Referenced asset not resolved",
    "E201": "Compiler failed",
    "E301": "Bundler failed",
    "E302": "Downlevel transpile failed",
    "E401": "Minifier failed",
    "E402": "Source map remap failed",
    "E501": "Failed to copy staged files",
    "E502": "Failed to write package metadata",
    "E601": "Artifact field read before its stage completed",
}


__all__ = [
    "ArtifactStateError",
    "AssetInlineError",
    "BuildError",
    "BuildException",
    "ERROR_CODES",
]
