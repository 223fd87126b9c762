"""Package descriptor loader.

Reads the library's ``ng-package.json`` (or ``ng-package.yaml``) and the
project's ``package.json`` and turns them into a validated
``PackageDescriptor``:

- ng-package.json / ng-package.yaml → build options (dest, entry file, ...)
- package.json → package name and external dependencies

The descriptor may also live under the ``ngPackage`` key of package.json.
All failures raise ``BuildException`` with stage LOAD.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, TypeVar, cast

import structlog
import yaml
from pydantic import BaseModel, ValidationError

from ngpack.build.errors import BuildError, BuildException
from ngpack.build.stages import BuildStage
from ngpack.schemas.package import PackageDescriptor, default_module_name

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

DESCRIPTOR_FILE_NAMES = ("ng-package.json", "ng-package.yaml", "ng-package.yml")
PACKAGE_JSON = "package.json"
PACKAGE_JSON_KEY = "ngPackage"

DEFAULT_DEST = "dist"
DEFAULT_WORKING_DIRECTORY = ".ng_build"
DEFAULT_ENTRY_FILE = "public_api.ts"


def _load_document(path: Path) -> dict[str, Any]:
    """Load and parse a JSON or YAML document.

    Args:
        path: Path to the file. ``.yaml``/``.yml`` files are parsed as YAML,
            everything else as JSON.

    Returns:
        Parsed content as dictionary.

    Raises:
        BuildException: If file not found (E001) or invalid syntax (E002).
    """
    if not path.exists():
        raise BuildException(
            BuildError(
                stage=BuildStage.LOAD,
                code="E001",
                message=f"File not found: {path}",
                suggestion=f"Ensure the file exists at: {path.absolute()}",
                context={"path": str(path)},
            )
        )

    try:
        content = path.read_text(encoding="utf-8")
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (yaml.YAMLError, json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BuildException(
            BuildError(
                stage=BuildStage.LOAD,
                code="E002",
                message=f"Invalid syntax in {path.name}: {e}",
                suggestion="Check the file is well-formed JSON or YAML",
                context={"path": str(path), "error": str(e)},
            )
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BuildException(
            BuildError(
                stage=BuildStage.LOAD,
                code="E002",
                message=f"Invalid syntax in {path.name}: top level must be an object",
                suggestion="Wrap the options in a JSON/YAML object",
                context={"path": str(path)},
            )
        )
    return cast(dict[str, Any], data)


def _validate_model(
    data: dict[str, Any],
    model_class: type[T],
    path: Path,
) -> T:
    """Validate descriptor data against a Pydantic model.

    Args:
        data: Descriptor fields.
        model_class: Pydantic model class to validate against.
        path: Original file path (for error context).

    Returns:
        Validated Pydantic model instance.

    Raises:
        BuildException: If validation fails (E003).
    """
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        # Extract first error for message
        errors = e.errors()
        if errors:
            first_error = errors[0]
            field_path = ".".join(str(loc) for loc in first_error.get("loc", []))
            error_msg = str(first_error.get("msg", "Invalid value"))
        else:
            field_path = ""
            error_msg = "Validation failed"

        raise BuildException(
            BuildError(
                stage=BuildStage.LOAD,
                code="E003",
                message=f"Validation error in {path.name}: {field_path}: {error_msg}",
                suggestion="Check package.json name and the ng-package options",
                context={
                    "path": str(path),
                    "field": field_path,
                    "message": error_msg,
                    "all_errors": [
                        {
                            "field": ".".join(str(loc) for loc in err.get("loc", [])),
                            "message": err.get("msg", ""),
                        }
                        for err in errors
                    ],
                },
            )
        ) from e


def find_descriptor_file(project: Path) -> Path:
    """Locate the descriptor file for a project directory or file path.

    Args:
        project: Project directory, or an explicit descriptor/package.json path.

    Returns:
        Path of the file holding the ng-package options.

    Raises:
        BuildException: If no descriptor exists (E001).
    """
    if not project.is_dir():
        return project

    for name in DESCRIPTOR_FILE_NAMES:
        candidate = project / name
        if candidate.is_file():
            return candidate

    package_json = project / PACKAGE_JSON
    if package_json.is_file() and PACKAGE_JSON_KEY in _load_document(package_json):
        return package_json

    return project / DESCRIPTOR_FILE_NAMES[0]


def _string_list(value: Any, field: str, path: Path) -> list[str]:
    if value is None:
        return []
    if isinstance(value, dict):
        return [str(key) for key in value]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return list(value)
    raise BuildException(
        BuildError(
            stage=BuildStage.LOAD,
            code="E003",
            message=f"Validation error in {path.name}: {field}: expected a list of module ids",
            context={"path": str(path), "field": field},
        )
    )


def _externals(package: dict[str, Any], lib: dict[str, Any], path: Path) -> tuple[str, ...]:
    ids: list[str] = []
    ids += _string_list(package.get("dependencies"), "dependencies", path)
    ids += _string_list(package.get("peerDependencies"), "peerDependencies", path)
    ids += _string_list(lib.get("externals"), "lib.externals", path)
    # Keep first occurrence order for stable bundler arguments
    return tuple(dict.fromkeys(ids))


def load_package_descriptor(project: Path) -> PackageDescriptor:
    """Load and validate the package descriptor of a library project.

    Args:
        project: Project directory, or path to ng-package.json/.yaml or to a
            package.json carrying an ``ngPackage`` key.

    Returns:
        Validated PackageDescriptor with absolute paths.

    Raises:
        BuildException: If a file is missing (E001, E004, E005), malformed
            (E002) or a field is invalid (E003).

    Example:
        >>> descriptor = load_package_descriptor(Path("projects/my-lib"))
        >>> descriptor.full_package_name
        '@my/lib'
    """
    descriptor_file = find_descriptor_file(project.absolute())
    source_path = descriptor_file.parent
    document = _load_document(descriptor_file)

    package_json = source_path / PACKAGE_JSON
    if descriptor_file.name == PACKAGE_JSON:
        package = document
        options = document.get(PACKAGE_JSON_KEY) or {}
    else:
        if not package_json.is_file():
            raise BuildException(
                BuildError(
                    stage=BuildStage.LOAD,
                    code="E005",
                    message=f"package.json not found next to {descriptor_file.name}",
                    suggestion=f"Create {package_json}",
                    context={"path": str(package_json)},
                )
            )
        package = _load_document(package_json)
        options = document

    lib = options.get("lib") or {}
    entry_file = source_path / lib.get("entryFile", DEFAULT_ENTRY_FILE)
    if not entry_file.is_file():
        raise BuildException(
            BuildError(
                stage=BuildStage.LOAD,
                code="E004",
                message=f"Entry file not found: {entry_file}",
                suggestion="Set lib.entryFile to the library's public API file",
                context={"path": str(entry_file)},
            )
        )

    full_package_name = package.get("name")
    data: dict[str, Any] = {
        "full_package_name": full_package_name,
        "source_path": source_path,
        "entry_file": entry_file,
        "destination_path": source_path / options.get("dest", DEFAULT_DEST),
        "build_directory": source_path
        / options.get("workingDirectory", DEFAULT_WORKING_DIRECTORY),
        "lib_externals": _externals(package, lib, descriptor_file),
        "umd_module_ids": lib.get("umdModuleIds") or {},
    }
    if isinstance(full_package_name, str):
        data["module_name"] = lib.get("moduleName") or default_module_name(full_package_name)
        data["flat_module_file_name"] = (
            lib.get("flatModuleFile") or full_package_name.rsplit("/", 1)[-1]
        )

    descriptor = _validate_model(data, PackageDescriptor, descriptor_file)
    logger.debug(
        "package_descriptor_loaded",
        path=str(descriptor_file),
        package=descriptor.full_package_name,
        externals=len(descriptor.lib_externals),
    )
    return descriptor


__all__ = ["find_descriptor_file", "load_package_descriptor"]
