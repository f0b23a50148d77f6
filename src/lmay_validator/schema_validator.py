# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Schema validation for LMAY documents.

Two layers of checks run on the parsed YAML mapping of a single document:

1. Structural checks (errors), driven by the declarative LMAY_SCHEMA table:
   required fields, value types, enum allow-lists, string length bounds,
   patterns, integer minimums and, in strict mode, unknown top-level fields.
2. Semantic checks (warnings, except invalid_file_count): supported version,
   generic project names, semver project versions, framework/language
   consistency, absolute paths where relative ones are expected, file entries
   carrying directory attributes, partially present architectural folder
   patterns and unpinned dependency versions.

The validator is a pure function of the parsed document: no filesystem
access, no shared state between calls.
"""

import logging
import re
from pathlib import PurePosixPath, PureWindowsPath
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from lmay_validator.models import FindingType, ValidatorName, ValidatorReport

logger = logging.getLogger(__name__)

DEFAULT_SUPPORTED_VERSIONS = ("1.0",)

GENERIC_PROJECT_NAMES = {"project", "app", "application", "untitled"}

UNPINNED_VERSION_MARKERS = {"*", "latest"}

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]*)?$")

ARCHITECTURE_PATTERNS = [
    "MVC",
    "MVP",
    "MVVM",
    "Microservices",
    "Layered",
    "Component-based",
    "Service-oriented",
    "Hexagonal",
    "Event-driven",
    "Serverless",
    "Monolithic",
    "Modular",
    "Plugin-based",
    "Pipeline",
    "Client-server",
    "Distributed",
    "Unstructured",
]

# Framework -> languages it is normally used with
FRAMEWORK_LANGUAGES: Dict[str, Tuple[str, ...]] = {
    "react": ("javascript", "typescript"),
    "vue": ("javascript", "typescript"),
    "angular": ("typescript",),
    "express": ("javascript", "typescript"),
    "nextjs": ("javascript", "typescript"),
    "django": ("python",),
    "flask": ("python",),
    "fastapi": ("python",),
    "spring": ("java", "kotlin"),
    "rails": ("ruby",),
    "laravel": ("php",),
    "gin": ("go",),
    "actix": ("rust",),
}

# Folder-name fragments that together make up a known architectural layout
FOLDER_PATTERNS: Dict[str, Tuple[str, ...]] = {
    "MVC": ("model", "view", "controller"),
    "Hexagonal": ("domain", "port", "adapter"),
}

# A layout counts as partially present from this many matching parts
MIN_PATTERN_PARTS = 2

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

STRUCTURE_ENTRY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "path": {"type": "string", "min_length": 1},
        "type": {"type": "string", "enum": ["file", "directory"]},
        "description": {"type": "string", "max_length": 500},
        "file_count": {"type": "integer", "minimum": 0},
        "primary_language": {"type": "string"},
        "lmay_file": {"type": "string", "min_length": 1},
    },
}

LMAY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["lmay_version", "project"],
    "properties": {
        "lmay_version": {"type": ["string", "number"], "pattern": r"^\d+\.\d+$"},
        "project": {
            "type": "object",
            "required": ["name"],
            "properties": {
                "name": {"type": "string", "min_length": 1, "max_length": 100},
                "description": {"type": "string", "max_length": 500},
                "version": {"type": ["string", "number"]},
                "languages": _STRING_LIST,
                "frameworks": _STRING_LIST,
                "technology_stack": _STRING_LIST,
            },
        },
        "module": {
            "type": "object",
            "properties": {
                "type": {"type": "string"},
                "role": {"type": "string"},
                "parent": {"type": "string"},
            },
        },
        "architecture": {
            "type": "object",
            "properties": {
                "pattern": {"type": "string", "enum": ARCHITECTURE_PATTERNS},
                "entry_points": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["file"],
                        "properties": {
                            "file": {"type": "string", "min_length": 1},
                            "type": {"type": "string"},
                            "description": {"type": "string"},
                        },
                    },
                },
            },
        },
        "structure": {"type": "object", "additional_properties": STRUCTURE_ENTRY_SCHEMA},
        "dependencies": {
            "type": "object",
            "properties": {
                "external": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["name"],
                        "properties": {
                            "name": {"type": "string", "min_length": 1},
                            "version": {"type": ["string", "number"]},
                            "type": {"type": "string"},
                        },
                    },
                },
                "internal": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["path"],
                        "properties": {
                            "path": {"type": "string", "min_length": 1},
                            "description": {"type": "string"},
                        },
                    },
                },
            },
        },
        "interfaces": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "type": {"type": "string"},
                    "description": {"type": "string"},
                    "endpoint": {"type": "string"},
                },
            },
        },
        "hierarchy": {
            "type": "object",
            "properties": {
                "depth": {"type": "integer", "minimum": 0},
                "parent": {"type": "string", "min_length": 1},
                "children": _STRING_LIST,
            },
        },
        "metadata": {"type": "object"},
    },
}


def is_absolute_reference(value: str) -> bool:
    """True for POSIX absolute paths and Windows drive/UNC paths."""
    return PurePosixPath(value).is_absolute() or PureWindowsPath(value).is_absolute()


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _matches_type(value: Any, expected: str) -> bool:
    actual = _type_name(value)
    if expected == "number":
        return actual in ("integer", "number")
    return actual == expected


def _child_pointer(pointer: str, token: Any) -> str:
    token = str(token).replace("~", "~0").replace("/", "~1")
    return f"{pointer}/{token}"


class SchemaValidator:
    """Validates the parsed mapping of one LMAY document.

    Usage:
        validator = SchemaValidator(strict=False)
        report = validator.validate(data, "/project/root.lmay")
        if not report.valid:
            ...
    """

    def __init__(
        self,
        strict: bool = False,
        supported_versions: Optional[Sequence[str]] = None,
        schema: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize the validator.

        Args:
            strict: Report unknown top-level fields as errors.
            supported_versions: LMAY versions accepted without warning.
            schema: Schema table to validate against (defaults to LMAY_SCHEMA).
        """
        self.strict = strict
        self.supported_versions = tuple(supported_versions or DEFAULT_SUPPORTED_VERSIONS)
        self.schema = schema if schema is not None else LMAY_SCHEMA

    def validate(self, data: Any, file_path: str) -> ValidatorReport:
        report = ValidatorReport(ValidatorName.SCHEMA)
        self._check_value(data, self.schema, "", file_path, report, top_level=True)
        if isinstance(data, dict):
            self._check_semantics(data, file_path, report)
        report.files_validated = 1
        return report

    # ------------------------------------------------------------------
    # Structural checks
    # ------------------------------------------------------------------

    def _check_value(
        self,
        value: Any,
        schema: Dict[str, Any],
        pointer: str,
        file_path: str,
        report: ValidatorReport,
        top_level: bool = False,
    ) -> None:
        expected = schema.get("type")
        if expected is not None:
            allowed = [expected] if isinstance(expected, str) else list(expected)
            if not any(_matches_type(value, name) for name in allowed):
                report.error(
                    FindingType.INVALID_TYPE,
                    f'Invalid type for "{pointer or "/"}": expected '
                    f"{' or '.join(allowed)}, got {_type_name(value)}",
                    file_path,
                    path=pointer or "/",
                    metadata={"expected": "|".join(allowed), "actual": _type_name(value)},
                )
                return

        if "enum" in schema and value not in schema["enum"]:
            report.error(
                FindingType.INVALID_ENUM_VALUE,
                f'Value not allowed for "{pointer}": "{value}". '
                f"Allowed values: {', '.join(str(v) for v in schema['enum'])}",
                file_path,
                path=pointer,
            )

        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            self._check_scalar(value, schema, pointer, file_path, report)
        elif isinstance(value, dict):
            self._check_object(value, schema, pointer, file_path, report, top_level)
        elif isinstance(value, list) and "items" in schema:
            for index, item in enumerate(value):
                self._check_value(
                    item, schema["items"], _child_pointer(pointer, index), file_path, report
                )

    def _check_scalar(
        self,
        value: Any,
        schema: Dict[str, Any],
        pointer: str,
        file_path: str,
        report: ValidatorReport,
    ) -> None:
        if isinstance(value, str):
            min_length = schema.get("min_length")
            max_length = schema.get("max_length")
            if min_length is not None and len(value.strip()) < min_length:
                report.error(
                    FindingType.STRING_TOO_SHORT,
                    f'"{pointer}" is too short (minimum {min_length} characters)',
                    file_path,
                    path=pointer,
                )
            if max_length is not None and len(value) > max_length:
                report.error(
                    FindingType.STRING_TOO_LONG,
                    f'"{pointer}" is too long (maximum {max_length} characters)',
                    file_path,
                    path=pointer,
                )

        pattern = schema.get("pattern")
        if pattern is not None and not re.match(pattern, str(value)):
            report.error(
                FindingType.INVALID_PATTERN,
                f'"{pointer}" does not match the required format ({pattern})',
                file_path,
                path=pointer,
            )

        minimum = schema.get("minimum")
        if minimum is not None and isinstance(value, (int, float)) and value < minimum:
            report.error(
                FindingType.VALUE_TOO_SMALL,
                f'"{pointer}" is too small (minimum {minimum})',
                file_path,
                path=pointer,
            )

    def _check_object(
        self,
        value: Dict[str, Any],
        schema: Dict[str, Any],
        pointer: str,
        file_path: str,
        report: ValidatorReport,
        top_level: bool,
    ) -> None:
        for name in schema.get("required", []):
            if value.get(name) is None:
                report.error(
                    FindingType.MISSING_REQUIRED_PROPERTY,
                    f"Missing required property: {name}",
                    file_path,
                    path=_child_pointer(pointer, name),
                )

        properties = schema.get("properties", {})
        additional = schema.get("additional_properties")
        for key, item in value.items():
            child = _child_pointer(pointer, key)
            if key in properties:
                if item is None:
                    continue
                self._check_value(item, properties[key], child, file_path, report)
            elif additional is not None:
                self._check_value(item, additional, child, file_path, report)
            elif top_level and self.strict:
                report.error(
                    FindingType.UNKNOWN_PROPERTY,
                    f'Property not allowed: "{key}"',
                    file_path,
                    path=child,
                )

    # ------------------------------------------------------------------
    # Semantic checks
    # ------------------------------------------------------------------

    def _check_semantics(self, data: Dict[str, Any], file_path: str, report: ValidatorReport) -> None:
        self._check_version(data, file_path, report)
        self._check_project(data.get("project"), file_path, report)
        self._check_architecture(data.get("architecture"), file_path, report)
        self._check_structure(data.get("structure"), file_path, report)
        self._check_dependencies(data.get("dependencies"), file_path, report)
        self._check_hierarchy(data.get("hierarchy"), file_path, report)

    def _check_version(self, data: Dict[str, Any], file_path: str, report: ValidatorReport) -> None:
        version = data.get("lmay_version")
        if version is None or isinstance(version, (dict, list, bool)):
            return
        if str(version) not in self.supported_versions:
            report.warning(
                FindingType.UNSUPPORTED_LMAY_VERSION,
                f'LMAY version "{version}" is not supported by this validator '
                f"(supported: {', '.join(self.supported_versions)})",
                file_path,
                path="/lmay_version",
            )

    def _check_project(self, project: Any, file_path: str, report: ValidatorReport) -> None:
        if not isinstance(project, dict):
            return

        name = project.get("name")
        if isinstance(name, str) and name.strip().lower() in GENERIC_PROJECT_NAMES:
            report.warning(
                FindingType.GENERIC_PROJECT_NAME,
                f'Generic project name: "{name}"',
                file_path,
                path="/project/name",
                suggestion="Use the repository or product name",
            )

        version = project.get("version")
        if version is not None and not isinstance(version, (dict, list, bool)):
            if not SEMVER_PATTERN.match(str(version)):
                report.warning(
                    FindingType.NON_SEMVER_VERSION,
                    f'Version does not follow MAJOR.MINOR.PATCH: "{version}"',
                    file_path,
                    path="/project/version",
                )

        languages = project.get("languages")
        frameworks = project.get("frameworks")
        if isinstance(languages, list) and isinstance(frameworks, list):
            self._check_framework_languages(languages, frameworks, file_path, report)

    def _check_framework_languages(
        self,
        languages: List[Any],
        frameworks: List[Any],
        file_path: str,
        report: ValidatorReport,
    ) -> None:
        declared = {str(lang).lower() for lang in languages}
        for framework in frameworks:
            expected = FRAMEWORK_LANGUAGES.get(str(framework).lower())
            if expected is None:
                continue
            if not declared.intersection(expected):
                report.warning(
                    FindingType.FRAMEWORK_LANGUAGE_MISMATCH,
                    f'Framework "{framework}" is usually used with {"/".join(expected)} '
                    f"but declared languages are: {', '.join(sorted(declared)) or 'none'}",
                    file_path,
                    path="/project/frameworks",
                )

    def _check_architecture(self, architecture: Any, file_path: str, report: ValidatorReport) -> None:
        if not isinstance(architecture, dict):
            return

        entry_points = architecture.get("entry_points")
        if isinstance(entry_points, list):
            if not entry_points:
                report.warning(
                    FindingType.NO_ENTRY_POINTS,
                    "No entry points defined",
                    file_path,
                    path="/architecture/entry_points",
                )
            elif architecture.get("pattern") == "Microservices" and len(entry_points) < 2:
                report.warning(
                    FindingType.MICROSERVICES_SINGLE_ENTRY,
                    "Microservices architecture with a single entry point",
                    file_path,
                    path="/architecture",
                )

            for index, entry in enumerate(entry_points):
                value = entry.get("file") if isinstance(entry, dict) else entry
                self._check_relative(
                    value, f"/architecture/entry_points/{index}/file", file_path, report
                )

    def _check_structure(self, structure: Any, file_path: str, report: ValidatorReport) -> None:
        if not isinstance(structure, dict):
            return

        if not structure:
            report.warning(
                FindingType.EMPTY_STRUCTURE,
                "No structure entries defined",
                file_path,
                path="/structure",
            )
            return

        for name, info in structure.items():
            if isinstance(info, dict):
                self._check_structure_entry(str(name), info, file_path, report)

        self._check_folder_patterns([str(name) for name in structure], file_path, report)

    def _check_structure_entry(
        self, name: str, info: Dict[str, Any], file_path: str, report: ValidatorReport
    ) -> None:
        base = _child_pointer("/structure", name)

        self._check_relative(info.get("path"), f"{base}/path", file_path, report)
        self._check_relative(info.get("lmay_file"), f"{base}/lmay_file", file_path, report)

        if info.get("type") != "file":
            return

        file_count = info.get("file_count")
        if isinstance(file_count, int) and not isinstance(file_count, bool) and file_count != 1:
            report.error(
                FindingType.INVALID_FILE_COUNT,
                f"file_count must be 1 for a file entry, got: {file_count}",
                file_path,
                path=f"{base}/file_count",
            )

        if info.get("primary_language") is not None:
            report.warning(
                FindingType.LANGUAGE_ON_FILE,
                "primary_language is meant for directories, not files",
                file_path,
                path=f"{base}/primary_language",
            )

    def _check_folder_patterns(
        self, names: Iterable[str], file_path: str, report: ValidatorReport
    ) -> None:
        lowered = [name.lower() for name in names]
        for pattern_name, parts in FOLDER_PATTERNS.items():
            present = [part for part in parts if any(part in name for name in lowered)]
            missing = [part for part in parts if part not in present]
            if len(present) >= MIN_PATTERN_PARTS and missing:
                report.warning(
                    FindingType.INCOMPLETE_ARCHITECTURE_PATTERN,
                    f"Incomplete {pattern_name} pattern, missing: {', '.join(missing)}",
                    file_path,
                    path="/structure",
                    metadata={"pattern": pattern_name, "missing": missing},
                )

    def _check_dependencies(self, dependencies: Any, file_path: str, report: ValidatorReport) -> None:
        if not isinstance(dependencies, dict):
            return

        external = dependencies.get("external")
        if isinstance(external, list):
            for index, dep in enumerate(external):
                if not isinstance(dep, dict):
                    continue
                version = dep.get("version")
                if isinstance(version, str) and version.strip().lower() in UNPINNED_VERSION_MARKERS:
                    report.warning(
                        FindingType.UNSAFE_DEPENDENCY_VERSION,
                        f'Unpinned version for "{dep.get("name")}": "{version}"',
                        file_path,
                        path=f"/dependencies/external/{index}/version",
                        suggestion="Pin a version range",
                    )

        internal = dependencies.get("internal")
        if isinstance(internal, list):
            for index, dep in enumerate(internal):
                value = dep.get("path") if isinstance(dep, dict) else dep
                self._check_relative(
                    value, f"/dependencies/internal/{index}/path", file_path, report
                )

    def _check_hierarchy(self, hierarchy: Any, file_path: str, report: ValidatorReport) -> None:
        if isinstance(hierarchy, dict):
            self._check_relative(hierarchy.get("parent"), "/hierarchy/parent", file_path, report)

    def _check_relative(
        self, value: Any, pointer: str, file_path: str, report: ValidatorReport
    ) -> None:
        if isinstance(value, str) and value and is_absolute_reference(value):
            report.warning(
                FindingType.ABSOLUTE_PATH_REFERENCE,
                f'Absolute path "{value}" (use a path relative to the project)',
                file_path,
                path=pointer,
            )
