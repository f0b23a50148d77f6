# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for LMAY documentation validation.

This module defines the data structures shared by every validator:
- FindingType / Severity / ValidatorName: Enum-like classes for stable tags
- Finding: One error or warning record with location data
- ValidatorReport: Errors and warnings accumulated by one validator
- Document and its sections: Typed view of one parsed .lmay file
- ReferenceEdge: Transient directed reference from a document
- HierarchyNode: Transient node of the documentation tree
- ObsolescenceVerdict: Per-document drift classification

Typed documents are built by Document.from_mapping(), which fails fast with
DocumentShapeError when a section has the wrong container type. Consumers can
then rely on the typed attributes instead of probing nested dicts.

All serializable models use JSON-compatible primitives.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional

logger = logging.getLogger(__name__)


class Severity:
    """Finding severity levels.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    ERROR = "error"
    WARNING = "warning"


class ValidatorName:
    """Names of the validation stages, used to tag findings and summaries."""

    YAML = "yaml"
    SCHEMA = "schema"
    REFERENCES = "references"
    HIERARCHY = "hierarchy"
    OBSOLESCENCE = "obsolescence"
    DRIFT = "drift"


class FindingType:
    """Machine-stable finding type tags."""

    # Load-time
    FILE_NOT_FOUND = "file_not_found"
    EMPTY_FILE = "empty_file"
    YAML_SYNTAX_ERROR = "yaml_syntax_error"
    FILE_READ_ERROR = "file_read_error"
    INVALID_DOCUMENT_SHAPE = "invalid_document_shape"

    # Text lint
    TAB_CHARACTER = "tab_character"
    TRAILING_WHITESPACE = "trailing_whitespace"
    NON_ASCII_CHARACTERS = "non_ascii_characters"
    INCONSISTENT_INDENTATION = "inconsistent_indentation"
    NON_STANDARD_INDENTATION = "non_standard_indentation"
    KEY_NAMING_CONVENTION = "key_naming_convention"
    LONG_KEY_NAME = "long_key_name"

    # Schema (structural)
    MISSING_REQUIRED_PROPERTY = "missing_required_property"
    INVALID_TYPE = "invalid_type"
    INVALID_ENUM_VALUE = "invalid_enum_value"
    STRING_TOO_SHORT = "string_too_short"
    STRING_TOO_LONG = "string_too_long"
    INVALID_PATTERN = "invalid_pattern"
    VALUE_TOO_SMALL = "value_too_small"
    UNKNOWN_PROPERTY = "unknown_property"

    # Schema (semantic)
    UNSUPPORTED_LMAY_VERSION = "unsupported_lmay_version"
    GENERIC_PROJECT_NAME = "generic_project_name"
    NON_SEMVER_VERSION = "non_semver_version"
    FRAMEWORK_LANGUAGE_MISMATCH = "framework_language_mismatch"
    NO_ENTRY_POINTS = "no_entry_points"
    MICROSERVICES_SINGLE_ENTRY = "microservices_single_entry"
    EMPTY_STRUCTURE = "empty_structure"
    ABSOLUTE_PATH_REFERENCE = "absolute_path_reference"
    INVALID_FILE_COUNT = "invalid_file_count"
    LANGUAGE_ON_FILE = "language_on_file"
    INCOMPLETE_ARCHITECTURE_PATTERN = "incomplete_architecture_pattern"
    UNSAFE_DEPENDENCY_VERSION = "unsafe_dependency_version"

    # References
    ROOT_FILE_NOT_FOUND = "root_file_not_found"
    REFERENCED_PATH_NOT_FOUND = "referenced_path_not_found"
    TYPE_MISMATCH = "type_mismatch"
    ENTRY_POINT_NOT_FILE = "entry_point_not_file"
    LMAY_FILE_NOT_FOUND = "lmay_file_not_found"
    INVALID_LMAY_EXTENSION = "invalid_lmay_extension"
    CIRCULAR_REFERENCE = "circular_reference"
    ORPHAN_DOCUMENT = "orphan_document"
    TRAVERSAL_DEPTH_EXCEEDED = "traversal_depth_exceeded"

    # Hierarchy
    HIERARCHY_BUILD_ERROR = "hierarchy_build_error"
    INCORRECT_HIERARCHY_DEPTH = "incorrect_hierarchy_depth"
    INCORRECT_PARENT_REFERENCE = "incorrect_parent_reference"
    EXCESSIVE_HIERARCHY_DEPTH = "excessive_hierarchy_depth"
    FLAT_HIERARCHY = "flat_hierarchy"
    UNBALANCED_HIERARCHY = "unbalanced_hierarchy"

    # Drift / obsolescence
    OBSOLETE_DOCUMENT = "obsolete_document"
    OUTDATED_DOCUMENT = "outdated_document"
    DOCUMENTED_PATH_MISSING = "documented_path_missing"
    UNDOCUMENTED_DIRECTORY = "undocumented_directory"


class ReferenceKind:
    """Kinds of references a document makes."""

    STRUCTURE_PATH = "structure_path"
    LMAY_FILE_LINK = "lmay_file_link"
    ENTRY_POINT = "entry_point"
    INTERNAL_DEPENDENCY = "internal_dependency"
    HIERARCHY_PARENT = "hierarchy_parent"


class EntryKind:
    """Allowed values of a structure entry's ``type`` field."""

    FILE = "file"
    DIRECTORY = "directory"


class VerdictStatus:
    """Obsolescence classifications."""

    VALID = "valid"
    OUTDATED = "outdated"
    OBSOLETE = "obsolete"


@dataclass
class Finding:
    """One validation error or warning.

    Attributes:
        type: Stable FindingType tag
        message: Human-readable summary
        file: Source document path (absolute)
        severity: Severity.ERROR or Severity.WARNING
        validator: ValidatorName of the stage that produced the finding
        path: JSON-pointer-like location inside the document (optional)
        line: 1-based line number (optional)
        column: 1-based column (optional)
        suggestion: Actionable hint (optional)
        cycle: Ordered document paths forming a reference loop (circular_reference only)
        snippet: Source excerpt around the failure (syntax errors only)
        metadata: Additional finding-specific values
    """

    type: str
    message: str
    file: str
    severity: str = Severity.ERROR
    validator: str = ""
    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    suggestion: Optional[str] = None
    cycle: Optional[List[str]] = None
    snippet: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def identity(self) -> tuple:
        """Key used for order-independent comparison of findings."""
        return (
            self.type,
            self.severity,
            self.validator,
            self.file,
            self.path,
            self.line,
            self.column,
            tuple(self.cycle) if self.cycle else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict, omitting unset optional fields."""
        result: Dict[str, Any] = {
            "type": self.type,
            "message": self.message,
            "file": self.file,
            "severity": self.severity,
            "validator": self.validator,
        }
        if self.path is not None:
            result["path"] = self.path
        if self.line is not None:
            result["line"] = self.line
        if self.column is not None:
            result["column"] = self.column
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        if self.cycle is not None:
            result["cycle"] = list(self.cycle)
        if self.snippet is not None:
            result["snippet"] = self.snippet
        if self.metadata:
            result["metadata"] = dict(self.metadata)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        """Deserialize from JSON-compatible dict."""
        return cls(
            type=data["type"],
            message=data["message"],
            file=data["file"],
            severity=data.get("severity", Severity.ERROR),
            validator=data.get("validator", ""),
            path=data.get("path"),
            line=data.get("line"),
            column=data.get("column"),
            suggestion=data.get("suggestion"),
            cycle=data.get("cycle"),
            snippet=data.get("snippet"),
            metadata=data.get("metadata", {}),
        )


class ValidatorReport:
    """Accumulates the findings of one validator run.

    Every validator owns one report per call; the orchestrator concatenates
    them and keeps the per-validator counts for the summary.
    """

    def __init__(self, validator: str) -> None:
        self.validator = validator
        self.errors: List[Finding] = []
        self.warnings: List[Finding] = []
        self.files_validated = 0

    def add(self, finding: Finding) -> None:
        if not finding.validator:
            finding.validator = self.validator
        if finding.is_error:
            self.errors.append(finding)
        else:
            self.warnings.append(finding)

    def error(self, type: str, message: str, file: str, **kwargs: Any) -> Finding:
        finding = Finding(
            type=type,
            message=message,
            file=file,
            severity=Severity.ERROR,
            validator=self.validator,
            **kwargs,
        )
        self.errors.append(finding)
        return finding

    def warning(self, type: str, message: str, file: str, **kwargs: Any) -> Finding:
        finding = Finding(
            type=type,
            message=message,
            file=file,
            severity=Severity.WARNING,
            validator=self.validator,
            **kwargs,
        )
        self.warnings.append(finding)
        return finding

    def extend(self, other: "ValidatorReport") -> None:
        for finding in other.errors + other.warnings:
            self.add(finding)
        self.files_validated += other.files_validated

    @property
    def valid(self) -> bool:
        return not self.errors

    def summary(self) -> Dict[str, Any]:
        return {
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "valid": self.valid,
        }

    def __repr__(self) -> str:
        return (
            f"ValidatorReport({self.validator!r}, errors={len(self.errors)}, "
            f"warnings={len(self.warnings)})"
        )


class DocumentShapeError(ValueError):
    """Raised when a parsed mapping cannot be turned into a Document.

    Attributes:
        pointer: JSON pointer of the offending value
    """

    def __init__(self, message: str, pointer: str = "") -> None:
        super().__init__(message)
        self.pointer = pointer


def _expect_mapping(value: Any, pointer: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DocumentShapeError(
            f"Expected a mapping at '{pointer}', got {type(value).__name__}", pointer
        )
    return value


def _expect_list(value: Any, pointer: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DocumentShapeError(
            f"Expected a list at '{pointer}', got {type(value).__name__}", pointer
        )
    return value


def _optional_str(value: Any) -> Optional[str]:
    # Scalars such as version numbers are often written unquoted (1.0)
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return None
    return str(value)


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _string_set(value: Any, pointer: str) -> FrozenSet[str]:
    items = _expect_list(value, pointer)
    return frozenset(str(item) for item in items if not isinstance(item, (dict, list)))


@dataclass(frozen=True)
class ProjectMetadata:
    name: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    languages: FrozenSet[str] = frozenset()
    frameworks: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class EntryPoint:
    """An architecture entry point (file relative to the project root)."""

    file: Optional[str]
    role: Optional[str] = None
    index: int = 0

    @property
    def pointer(self) -> str:
        return f"/architecture/entry_points/{self.index}"


@dataclass(frozen=True)
class ArchitectureMetadata:
    pattern: Optional[str] = None
    entry_points: tuple = ()


@dataclass(frozen=True)
class StructureEntry:
    """One child reference inside a document's structure map."""

    name: str
    path: Optional[str] = None
    kind: Optional[str] = None
    lmay_file: Optional[str] = None
    primary_language: Optional[str] = None
    file_count: Optional[int] = None
    description: Optional[str] = None

    @property
    def pointer(self) -> str:
        return f"/structure/{_escape_pointer(self.name)}"


@dataclass(frozen=True)
class ExternalDependency:
    name: Optional[str]
    version: Optional[str] = None
    ecosystem: Optional[str] = None
    index: int = 0


@dataclass(frozen=True)
class InternalDependency:
    path: Optional[str]
    description: Optional[str] = None
    index: int = 0

    @property
    def pointer(self) -> str:
        return f"/dependencies/internal/{self.index}"


@dataclass(frozen=True)
class HierarchyMetadata:
    depth: Optional[int] = None
    parent: Optional[str] = None


@dataclass(frozen=True)
class Document:
    """Typed view of one parsed LMAY documentation file.

    Identity is the canonical absolute ``path``. Instances are immutable; a
    re-validation reloads from disk instead of mutating a cached document.
    """

    path: Path
    lmay_version: Optional[str]
    project: ProjectMetadata
    architecture: ArchitectureMetadata
    structure: Dict[str, StructureEntry]
    external_dependencies: tuple
    internal_dependencies: tuple
    hierarchy: Optional[HierarchyMetadata]
    raw: Dict[str, Any] = field(compare=False, repr=False)

    @property
    def directory(self) -> Path:
        return self.path.parent

    def nested_links(self) -> List[StructureEntry]:
        """Structure entries that link to another documentation file."""
        return [entry for entry in self.structure.values() if entry.lmay_file]

    @classmethod
    def from_mapping(cls, path: Path, data: Any) -> "Document":
        """Build a Document from a parsed YAML mapping.

        Raises:
            DocumentShapeError: If the top level or a section has the wrong shape.
        """
        if not isinstance(data, dict):
            raise DocumentShapeError(
                f"Document root must be a mapping, got {type(data).__name__}", ""
            )

        project_data = _expect_mapping(data.get("project"), "/project")
        project = ProjectMetadata(
            name=_optional_str(project_data.get("name")),
            description=_optional_str(project_data.get("description")),
            version=_optional_str(project_data.get("version")),
            languages=_string_set(project_data.get("languages"), "/project/languages"),
            frameworks=_string_set(project_data.get("frameworks"), "/project/frameworks"),
        )

        arch_data = _expect_mapping(data.get("architecture"), "/architecture")
        entry_points = []
        raw_entries = _expect_list(arch_data.get("entry_points"), "/architecture/entry_points")
        for index, item in enumerate(raw_entries):
            pointer = f"/architecture/entry_points/{index}"
            if isinstance(item, str):
                # Shorthand: a bare path
                entry_points.append(EntryPoint(file=item, index=index))
                continue
            item = _expect_mapping(item, pointer)
            entry_points.append(
                EntryPoint(
                    file=_optional_str(item.get("file")),
                    role=_optional_str(item.get("type")),
                    index=index,
                )
            )
        architecture = ArchitectureMetadata(
            pattern=_optional_str(arch_data.get("pattern")),
            entry_points=tuple(entry_points),
        )

        structure: Dict[str, StructureEntry] = {}
        structure_data = _expect_mapping(data.get("structure"), "/structure")
        for name, info in structure_data.items():
            name = str(name)
            info = _expect_mapping(info, f"/structure/{_escape_pointer(name)}")
            structure[name] = StructureEntry(
                name=name,
                path=_optional_str(info.get("path")),
                kind=_optional_str(info.get("type")),
                lmay_file=_optional_str(info.get("lmay_file")),
                primary_language=_optional_str(info.get("primary_language")),
                file_count=_optional_int(info.get("file_count")),
                description=_optional_str(info.get("description")),
            )

        deps_data = _expect_mapping(data.get("dependencies"), "/dependencies")
        external = []
        for index, item in enumerate(
            _expect_list(deps_data.get("external"), "/dependencies/external")
        ):
            item = _expect_mapping(item, f"/dependencies/external/{index}")
            external.append(
                ExternalDependency(
                    name=_optional_str(item.get("name")),
                    version=_optional_str(item.get("version")),
                    ecosystem=_optional_str(item.get("type")),
                    index=index,
                )
            )
        internal = []
        for index, item in enumerate(
            _expect_list(deps_data.get("internal"), "/dependencies/internal")
        ):
            if isinstance(item, str):
                internal.append(InternalDependency(path=item, index=index))
                continue
            item = _expect_mapping(item, f"/dependencies/internal/{index}")
            internal.append(
                InternalDependency(
                    path=_optional_str(item.get("path")),
                    description=_optional_str(item.get("description")),
                    index=index,
                )
            )

        hierarchy: Optional[HierarchyMetadata] = None
        if data.get("hierarchy") is not None:
            hier_data = _expect_mapping(data.get("hierarchy"), "/hierarchy")
            hierarchy = HierarchyMetadata(
                depth=_optional_int(hier_data.get("depth")),
                parent=_optional_str(hier_data.get("parent")),
            )

        return cls(
            path=path,
            lmay_version=_optional_str(data.get("lmay_version")),
            project=project,
            architecture=architecture,
            structure=structure,
            external_dependencies=tuple(external),
            internal_dependencies=tuple(internal),
            hierarchy=hierarchy,
            raw=data,
        )


def _escape_pointer(token: str) -> str:
    """Escape a JSON pointer reference token (RFC 6901)."""
    return token.replace("~", "~0").replace("/", "~1")


@dataclass(frozen=True)
class ReferenceEdge:
    """A directed reference from a document to a filesystem path.

    Attributes:
        source: Canonical path of the referencing document
        target: Resolved absolute path of the referenced entity
        raw: The reference exactly as written in the document
        kind: ReferenceKind value
        pointer: JSON pointer of the field holding the reference
    """

    source: Path
    target: Path
    raw: str
    kind: str
    pointer: str


@dataclass
class HierarchyNode:
    """A document placed in the documentation tree.

    Built fresh on every hierarchy pass and discarded afterwards.
    """

    document: Document
    depth: int = 0
    parent: Optional["HierarchyNode"] = None
    parent_key: Optional[str] = None
    children: List["HierarchyNode"] = field(default_factory=list)

    @property
    def file(self) -> Path:
        return self.document.path

    def iter_nodes(self) -> List["HierarchyNode"]:
        """Return this node and all descendants in pre-order."""
        nodes: List[HierarchyNode] = []
        stack = [self]
        while stack:
            node = stack.pop()
            nodes.append(node)
            stack.extend(reversed(node.children))
        return nodes


@dataclass
class ObsolescenceVerdict:
    """Drift classification of one documentation file."""

    path: str
    relative_path: str
    status: str
    age_days: int
    modified: float
    reason: Optional[str] = None
    references: List[str] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "path": self.path,
            "relative_path": self.relative_path,
            "status": self.status,
            "age_days": self.age_days,
            "modified": self.modified,
        }
        if self.reason is not None:
            result["reason"] = self.reason
        if self.references:
            result["references"] = list(self.references)
        if self.unresolved:
            result["unresolved"] = list(self.unresolved)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObsolescenceVerdict":
        return cls(
            path=data["path"],
            relative_path=data["relative_path"],
            status=data["status"],
            age_days=data["age_days"],
            modified=data["modified"],
            reason=data.get("reason"),
            references=data.get("references", []),
            unresolved=data.get("unresolved", []),
        )
