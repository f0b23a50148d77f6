# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Extraction of the path references a documentation file makes.

Two extractors produce the same reference set:

- extract_references(): structural, walks a typed Document. Used by the
  reference validator.
- scan_text_references(): line-based, scans the raw YAML text without a full
  parse or schema pass. Used by the obsolescence analyzer on stale files.

The text scanner understands block-style YAML as LMAY files are written
(one key per line, two-level sections). Flow-style mappings such as
``src: {path: src}`` are not seen by it; the shared extraction tests pin the
two extractors to the same fixtures. Unquoted null values (``null``, ``~``)
are not references, and the content of block scalars (``|``, ``>``) is text,
not keys.

Resolution bases differ by kind: structure paths, entry points and internal
dependencies are relative to the project root, while nested-document links
and hierarchy parents are relative to the referencing document's directory.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set, Tuple

from lmay_validator.models import Document, ReferenceEdge, ReferenceKind

logger = logging.getLogger(__name__)

# Kinds whose references are relative to the referencing document
DOCUMENT_RELATIVE_KINDS = {ReferenceKind.LMAY_FILE_LINK, ReferenceKind.HIERARCHY_PARENT}

_SECTION_KEY = re.compile(r"^([A-Za-z_][\w-]*)\s*:(.*)$")
_KEY_VALUE = re.compile(r"^(-\s+)?([A-Za-z_][\w-]*)\s*:(.*)$")
_LIST_SCALAR = re.compile(r"^-\s+([^:]+|\".*\"|'.*')$")
_BLOCK_INDICATOR = re.compile(r"^[|>][-+0-9]*$")

# Plain scalars YAML reads as null
_NULL_TOKENS = {"null", "Null", "NULL", "~"}


@dataclass(frozen=True)
class TextReference:
    """A reference found by the text scanner."""

    kind: str
    value: str
    line: int


def resolve_reference(kind: str, value: str, document_path: Path, project_root: Path) -> Path:
    """Resolve a reference to an absolute, normalized path."""
    base = document_path.parent if kind in DOCUMENT_RELATIVE_KINDS else project_root
    return Path(os.path.normpath(os.path.join(os.fspath(base), value)))


def extract_references(document: Document, project_root: Path) -> List[ReferenceEdge]:
    """List every path reference a document makes, in document order."""
    edges: List[ReferenceEdge] = []

    def add(kind: str, value: Optional[str], pointer: str) -> None:
        if not value:
            return
        edges.append(
            ReferenceEdge(
                source=document.path,
                target=resolve_reference(kind, value, document.path, project_root),
                raw=value,
                kind=kind,
                pointer=pointer,
            )
        )

    for entry in document.structure.values():
        add(ReferenceKind.STRUCTURE_PATH, entry.path, f"{entry.pointer}/path")
        add(ReferenceKind.LMAY_FILE_LINK, entry.lmay_file, f"{entry.pointer}/lmay_file")

    for entry_point in document.architecture.entry_points:
        add(ReferenceKind.ENTRY_POINT, entry_point.file, f"{entry_point.pointer}/file")

    for dep in document.internal_dependencies:
        add(ReferenceKind.INTERNAL_DEPENDENCY, dep.path, f"{dep.pointer}/path")

    if document.hierarchy is not None:
        add(ReferenceKind.HIERARCHY_PARENT, document.hierarchy.parent, "/hierarchy/parent")

    return edges


def _plain_scalar(raw: str) -> str:
    value = raw.strip()
    comment = value.find(" #")
    if comment >= 0:
        value = value[:comment]
    return value.strip()


def _is_block_indicator(raw: str) -> bool:
    return bool(_BLOCK_INDICATOR.match(_plain_scalar(raw)))


def _clean_scalar(raw: str) -> str:
    """Strip quotes and trailing comments from a YAML scalar.

    Null values and block scalar indicators clean to "".
    """
    value = raw.strip()
    if not value:
        return ""
    if value[0] in ("'", '"'):
        quote = value[0]
        end = value.find(quote, 1)
        return value[1:end] if end > 0 else value[1:]
    value = _plain_scalar(value)
    if value in _NULL_TOKENS or _BLOCK_INDICATOR.match(value):
        return ""
    return value


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def scan_text_references(text: str) -> List[TextReference]:
    """Find path references by scanning YAML lines.

    Recognized locations:
        structure:      <entry>: {path, lmay_file}
        architecture:   entry_points: [- file: x | - x]
        dependencies:   internal: [- path: x | - x]
        hierarchy:      parent: x
    """
    references: List[TextReference] = []
    section: Optional[str] = None
    subsection: Optional[str] = None
    child_indent: Optional[int] = None
    # Indent of the key that opened a block scalar; deeper lines are its text
    block_indent: Optional[int] = None

    for number, line in enumerate(text.split("\n"), start=1):
        stripped = line.strip()
        if not stripped:
            continue
        indent = _indent_of(line)
        if block_indent is not None:
            if indent > block_indent:
                continue
            block_indent = None
        if stripped.startswith("#") or stripped in ("---", "..."):
            continue

        key_match = _KEY_VALUE.match(stripped)
        scalar = _LIST_SCALAR.match(stripped)
        if key_match and _is_block_indicator(key_match.group(3)):
            block_indent = indent + len(key_match.group(1) or "")
        elif scalar and _is_block_indicator(scalar.group(1)):
            block_indent = indent

        if indent == 0:
            match = _SECTION_KEY.match(stripped)
            section = match.group(1) if match else None
            subsection = None
            child_indent = None
            continue
        if section is None:
            continue

        if child_indent is None:
            child_indent = indent

        if indent == child_indent and key_match and not key_match.group(1):
            subsection = key_match.group(2)
            value = _clean_scalar(key_match.group(3))
            if section == "hierarchy" and subsection == "parent" and value:
                references.append(TextReference(ReferenceKind.HIERARCHY_PARENT, value, number))
            continue

        if section == "structure" and indent > child_indent and key_match:
            key = key_match.group(2)
            value = _clean_scalar(key_match.group(3))
            if not value:
                continue
            if key == "path":
                references.append(TextReference(ReferenceKind.STRUCTURE_PATH, value, number))
            elif key == "lmay_file":
                references.append(TextReference(ReferenceKind.LMAY_FILE_LINK, value, number))
            continue

        list_kind = _list_kind(section, subsection)
        if list_kind is None:
            continue
        list_key = "file" if list_kind == ReferenceKind.ENTRY_POINT else "path"
        if key_match:
            if key_match.group(2) == list_key:
                value = _clean_scalar(key_match.group(3))
                if value:
                    references.append(TextReference(list_kind, value, number))
            continue
        if scalar:
            value = _clean_scalar(scalar.group(1))
            if value:
                references.append(TextReference(list_kind, value, number))

    return references


def _list_kind(section: Optional[str], subsection: Optional[str]) -> Optional[str]:
    if section == "architecture" and subsection == "entry_points":
        return ReferenceKind.ENTRY_POINT
    if section == "dependencies" and subsection == "internal":
        return ReferenceKind.INTERNAL_DEPENDENCY
    return None


def reference_set(edges: List[ReferenceEdge]) -> Set[Tuple[str, str]]:
    """(kind, raw) pairs, for comparing the two extractors."""
    return {(edge.kind, edge.raw) for edge in edges}


def text_reference_set(references: List[TextReference]) -> Set[Tuple[str, str]]:
    return {(ref.kind, ref.value) for ref in references}
