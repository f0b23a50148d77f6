# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Cross-file reference validation for a documentation project.

Algorithm Overview:
1. Load the root document (short-circuit on failure unless continue mode)
2. Walk nested-document links breadth-first from the root, checking every
   reference each document makes against the filesystem
3. Load and check every other discovered documentation file
4. Detect cycles in the nested-document graph (iterative DFS)
5. Report documents not reachable from the root as orphans

Cycle detection keeps an explicit stack instead of recursing, so very deep
chains cannot exhaust the interpreter's recursion limit. It reports exactly one
circular_reference per back edge; diamond shapes (A -> B, A -> C, B -> D,
C -> D) reach D twice but never through a node on the current stack, so they
are not cycles.

All traversal state lives in local variables of one validate_project() call.
"""

import logging
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List, Optional, Set, Tuple

from lmay_validator.loader import (
    DocumentLoader,
    DocumentLoadError,
    DocumentNotFoundError,
    canonical_path,
)
from lmay_validator.models import (
    Document,
    EntryKind,
    Finding,
    FindingType,
    ReferenceEdge,
    ReferenceKind,
    Severity,
    ValidatorName,
    ValidatorReport,
)
from lmay_validator.reference_extraction import extract_references
from lmay_validator.scanner import (
    DEFAULT_DOCUMENT_EXTENSION,
    IgnoreRules,
    discover_documents,
)

logger = logging.getLogger(__name__)

DEFAULT_ROOT_FILE = "root.lmay"
DEFAULT_MAX_TRAVERSAL_DEPTH = 256

# Adjacency: document -> [(linked document, JSON pointer of the link)]
LinkGraph = Dict[Path, List[Tuple[Path, str]]]

# DFS colors
_WHITE, _GRAY, _BLACK = 0, 1, 2


class TraversalDepthError(Exception):
    """Raised when a chain of nested-document links exceeds the depth guard."""

    def __init__(self, source: Path, target: Path, depth: int, limit: int) -> None:
        super().__init__(
            f"Nested-document chain exceeds maximum traversal depth {limit} at {target}"
        )
        self.source = source
        self.target = target
        self.depth = depth
        self.limit = limit

    def to_finding(self, pointer: Optional[str] = None) -> Finding:
        return Finding(
            type=FindingType.TRAVERSAL_DEPTH_EXCEEDED,
            message=str(self),
            file=str(self.source),
            severity=Severity.ERROR,
            validator=ValidatorName.REFERENCES,
            path=pointer,
            metadata={"depth": self.depth, "limit": self.limit, "target": str(self.target)},
        )


def _display(path: Path, project_root: Path) -> str:
    """Project-relative form of a path for messages."""
    try:
        return path.relative_to(project_root).as_posix()
    except ValueError:
        return str(path)


class ReferenceValidator:
    """Checks that every reference in a documentation project resolves.

    Usage:
        validator = ReferenceValidator(loader=DocumentLoader())
        report = validator.validate_project(Path("/project"), "root.lmay")
        for finding in report.errors:
            print(finding.type, finding.message)
    """

    def __init__(
        self,
        loader: Optional[DocumentLoader] = None,
        extension: str = DEFAULT_DOCUMENT_EXTENSION,
        ignore_rules: Optional[IgnoreRules] = None,
        max_traversal_depth: int = DEFAULT_MAX_TRAVERSAL_DEPTH,
        continue_on_root_error: bool = False,
    ):
        """Initialize the reference validator.

        Args:
            loader: Session loader; its cache is shared with the other passes.
            extension: Documentation file extension for discovery and links.
            ignore_rules: Discovery skip rules.
            max_traversal_depth: Longest nested-document chain followed.
            continue_on_root_error: Keep checking discovered documents when the
                root document cannot be loaded.
        """
        self.loader = loader or DocumentLoader()
        self.extension = extension
        self.ignore_rules = ignore_rules or IgnoreRules()
        self.max_traversal_depth = max_traversal_depth
        self.continue_on_root_error = continue_on_root_error

    def validate_project(
        self,
        project_root: Path,
        root_file: str = DEFAULT_ROOT_FILE,
        root_reported: bool = False,
    ) -> ValidatorReport:
        """Validate all references of the project rooted at project_root.

        Args:
            project_root: Project directory.
            root_file: Root document path relative to project_root.
            root_reported: The caller already reported why the root document
                cannot be loaded; do not report it again.

        Returns:
            ValidatorReport tagged "references".
        """
        report = ValidatorReport(ValidatorName.REFERENCES)
        project_root = canonical_path(project_root)
        root_path = canonical_path(project_root / root_file)

        root_document = self._load_root(root_path, report, root_reported)
        if root_document is None and not self.continue_on_root_error:
            logger.info(f"Root document {root_path} failed to load, skipping reference checks")
            return report

        graph: LinkGraph = {}
        visited: Set[Path] = {root_path}

        if root_document is not None:
            self._traverse(root_document, project_root, graph, visited, report)

        discovered = discover_documents(project_root, self.extension, self.ignore_rules)
        for document_file in discovered:
            if document_file.path in visited:
                continue
            visited.add(document_file.path)
            document = self._load_linked(document_file.path, None, report)
            if document is not None:
                self._traverse(document, project_root, graph, visited, report)

        self._detect_cycles(root_path, graph, project_root, report)

        if root_document is not None:
            self._detect_orphans(root_path, graph, discovered, project_root, report)
        else:
            logger.debug("Root document unavailable, orphan detection skipped")

        report.files_validated = len(graph)
        logger.debug(
            f"Reference validation of {project_root}: {len(graph)} documents, "
            f"{len(report.errors)} errors, {len(report.warnings)} warnings"
        )
        return report

    def validate_file_references(
        self, document: Document, document_path: Path, base_path: Path
    ) -> ValidatorReport:
        """Check the references of one document without following its links.

        Args:
            document: Typed document to check.
            document_path: Path reported as the findings' file.
            base_path: Project root that structure paths, entry points and
                internal dependencies are relative to.
        """
        report = ValidatorReport(ValidatorName.REFERENCES)
        self._check_document(document, Path(document_path), canonical_path(base_path), report)
        report.files_validated = 1
        return report

    def _load_root(
        self, root_path: Path, report: ValidatorReport, reported: bool = False
    ) -> Optional[Document]:
        try:
            return self.loader.load(root_path)
        except DocumentLoadError as e:
            if reported:
                logger.debug(f"Root document {root_path} failed to load: {e}")
            elif isinstance(e, DocumentNotFoundError):
                report.error(
                    FindingType.ROOT_FILE_NOT_FOUND,
                    f"Root LMAY file not found: {root_path}",
                    str(root_path),
                    suggestion="Create the root document or pass the correct --root-file",
                )
            else:
                report.add(e.to_finding(ValidatorName.REFERENCES))
        return None

    def _load_linked(
        self, path: Path, edge: Optional[ReferenceEdge], report: ValidatorReport
    ) -> Optional[Document]:
        try:
            return self.loader.load(path)
        except DocumentLoadError as e:
            finding = e.to_finding(ValidatorName.REFERENCES)
            if edge is not None:
                finding.metadata["linked_from"] = str(edge.source)
            report.add(finding)
            return None

    def _traverse(
        self,
        start: Document,
        project_root: Path,
        graph: LinkGraph,
        visited: Set[Path],
        report: ValidatorReport,
    ) -> None:
        """Breadth-first walk over nested-document links from start."""
        queue: Deque[Tuple[Document, int]] = deque([(start, 0)])

        while queue:
            document, depth = queue.popleft()
            links = self._check_document(document, document.path, project_root, report)
            targets = graph.setdefault(document.path, [])

            for edge in links:
                target = canonical_path(edge.target)
                targets.append((target, edge.pointer))
                if target in visited:
                    continue
                try:
                    self._guard_depth(document.path, target, depth + 1)
                except TraversalDepthError as e:
                    logger.warning(str(e))
                    report.add(e.to_finding(edge.pointer))
                    continue

                visited.add(target)
                child = self._load_linked(target, edge, report)
                if child is not None:
                    queue.append((child, depth + 1))

    def _guard_depth(self, source: Path, target: Path, depth: int) -> None:
        if depth > self.max_traversal_depth:
            raise TraversalDepthError(source, target, depth, self.max_traversal_depth)

    def _check_document(
        self,
        document: Document,
        document_path: Path,
        project_root: Path,
        report: ValidatorReport,
    ) -> List[ReferenceEdge]:
        """Check every reference of a document against the filesystem.

        Returns:
            Nested-document links whose target exists.
        """
        file = str(document_path)
        entries_by_pointer = {
            f"{entry.pointer}/path": entry for entry in document.structure.values()
        }
        links: List[ReferenceEdge] = []

        for edge in extract_references(document, project_root):
            target = edge.target
            if edge.kind == ReferenceKind.HIERARCHY_PARENT:
                # Checked by the hierarchy pass against the computed tree
                continue

            if edge.kind == ReferenceKind.LMAY_FILE_LINK:
                if not target.exists():
                    report.error(
                        FindingType.LMAY_FILE_NOT_FOUND,
                        f"Referenced LMAY file not found: {edge.raw}",
                        file,
                        path=edge.pointer,
                        metadata={"referenced_path": str(target)},
                    )
                    continue
                if not edge.raw.endswith(self.extension):
                    report.warning(
                        FindingType.INVALID_LMAY_EXTENSION,
                        f"LMAY file reference without {self.extension} extension: {edge.raw}",
                        file,
                        path=edge.pointer,
                    )
                links.append(edge)
                continue

            if not target.exists():
                report.error(
                    FindingType.REFERENCED_PATH_NOT_FOUND,
                    f"Referenced path not found: {edge.raw}",
                    file,
                    path=edge.pointer,
                    metadata={"reference_kind": edge.kind, "referenced_path": str(target)},
                )
                continue

            if edge.kind == ReferenceKind.STRUCTURE_PATH:
                entry = entries_by_pointer.get(edge.pointer)
                actual = EntryKind.DIRECTORY if target.is_dir() else EntryKind.FILE
                if (
                    entry is not None
                    and entry.kind in (EntryKind.FILE, EntryKind.DIRECTORY)
                    and entry.kind != actual
                ):
                    report.error(
                        FindingType.TYPE_MISMATCH,
                        f'Type mismatch for {edge.raw}: declared "{entry.kind}", found "{actual}"',
                        file,
                        path=f"{entry.pointer}/type",
                        metadata={"declared": entry.kind, "actual": actual},
                    )
            elif edge.kind == ReferenceKind.ENTRY_POINT and not target.is_file():
                report.error(
                    FindingType.ENTRY_POINT_NOT_FILE,
                    f"Entry point is not a file: {edge.raw}",
                    file,
                    path=edge.pointer,
                )

        return links

    def _detect_cycles(
        self, root_path: Path, graph: LinkGraph, project_root: Path, report: ValidatorReport
    ) -> None:
        """Report one circular_reference per back edge of the link graph."""
        color: Dict[Path, int] = {node: _WHITE for node in graph}
        reported: Set[Tuple[Path, Path]] = set()

        starts = [root_path] if root_path in graph else []
        starts.extend(sorted(node for node in graph if node != root_path))

        for start in starts:
            if color[start] != _WHITE:
                continue

            color[start] = _GRAY
            trail: List[Path] = [start]
            stack: List[Tuple[Path, int]] = [(start, 0)]

            while stack:
                node, next_index = stack[-1]
                edges = graph.get(node, [])
                if next_index >= len(edges):
                    stack.pop()
                    trail.pop()
                    color[node] = _BLACK
                    continue

                stack[-1] = (node, next_index + 1)
                target, pointer = edges[next_index]
                state = color.get(target)

                if state == _GRAY:
                    if (node, target) in reported:
                        continue
                    reported.add((node, target))
                    loop = trail[trail.index(target) :] + [target]
                    display = " -> ".join(_display(path, project_root) for path in loop)
                    report.error(
                        FindingType.CIRCULAR_REFERENCE,
                        f"Circular reference detected: {display}",
                        str(node),
                        path=pointer,
                        cycle=[str(path) for path in loop],
                        metadata={"trail": [str(path) for path in trail] + [str(target)]},
                    )
                elif state == _WHITE:
                    color[target] = _GRAY
                    trail.append(target)
                    stack.append((target, 0))

    def _detect_orphans(
        self,
        root_path: Path,
        graph: LinkGraph,
        discovered: List,
        project_root: Path,
        report: ValidatorReport,
    ) -> None:
        """Warn about discovered documents the root cannot reach."""
        reachable: Set[Path] = {root_path}
        queue: Deque[Path] = deque([root_path])
        while queue:
            node = queue.popleft()
            for target, _pointer in graph.get(node, []):
                if target not in reachable:
                    reachable.add(target)
                    queue.append(target)

        for document_file in discovered:
            if document_file.path in reachable:
                continue
            report.warning(
                FindingType.ORPHAN_DOCUMENT,
                f"Orphan LMAY file (not referenced): {document_file.relative_path}",
                str(document_file.path),
                suggestion="Link it from a parent document's structure or remove it",
            )
