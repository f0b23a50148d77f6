# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Parent/child hierarchy validation of a documentation tree.

The tree is built from the root by following nested-document links, with
depth = parent depth + 1. Each branch carries its own copy of the set of
documents on its root-to-node path, so two sibling branches linking the same
document do not collide, while a document appearing twice on one path aborts
the build with a hierarchy-scoped circular_reference.

Children that cannot be loaded are left out of the tree; the reference pass
reports them.

After the build:
- Per node: declared hierarchy.depth / hierarchy.parent against the computed
  tree, and a warning past max_hierarchy_depth
- At the root: node counts per level for flat and unbalanced trees
"""

import logging
import os
import posixpath
from collections import Counter
from pathlib import Path
from typing import FrozenSet, List, Optional, Tuple

from lmay_validator.loader import DocumentLoader, DocumentLoadError, canonical_path
from lmay_validator.models import (
    Finding,
    FindingType,
    HierarchyNode,
    Severity,
    ValidatorName,
    ValidatorReport,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_HIERARCHY_DEPTH = 10
DEFAULT_FLAT_THRESHOLD = 10
DEFAULT_UNBALANCED_RATIO = 3
DEFAULT_MAX_TRAVERSAL_DEPTH = 256


class HierarchyBuildError(Exception):
    """The hierarchy tree could not be built."""

    finding_type = FindingType.HIERARCHY_BUILD_ERROR

    def __init__(self, file: Path, message: str) -> None:
        super().__init__(message)
        self.file = file
        self.message = message

    def to_finding(self) -> Finding:
        return Finding(
            type=self.finding_type,
            message=f"Error building the hierarchy tree: {self.message}",
            file=str(self.file),
            severity=Severity.ERROR,
            validator=ValidatorName.HIERARCHY,
        )


class HierarchyCycleError(HierarchyBuildError):
    """A document appears twice on one root-to-node path."""

    finding_type = FindingType.CIRCULAR_REFERENCE

    def __init__(self, file: Path, cycle: List[Path], pointer: str) -> None:
        display = " -> ".join(str(path) for path in cycle)
        super().__init__(file, f"Circular reference detected in hierarchy: {display}")
        self.cycle = cycle
        self.pointer = pointer

    def to_finding(self) -> Finding:
        return Finding(
            type=self.finding_type,
            message=self.message,
            file=str(self.file),
            severity=Severity.ERROR,
            validator=ValidatorName.HIERARCHY,
            path=self.pointer,
            cycle=[str(path) for path in self.cycle],
        )


def _ancestry(node: HierarchyNode) -> List[Path]:
    """Files from the root down to node."""
    chain: List[Path] = []
    current: Optional[HierarchyNode] = node
    while current is not None:
        chain.append(current.file)
        current = current.parent
    chain.reverse()
    return chain


def _posix_relpath(target: Path, start: Path) -> str:
    return Path(os.path.relpath(target, start)).as_posix()


class HierarchyValidator:
    """Builds the documentation tree and checks it.

    Usage:
        validator = HierarchyValidator(loader=session_loader)
        report = validator.validate_hierarchy(Path("/project"), "root.lmay")
    """

    def __init__(
        self,
        loader: Optional[DocumentLoader] = None,
        max_hierarchy_depth: int = DEFAULT_MAX_HIERARCHY_DEPTH,
        flat_threshold: int = DEFAULT_FLAT_THRESHOLD,
        unbalanced_ratio: int = DEFAULT_UNBALANCED_RATIO,
        max_traversal_depth: int = DEFAULT_MAX_TRAVERSAL_DEPTH,
    ):
        self.loader = loader or DocumentLoader()
        self.max_hierarchy_depth = max_hierarchy_depth
        self.flat_threshold = flat_threshold
        self.unbalanced_ratio = unbalanced_ratio
        self.max_traversal_depth = max_traversal_depth

    def validate_hierarchy(self, project_root: Path, root_file: str = "root.lmay") -> ValidatorReport:
        """Build the tree from root_file and report hierarchy findings.

        Returns:
            ValidatorReport tagged "hierarchy".
        """
        report = ValidatorReport(ValidatorName.HIERARCHY)
        root_path = canonical_path(Path(project_root) / root_file)

        try:
            tree = self.build_tree(root_path)
        except HierarchyBuildError as e:
            logger.warning(f"Hierarchy build failed for {root_path}: {e}")
            report.add(e.to_finding())
            return report

        nodes = tree.iter_nodes()
        report.files_validated = len(nodes)
        for node in nodes:
            self._check_node(node, report)
        self._check_distribution(tree, nodes, report)
        return report

    def build_tree(self, root_path: Path) -> HierarchyNode:
        """Build the HierarchyNode tree rooted at root_path.

        Raises:
            HierarchyCycleError: A document repeats on one root-to-node path.
            HierarchyBuildError: The root cannot be loaded or the tree is
                deeper than max_traversal_depth.
        """
        root_path = canonical_path(root_path)
        try:
            root_document = self.loader.load(root_path)
        except DocumentLoadError as e:
            raise HierarchyBuildError(root_path, f"Unable to parse file {root_path}: {e}") from e

        root = HierarchyNode(document=root_document, depth=0)
        stack: List[Tuple[HierarchyNode, FrozenSet[Path]]] = [(root, frozenset({root_path}))]

        while stack:
            node, visited = stack.pop()
            children: List[Tuple[HierarchyNode, FrozenSet[Path]]] = []

            for entry in node.document.nested_links():
                child_path = canonical_path(node.file.parent / entry.lmay_file)
                pointer = f"{entry.pointer}/lmay_file"
                if child_path in visited:
                    chain = _ancestry(node)
                    start = chain.index(child_path)
                    raise HierarchyCycleError(node.file, chain[start:] + [child_path], pointer)

                child_document = self.loader.try_load(child_path)
                if child_document is None:
                    logger.debug(f"Skipping unloadable child {child_path} of {node.file}")
                    continue

                depth = node.depth + 1
                if depth > self.max_traversal_depth:
                    raise HierarchyBuildError(
                        child_path,
                        f"Hierarchy deeper than the maximum traversal depth "
                        f"{self.max_traversal_depth}",
                    )

                child = HierarchyNode(
                    document=child_document, depth=depth, parent=node, parent_key=entry.name
                )
                node.children.append(child)
                # Copy-on-descend: siblings never see each other's paths
                children.append((child, visited | {child_path}))

            stack.extend(reversed(children))

        return root

    def _check_node(self, node: HierarchyNode, report: ValidatorReport) -> None:
        file = str(node.file)

        if node.depth > self.max_hierarchy_depth:
            report.warning(
                FindingType.EXCESSIVE_HIERARCHY_DEPTH,
                f"Very deep hierarchy detected (level {node.depth})",
                file,
                metadata={"depth": node.depth, "max_depth": self.max_hierarchy_depth},
            )

        hierarchy = node.document.hierarchy
        if hierarchy is None:
            return

        if hierarchy.depth is not None and hierarchy.depth != node.depth:
            report.error(
                FindingType.INCORRECT_HIERARCHY_DEPTH,
                f"Incorrect hierarchy depth: declared {hierarchy.depth}, computed {node.depth}",
                file,
                path="/hierarchy/depth",
                metadata={"declared": hierarchy.depth, "computed": node.depth},
            )

        if hierarchy.parent and node.parent is not None:
            expected = _posix_relpath(node.parent.file, node.file.parent)
            declared = posixpath.normpath(hierarchy.parent.replace("\\", "/"))
            if declared != posixpath.normpath(expected):
                report.error(
                    FindingType.INCORRECT_PARENT_REFERENCE,
                    f'Incorrect parent reference: declared "{hierarchy.parent}", '
                    f'expected "{expected}"',
                    file,
                    path="/hierarchy/parent",
                    suggestion=f"Set hierarchy.parent to {expected}",
                    metadata={"declared": hierarchy.parent, "expected": expected},
                )

    def _check_distribution(
        self, root: HierarchyNode, nodes: List[HierarchyNode], report: ValidatorReport
    ) -> None:
        """Analyze node counts per depth level."""
        level_counts = Counter(node.depth for node in nodes)
        levels = sorted(level_counts)
        max_level = levels[-1]
        file = str(root.file)

        if max_level <= 1 and level_counts[1] > self.flat_threshold:
            report.warning(
                FindingType.FLAT_HIERARCHY,
                f"Very flat hierarchy detected ({level_counts[1]} documents at level 1)",
                file,
                suggestion="Consider grouping related documents under intermediate levels",
                metadata={"level_1_count": level_counts[1]},
            )

        for previous, current in zip(levels, levels[1:]):
            if level_counts[current] > level_counts[previous] * self.unbalanced_ratio:
                report.warning(
                    FindingType.UNBALANCED_HIERARCHY,
                    f"Unbalanced hierarchy: level {current} has {level_counts[current]} "
                    f"documents vs {level_counts[previous]} at level {previous}",
                    file,
                    metadata={"level": current},
                )
