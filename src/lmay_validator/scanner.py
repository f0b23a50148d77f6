# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Filesystem scanning for documentation discovery and live snapshots.

Provides the three views of a project the validators need:
- scan_tree(): Rooted tree of {name, type, path, children} nodes
- ProjectSnapshot: Flat set of project-relative file and directory paths,
  used to resolve documented references without touching the disk again
- discover_documents(): Every documentation file under the root

Discovery skips version control metadata, dependency installs, build output,
caches, dot-directories and dotfiles, plus user-configured glob patterns.
"""

import fnmatch
import logging
import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_EXTENSION = ".lmay"

# Directory names never descended into
ALWAYS_IGNORED = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "bower_components",
    "vendor",
    "__pycache__",
    ".venv",
    "venv",
    ".tox",
    ".pytest_cache",
    ".mypy_cache",
    ".ruff_cache",
    ".cache",
    ".eggs",
    "*.egg-info",
    "dist",
    "build",
    "target",
    "coverage",
}


class IgnoreRules:
    """Decides which paths discovery and snapshots skip.

    Usage:
        rules = IgnoreRules(user_patterns=["docs/archive/*"])
        rules.should_skip_dir("node_modules")  # True
    """

    def __init__(self, user_patterns: Optional[Iterable[str]] = None, skip_hidden: bool = True):
        self.user_patterns = list(user_patterns or [])
        self.skip_hidden = skip_hidden

    def _matches_always_ignored(self, name: str) -> bool:
        for pattern in ALWAYS_IGNORED:
            if "*" in pattern:
                if fnmatch.fnmatch(name, pattern):
                    return True
            elif name == pattern:
                return True
        return False

    def _matches_user_pattern(self, rel_path: str, name: str) -> bool:
        for pattern in self.user_patterns:
            if fnmatch.fnmatch(rel_path, pattern) or fnmatch.fnmatch(name, pattern):
                return True
        return False

    def should_skip_dir(self, name: str, rel_path: str = "") -> bool:
        if self.skip_hidden and name.startswith("."):
            return True
        if self._matches_always_ignored(name):
            return True
        return self._matches_user_pattern(rel_path or name, name)

    def should_skip_file(self, name: str, rel_path: str = "") -> bool:
        if self.skip_hidden and name.startswith("."):
            return True
        return self._matches_user_pattern(rel_path or name, name)

    def is_ignored(self, rel_path: str) -> bool:
        """Check every component of a project-relative path.

        The last component matches either rule set, since a bare path does
        not say whether it names a file or a directory.
        """
        parts = [part for part in rel_path.replace("\\", "/").split("/") if part and part != "."]
        for index, part in enumerate(parts):
            if self.should_skip_dir(part, "/".join(parts[: index + 1])):
                return True
        if not parts:
            return False
        return self.should_skip_file(parts[-1], "/".join(parts))


@dataclass
class FileTreeNode:
    """One node of the scanned project tree."""

    name: str
    type: str  # "file" or "directory"
    path: Path
    children: List["FileTreeNode"] = field(default_factory=list)

    @property
    def is_directory(self) -> bool:
        return self.type == "directory"


@dataclass(frozen=True)
class DocumentFile:
    """A documentation file found on disk."""

    path: Path
    relative_path: str
    size: int
    modified: float


def scan_tree(root: Path, rules: Optional[IgnoreRules] = None) -> FileTreeNode:
    """Walk the project and return its rooted tree.

    Uses an explicit stack so arbitrarily deep trees do not exhaust the
    interpreter's recursion limit. Symlinked directories are not followed.
    """
    rules = rules or IgnoreRules()
    root = Path(root).resolve()
    root_node = FileTreeNode(name=root.name, type="directory", path=root)

    stack = [(root_node, "")]
    while stack:
        node, rel_dir = stack.pop()
        try:
            entries = sorted(os.scandir(node.path), key=lambda entry: entry.name)
        except OSError as e:
            logger.warning(f"Unable to list directory {node.path}: {e}")
            continue

        for entry in entries:
            rel_path = posixpath.join(rel_dir, entry.name) if rel_dir else entry.name
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                continue

            if is_dir:
                if rules.should_skip_dir(entry.name, rel_path):
                    continue
                child = FileTreeNode(name=entry.name, type="directory", path=Path(entry.path))
                node.children.append(child)
                stack.append((child, rel_path))
            else:
                if rules.should_skip_file(entry.name, rel_path):
                    continue
                node.children.append(
                    FileTreeNode(name=entry.name, type="file", path=Path(entry.path))
                )

    return root_node


class ProjectSnapshot:
    """Project-relative paths present on disk at scan time.

    Paths use forward slashes and no leading "./". The root itself is ".".
    Paths under directories the scan skipped are checked on disk instead.
    """

    def __init__(
        self,
        root: Path,
        files: Set[str],
        directories: Set[str],
        rules: Optional[IgnoreRules] = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.files = set(files)
        self.directories = set(directories)
        self.rules = rules or IgnoreRules()

    @classmethod
    def from_tree(cls, tree: FileTreeNode, rules: Optional[IgnoreRules] = None) -> "ProjectSnapshot":
        files: Set[str] = set()
        directories: Set[str] = set()
        stack = [(tree, "")]
        while stack:
            node, rel = stack.pop()
            for child in node.children:
                child_rel = posixpath.join(rel, child.name) if rel else child.name
                if child.is_directory:
                    directories.add(child_rel)
                    stack.append((child, child_rel))
                else:
                    files.add(child_rel)
        return cls(tree.path, files, directories, rules)

    @classmethod
    def capture(cls, root: Path, rules: Optional[IgnoreRules] = None) -> "ProjectSnapshot":
        """Scan the project and snapshot it in one step."""
        return cls.from_tree(scan_tree(root, rules), rules)

    def normalize(self, path: str, base: Optional[Path] = None) -> Optional[str]:
        """Turn a reference into a snapshot key.

        Args:
            path: Reference as written (relative or absolute).
            base: Directory relative references are resolved from. Defaults to
                the snapshot root.

        Returns:
            Project-relative posix path, "." for the root, or None when the
            reference points outside the project.
        """
        base = base or self.root
        absolute = os.path.normpath(os.path.join(os.fspath(base), path))
        rel = os.path.relpath(absolute, os.fspath(self.root))
        rel = rel.replace(os.sep, "/")
        if rel == ".." or rel.startswith("../"):
            return None
        return rel

    def contains(self, rel_path: str) -> bool:
        if rel_path in (".", ""):
            return True
        return rel_path in self.files or rel_path in self.directories

    def kind_of(self, rel_path: str) -> Optional[str]:
        if rel_path in self.files:
            return "file"
        if rel_path in self.directories or rel_path in (".", ""):
            return "directory"
        return None

    def resolves(self, reference: str, base: Optional[Path] = None) -> bool:
        key = self.normalize(reference, base)
        if key is None:
            return False
        if self.contains(key):
            return True
        if self.rules.is_ignored(key):
            return (self.root / key).exists()
        return False

    def top_level_directories(self) -> List[str]:
        return sorted(d for d in self.directories if "/" not in d)

    def __len__(self) -> int:
        return len(self.files) + len(self.directories)


def discover_documents(
    root: Path,
    extension: str = DEFAULT_DOCUMENT_EXTENSION,
    rules: Optional[IgnoreRules] = None,
) -> List[DocumentFile]:
    """Find every documentation file under root, sorted by relative path."""
    rules = rules or IgnoreRules()
    root = Path(root).resolve()
    found: List[DocumentFile] = []

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root).replace(os.sep, "/")
        rel_dir = "" if rel_dir == "." else rel_dir
        dirnames[:] = sorted(
            name
            for name in dirnames
            if not rules.should_skip_dir(name, posixpath.join(rel_dir, name) if rel_dir else name)
        )
        for name in sorted(filenames):
            if not name.endswith(extension):
                continue
            rel_path = posixpath.join(rel_dir, name) if rel_dir else name
            if rules.should_skip_file(name, rel_path):
                continue
            full_path = Path(dirpath) / name
            try:
                stats = full_path.stat()
            except OSError as e:
                logger.warning(f"Unable to stat {full_path}: {e}")
                continue
            found.append(
                DocumentFile(
                    path=full_path.resolve(),
                    relative_path=rel_path,
                    size=stats.st_size,
                    modified=stats.st_mtime,
                )
            )

    found.sort(key=lambda doc: doc.relative_path)
    logger.debug(f"Discovered {len(found)} documentation files under {root}")
    return found
