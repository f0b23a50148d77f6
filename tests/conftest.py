# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for unit tests."""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import yaml


def _write_lmay(path: Path, data: Dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return path


def _document(
    name: str = "billing-service",
    links: Optional[Dict[str, str]] = None,
    paths: Optional[Dict[str, str]] = None,
    depth: Optional[int] = None,
    parent: Optional[str] = None,
    **sections: Any,
) -> Dict[str, Any]:
    """Build the mapping of a small LMAY document.

    Args:
        name: project.name
        links: structure entry name -> lmay_file
        paths: structure entry name -> path
        depth: hierarchy.depth
        parent: hierarchy.parent
        sections: Extra top-level sections, added as-is
    """
    data: Dict[str, Any] = {"lmay_version": "1.0", "project": {"name": name}}
    structure: Dict[str, Any] = {}
    for entry, path in (paths or {}).items():
        structure[entry] = {"path": path}
    for entry, lmay_file in (links or {}).items():
        structure.setdefault(entry, {})["lmay_file"] = lmay_file
    if structure:
        data["structure"] = structure
    hierarchy: Dict[str, Any] = {}
    if depth is not None:
        hierarchy["depth"] = depth
    if parent is not None:
        hierarchy["parent"] = parent
    if hierarchy:
        data["hierarchy"] = hierarchy
    data.update(sections)
    return data


@pytest.fixture
def write_lmay() -> Callable[[Path, Dict[str, Any]], Path]:
    """Write a mapping as a documentation file, creating parent directories."""
    return _write_lmay


@pytest.fixture
def lmay_document() -> Callable[..., Dict[str, Any]]:
    """Builder for small LMAY document mappings."""
    return _document


@pytest.fixture
def link_graph(tmp_path: Path) -> Callable[[Dict[str, List[str]]], Path]:
    """Write one document per node of an adjacency map.

    Node "root" becomes root.lmay; every other node N becomes N.lmay in the
    project root, and each edge is a structure entry linking to the target.
    """

    def build(adjacency: Dict[str, List[str]]) -> Path:
        for node, targets in adjacency.items():
            links = {target: f"{target}.lmay" for target in targets}
            _write_lmay(tmp_path / f"{node}.lmay", _document(name=f"{node}-docs", links=links))
        return tmp_path

    return build


@pytest.fixture
def restore_logging():
    """Remove the handlers setup_logging() installed and reset the root level."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        # pytest's capture handlers are subclasses; leave them alone
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
