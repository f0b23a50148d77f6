# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for filesystem scanning, snapshots and document discovery."""

from pathlib import Path

import pytest

from lmay_validator.scanner import IgnoreRules, ProjectSnapshot, discover_documents, scan_tree


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Small project with source, docs and directories discovery must skip."""
    for rel in [
        "root.lmay",
        "README.md",
        ".env",
        "src/main.py",
        "src/src.lmay",
        "src/api/handlers.py",
        "docs/guide.md",
        "node_modules/left-pad/index.js",
        "node_modules/left-pad/pkg.lmay",
        ".git/HEAD",
        "dist/bundle.js",
        "billing.egg-info/PKG-INFO",
    ]:
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x")
    return tmp_path


class TestIgnoreRules:
    def test_always_ignored_directories(self):
        rules = IgnoreRules()

        assert rules.should_skip_dir("node_modules")
        assert rules.should_skip_dir("__pycache__")
        assert rules.should_skip_dir("billing.egg-info")
        assert rules.should_skip_dir(".idea")
        assert not rules.should_skip_dir("src")

    def test_hidden_files(self):
        assert IgnoreRules().should_skip_file(".env")
        assert not IgnoreRules(skip_hidden=False).should_skip_file(".env")

    def test_user_patterns_match_path_or_name(self):
        rules = IgnoreRules(user_patterns=["docs/archive*", "*.bak"])

        assert rules.should_skip_dir("archive", "docs/archive")
        assert rules.should_skip_file("old.bak", "src/old.bak")
        assert not rules.should_skip_dir("archive", "src/archive")

    def test_is_ignored_checks_every_component(self):
        rules = IgnoreRules()

        assert rules.is_ignored("node_modules/left-pad/index.js")
        assert rules.is_ignored("./dist/bundle.js")
        assert rules.is_ignored("src/.cache")
        assert not rules.is_ignored("src/api/handlers.py")
        assert not rules.is_ignored(".")


class TestScanTree:
    def test_tree_skips_ignored_entries(self, project):
        tree = scan_tree(project)

        names = [child.name for child in tree.children]
        assert names == ["README.md", "docs", "root.lmay", "src"]
        assert tree.type == "directory"
        assert tree.path == project.resolve()

    def test_nested_children(self, project):
        tree = scan_tree(project)

        src = next(child for child in tree.children if child.name == "src")
        assert src.is_directory
        assert [child.name for child in src.children] == ["api", "main.py", "src.lmay"]
        api = src.children[0]
        assert [(c.name, c.type) for c in api.children] == [("handlers.py", "file")]

    def test_deep_tree(self, tmp_path):
        """Test that very deep trees are walked without recursion."""
        current = tmp_path
        for i in range(60):
            current = current / f"d{i}"
        current.mkdir(parents=True)
        (current / "leaf.txt").write_text("x")

        snapshot = ProjectSnapshot.capture(tmp_path)

        assert any(path.endswith("d59/leaf.txt") for path in snapshot.files)


class TestProjectSnapshot:
    def test_from_tree_collects_relative_paths(self, project):
        snapshot = ProjectSnapshot.from_tree(scan_tree(project))

        assert snapshot.files == {
            "root.lmay",
            "README.md",
            "src/main.py",
            "src/src.lmay",
            "src/api/handlers.py",
            "docs/guide.md",
        }
        assert snapshot.directories == {"src", "src/api", "docs"}
        assert len(snapshot) == 9

    def test_kind_of(self, project):
        snapshot = ProjectSnapshot.capture(project)

        assert snapshot.kind_of("src") == "directory"
        assert snapshot.kind_of("src/main.py") == "file"
        assert snapshot.kind_of(".") == "directory"
        assert snapshot.kind_of("missing") is None

    def test_normalize(self, project):
        snapshot = ProjectSnapshot.capture(project)

        assert snapshot.normalize("./src/../docs/") == "docs"
        assert snapshot.normalize("api", base=project / "src") == "src/api"
        assert snapshot.normalize(".") == "."
        assert snapshot.normalize("../elsewhere") is None

    def test_resolves(self, project):
        snapshot = ProjectSnapshot.capture(project)

        assert snapshot.resolves("src/api")
        assert snapshot.resolves("src/main.py")
        assert snapshot.resolves("../root.lmay", base=project / "src")
        assert not snapshot.resolves("lib")
        assert not snapshot.resolves("../outside")

    def test_ignored_paths_checked_on_disk(self, project):
        """Test that references into skipped directories still resolve."""
        snapshot = ProjectSnapshot.capture(project)

        assert snapshot.resolves("dist")
        assert snapshot.resolves("dist/bundle.js")
        assert not snapshot.resolves("dist/missing.js")

    def test_top_level_directories(self, project):
        snapshot = ProjectSnapshot.capture(project)

        assert snapshot.top_level_directories() == ["docs", "src"]


class TestDiscoverDocuments:
    def test_finds_documents_sorted(self, project):
        documents = discover_documents(project)

        assert [doc.relative_path for doc in documents] == ["root.lmay", "src/src.lmay"]
        assert documents[0].path == (project / "root.lmay").resolve()
        assert documents[0].size == 1
        assert documents[0].modified > 0

    def test_custom_extension(self, project):
        (project / "docs" / "guide.lmay.yml").write_text("x")

        documents = discover_documents(project, extension=".lmay.yml")

        assert [doc.relative_path for doc in documents] == ["docs/guide.lmay.yml"]

    def test_user_ignore_patterns(self, project):
        rules = IgnoreRules(user_patterns=["src"])

        documents = discover_documents(project, rules=rules)

        assert [doc.relative_path for doc in documents] == ["root.lmay"]
