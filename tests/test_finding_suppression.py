# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for warning suppression.

Test Coverage:
- Global finding-type suppression
- File-specific finding-type suppression
- Exact path and glob suppression (``**`` spans directories)
- Precedence rules
- Errors are never suppressed
- Configuration validation
"""

from pathlib import Path

import pytest

from lmay_validator.config import Config
from lmay_validator.finding_suppression import (
    KNOWN_FINDING_TYPES,
    FindingSuppressionManager,
    _compile_glob,
)
from lmay_validator.models import Finding, FindingType, Severity


def create_finding(
    finding_type: str = FindingType.ORPHAN_DOCUMENT,
    file: str = "/project/docs/notes.lmay",
    severity: str = Severity.WARNING,
) -> Finding:
    """Helper to create a Finding for testing."""
    return Finding(type=finding_type, message=f"{finding_type} found", file=file, severity=severity)


PROJECT = Path("/project")


class TestSuppressionManagerInit:
    def test_default_initialization(self):
        manager = FindingSuppressionManager(project_root=PROJECT)

        assert manager.suppressed_types == set()
        assert manager.exact_paths == set()
        assert manager.glob_patterns == []
        assert manager.file_specific == {}

    def test_unknown_finding_types_ignored(self, caplog):
        manager = FindingSuppressionManager(
            suppress_findings=["orphan_document", "not_a_finding"], project_root=PROJECT
        )

        assert manager.suppressed_types == {"orphan_document"}
        assert "Unknown finding type 'not_a_finding'" in caplog.text

    def test_invalid_file_specific_entry_ignored(self):
        manager = FindingSuppressionManager(
            file_specific_suppressions={"a.lmay": "orphan_document", "b.lmay": ["orphan_document"]},
            project_root=PROJECT,
        )

        assert manager.file_specific == {"b.lmay": {"orphan_document"}}

    def test_paths_split_into_exact_and_glob(self):
        manager = FindingSuppressionManager(
            suppress_paths=["legacy/old.lmay", "drafts/**", "docs/"], project_root=PROJECT
        )

        assert manager.exact_paths == {"legacy/old.lmay", "docs"}
        assert len(manager.glob_patterns) == 1

    def test_known_types_cover_finding_type_constants(self):
        assert FindingType.ORPHAN_DOCUMENT in KNOWN_FINDING_TYPES
        assert FindingType.UNDOCUMENTED_DIRECTORY in KNOWN_FINDING_TYPES
        assert "ORPHAN_DOCUMENT" not in KNOWN_FINDING_TYPES


class TestShouldSuppress:
    def test_errors_are_never_suppressed(self):
        """Test that every rule kind leaves errors alone."""
        manager = FindingSuppressionManager(
            suppress_findings=["referenced_path_not_found"],
            suppress_paths=["**"],
            file_specific_suppressions={"docs/notes.lmay": ["referenced_path_not_found"]},
            project_root=PROJECT,
        )
        error = create_finding(FindingType.REFERENCED_PATH_NOT_FOUND, severity=Severity.ERROR)

        assert manager.get_suppression_reason(error) is None
        assert not manager.should_suppress(error)

    def test_global_type(self):
        manager = FindingSuppressionManager(
            suppress_findings=["orphan_document"], project_root=PROJECT
        )

        assert manager.should_suppress(create_finding(FindingType.ORPHAN_DOCUMENT))
        assert not manager.should_suppress(create_finding(FindingType.GENERIC_PROJECT_NAME))

    def test_file_specific_type(self):
        manager = FindingSuppressionManager(
            file_specific_suppressions={"docs/notes.lmay": ["orphan_document"]},
            project_root=PROJECT,
        )

        assert manager.should_suppress(create_finding(file="/project/docs/notes.lmay"))
        assert not manager.should_suppress(create_finding(file="/project/docs/other.lmay"))
        assert not manager.should_suppress(
            create_finding(FindingType.NON_SEMVER_VERSION, file="/project/docs/notes.lmay")
        )

    def test_exact_path(self):
        manager = FindingSuppressionManager(
            suppress_paths=["docs/notes.lmay"], project_root=PROJECT
        )

        assert manager.should_suppress(create_finding(FindingType.TAB_CHARACTER))
        assert not manager.should_suppress(create_finding(file="/project/notes.lmay"))

    @pytest.mark.parametrize(
        "pattern, file, expected",
        [
            ("legacy/**", "/project/legacy/a/b.lmay", True),
            ("legacy/**", "/project/src/legacy.lmay", False),
            ("**/drafts/*.lmay", "/project/drafts/x.lmay", True),
            ("**/drafts/*.lmay", "/project/a/drafts/x.lmay", True),
            ("**/drafts/*.lmay", "/project/a/drafts/sub/x.lmay", False),
            ("docs/*.lmay", "/project/docs/notes.lmay", True),
            ("docs/*.lmay", "/project/docs/api/notes.lmay", False),
            ("docs/note?.lmay", "/project/docs/notes.lmay", True),
            ("docs/[!n]*.lmay", "/project/docs/notes.lmay", False),
        ],
    )
    def test_glob_patterns(self, pattern, file, expected):
        manager = FindingSuppressionManager(suppress_paths=[pattern], project_root=PROJECT)

        assert manager.should_suppress(create_finding(file=file)) is expected

    def test_precedence(self):
        """Test that the most specific rule explains the suppression."""
        manager = FindingSuppressionManager(
            suppress_findings=["orphan_document"],
            suppress_paths=["docs/**"],
            file_specific_suppressions={"docs/notes.lmay": ["orphan_document"]},
            project_root=PROJECT,
        )

        file_specific = manager.get_suppression_reason(create_finding())
        global_type = manager.get_suppression_reason(
            create_finding(file="/project/other/notes.lmay")
        )
        by_pattern = manager.get_suppression_reason(create_finding(FindingType.TAB_CHARACTER))

        assert file_specific.startswith("File-specific suppression")
        assert global_type.startswith("Global suppression")
        assert by_pattern.startswith("Pattern suppression")

    def test_relative_finding_paths(self):
        manager = FindingSuppressionManager(
            suppress_paths=["docs/notes.lmay"], project_root=PROJECT
        )

        assert manager.should_suppress(create_finding(file="docs/notes.lmay"))


class TestFilterFindings:
    def test_filter_keeps_errors_and_unmatched(self):
        manager = FindingSuppressionManager(
            suppress_findings=["orphan_document"], project_root=PROJECT
        )
        findings = [
            create_finding(),
            create_finding(FindingType.ROOT_FILE_NOT_FOUND, severity=Severity.ERROR),
            create_finding(FindingType.FLAT_HIERARCHY),
        ]

        kept = manager.filter_findings(findings)

        assert [f.type for f in kept] == ["root_file_not_found", "flat_hierarchy"]

    def test_from_config(self, tmp_path):
        config_path = tmp_path / "config.yml"
        config_path.write_text(
            "suppress_findings:\n  - flat_hierarchy\n"
            "suppress_paths:\n  - vendor_docs/**\n"
            "file_specific_suppressions:\n  root.lmay:\n    - non_semver_version\n"
        )

        manager = FindingSuppressionManager.from_config(Config(config_path), tmp_path)

        assert manager.suppressed_types == {"flat_hierarchy"}
        assert manager.file_specific == {"root.lmay": {"non_semver_version"}}
        assert manager.should_suppress(
            create_finding(FindingType.NON_SEMVER_VERSION, file=str(tmp_path / "root.lmay"))
        )


def test_compile_glob_is_anchored():
    assert _compile_glob("*.lmay").match("root.lmay")
    assert not _compile_glob("*.lmay").match("docs/root.lmay")
    assert not _compile_glob("root.lmay").match("root.lmay.bak")
