# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for core data models."""

from pathlib import Path

import pytest

from lmay_validator.models import (
    Document,
    DocumentShapeError,
    Finding,
    FindingType,
    HierarchyNode,
    ObsolescenceVerdict,
    Severity,
    ValidatorName,
    ValidatorReport,
    VerdictStatus,
)


class TestFinding:
    """Tests for Finding."""

    def test_to_dict_omits_unset_fields(self):
        """Test that optional fields only appear when set."""
        finding = Finding(
            type=FindingType.ORPHAN_DOCUMENT,
            message="Orphan LMAY file (not referenced): stray.lmay",
            file="/project/stray.lmay",
            severity=Severity.WARNING,
            validator=ValidatorName.REFERENCES,
        )

        data = finding.to_dict()

        assert data == {
            "type": "orphan_document",
            "message": "Orphan LMAY file (not referenced): stray.lmay",
            "file": "/project/stray.lmay",
            "severity": "warning",
            "validator": "references",
        }

    def test_from_dict_restores_location_and_cycle(self):
        """Test deserialization of a circular reference finding."""
        data = {
            "type": "circular_reference",
            "message": "Circular reference detected: a.lmay -> b.lmay -> a.lmay",
            "file": "/project/b.lmay",
            "validator": "references",
            "path": "/structure/a/lmay_file",
            "cycle": ["/project/a.lmay", "/project/b.lmay", "/project/a.lmay"],
        }

        finding = Finding.from_dict(data)

        assert finding.severity == Severity.ERROR
        assert finding.is_error
        assert finding.path == "/structure/a/lmay_file"
        assert finding.cycle == ["/project/a.lmay", "/project/b.lmay", "/project/a.lmay"]
        assert finding.to_dict() == {**data, "severity": "error"}

    def test_identity_ignores_message(self):
        first = Finding(type="x", message="one", file="/a", line=3)
        second = Finding(type="x", message="two", file="/a", line=3)

        assert first.identity() == second.identity()


class TestValidatorReport:
    """Tests for ValidatorReport accumulation."""

    def test_add_routes_by_severity(self):
        """Test that add() files findings under errors or warnings."""
        report = ValidatorReport(ValidatorName.SCHEMA)
        report.add(Finding(type="invalid_type", message="m", file="/a"))
        report.add(Finding(type="no_entry_points", message="m", file="/a", severity="warning"))

        assert len(report.errors) == 1
        assert len(report.warnings) == 1
        assert report.errors[0].validator == "schema"
        assert not report.valid

    def test_add_keeps_existing_validator_tag(self):
        report = ValidatorReport(ValidatorName.REFERENCES)
        report.add(Finding(type="file_not_found", message="m", file="/a", validator="yaml"))

        assert report.errors[0].validator == "yaml"

    def test_warnings_do_not_invalidate(self):
        report = ValidatorReport(ValidatorName.YAML)
        report.warning(FindingType.TAB_CHARACTER, "Tab character found", "/a", line=1)

        assert report.valid
        assert report.summary() == {"error_count": 0, "warning_count": 1, "valid": True}

    def test_extend_sums_files_validated(self):
        first = ValidatorReport(ValidatorName.YAML)
        first.files_validated = 2
        second = ValidatorReport(ValidatorName.YAML)
        second.files_validated = 1
        second.error(FindingType.EMPTY_FILE, "The LMAY file is empty", "/a")

        first.extend(second)

        assert first.files_validated == 3
        assert len(first.errors) == 1


class TestDocument:
    """Tests for Document.from_mapping()."""

    def test_typed_sections(self):
        """Test that every section is turned into typed attributes."""
        data = {
            "lmay_version": 1.0,
            "project": {
                "name": "billing",
                "version": "2.1.0",
                "languages": ["python"],
                "frameworks": ["django"],
            },
            "architecture": {
                "pattern": "Layered",
                "entry_points": [{"file": "src/main.py", "type": "cli"}, "src/worker.py"],
            },
            "structure": {
                "src": {"path": "src", "type": "directory", "lmay_file": "src/src.lmay"},
                "README.md": {"path": "README.md", "type": "file", "file_count": 1},
            },
            "dependencies": {
                "external": [{"name": "requests", "version": "2.31", "type": "pypi"}],
                "internal": [{"path": "lib/shared"}, "lib/core"],
            },
            "hierarchy": {"depth": 0},
        }

        document = Document.from_mapping(Path("/project/root.lmay"), data)

        assert document.lmay_version == "1.0"
        assert document.project.languages == frozenset({"python"})
        assert [ep.file for ep in document.architecture.entry_points] == [
            "src/main.py",
            "src/worker.py",
        ]
        assert document.architecture.entry_points[1].pointer == "/architecture/entry_points/1"
        assert document.structure["src"].lmay_file == "src/src.lmay"
        assert document.structure["README.md"].kind == "file"
        assert document.structure["README.md"].file_count == 1
        assert [dep.path for dep in document.internal_dependencies] == ["lib/shared", "lib/core"]
        assert document.external_dependencies[0].ecosystem == "pypi"
        assert document.hierarchy.depth == 0
        assert document.hierarchy.parent is None
        assert [entry.name for entry in document.nested_links()] == ["src"]
        assert document.directory == Path("/project")

    def test_missing_sections_are_empty(self):
        document = Document.from_mapping(Path("/p/x.lmay"), {"lmay_version": "1.0"})

        assert document.structure == {}
        assert document.architecture.entry_points == ()
        assert document.hierarchy is None
        assert document.project.name is None

    def test_structure_pointer_escapes_slash(self):
        data = {"structure": {"docs/api": {"path": "docs/api"}}}

        document = Document.from_mapping(Path("/p/x.lmay"), data)

        assert document.structure["docs/api"].pointer == "/structure/docs~1api"

    def test_non_mapping_root_rejected(self):
        with pytest.raises(DocumentShapeError):
            Document.from_mapping(Path("/p/x.lmay"), ["not", "a", "mapping"])

    def test_wrong_section_shape_reports_pointer(self):
        """Test that a list where a mapping belongs names the offending section."""
        with pytest.raises(DocumentShapeError) as exc_info:
            Document.from_mapping(Path("/p/x.lmay"), {"structure": ["src", "docs"]})

        assert exc_info.value.pointer == "/structure"

    def test_non_integer_depth_ignored(self):
        document = Document.from_mapping(Path("/p/x.lmay"), {"hierarchy": {"depth": "two"}})

        assert document.hierarchy is not None
        assert document.hierarchy.depth is None


class TestHierarchyNode:
    def test_iter_nodes_is_pre_order(self):
        """Test that iter_nodes() visits parents before children, left to right."""

        def node(name: str, depth: int) -> HierarchyNode:
            document = Document.from_mapping(Path(f"/p/{name}.lmay"), {"lmay_version": "1.0"})
            return HierarchyNode(document=document, depth=depth)

        root = node("root", 0)
        a, b = node("a", 1), node("b", 1)
        a1 = node("a1", 2)
        root.children = [a, b]
        a.children = [a1]

        names = [n.file.stem for n in root.iter_nodes()]

        assert names == ["root", "a", "a1", "b"]


class TestObsolescenceVerdict:
    def test_round_trip(self):
        verdict = ObsolescenceVerdict(
            path="/project/old.lmay",
            relative_path="old.lmay",
            status=VerdictStatus.OBSOLETE,
            age_days=45,
            modified=1700000000.0,
            reason="References non-existent files: src",
            references=["src"],
            unresolved=["src"],
        )

        assert ObsolescenceVerdict.from_dict(verdict.to_dict()) == verdict

    def test_to_dict_omits_empty_fields(self):
        verdict = ObsolescenceVerdict(
            path="/project/new.lmay",
            relative_path="new.lmay",
            status=VerdictStatus.VALID,
            age_days=1,
            modified=1700000000.0,
        )

        data = verdict.to_dict()

        assert "reason" not in data
        assert "references" not in data
        assert "unresolved" not in data
