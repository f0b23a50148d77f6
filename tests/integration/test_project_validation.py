# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests for whole-project validation.

Tests the validator, formatter, obsolescence analysis and watcher working
together on projects written to disk.
"""

import json
import shutil
import threading
from pathlib import Path

import pytest

from lmay_validator.config import Config
from lmay_validator.file_watcher import DocumentWatcher
from lmay_validator.models import FindingType, ValidatorName
from lmay_validator.report_formatter import ReportFormatter
from lmay_validator.scanner import discover_documents
from lmay_validator.validator import LmayValidator

pytestmark = pytest.mark.integration


class TestProjectValidation:
    """Full pipeline over a well-formed project."""

    def test_sample_project_is_clean(self, sample_project: Path) -> None:
        """Test that every pass runs and reports nothing."""
        validator = LmayValidator.from_config(Config.for_project(sample_project), sample_project)
        session = validator.new_session()

        report = validator.validate_project(sample_project, session=session)

        assert report.errors == []
        assert report.warnings == []
        assert report.files_validated[ValidatorName.REFERENCES] == 3
        assert report.files_validated[ValidatorName.HIERARCHY] == 3
        assert session.cache.reads == 3

    def test_every_document_lints_clean(self, sample_project: Path) -> None:
        paths = [doc.path for doc in discover_documents(sample_project)]

        batch = LmayValidator().validate_batch(paths)

        assert batch.summary() == {"total_files": 3, "valid_files": 3, "invalid_files": 0}
        assert batch.combined().warnings == []

    def test_fresh_project_has_no_stale_documents(self, sample_project: Path) -> None:
        report = LmayValidator().analyze_obsolescence(sample_project)

        assert report.summary() == {"total": 3, "obsolete": 0, "outdated": 0, "valid": 3}

    def test_no_drift(self, sample_project: Path) -> None:
        report = LmayValidator().detect_drift(sample_project)

        assert report.errors == []
        assert report.warnings == []
        assert report.files_validated[ValidatorName.DRIFT] == 3


class TestDrift:
    """Project changes that the documentation does not follow."""

    def test_deleted_directory(self, sample_project: Path) -> None:
        """Test that removing a documented directory shows up in every view."""
        shutil.rmtree(sample_project / "src" / "models")
        validator = LmayValidator()

        drift = validator.detect_drift(sample_project)
        report = validator.validate_project(sample_project)

        assert [(f.type, f.path) for f in drift.warnings] == [
            (FindingType.DOCUMENTED_PATH_MISSING, "/structure/models/path")
        ]
        missing = sorted((Path(f.file).name, f.path) for f in report.errors)
        assert missing == [
            ("root.lmay", "/dependencies/internal/0/path"),
            ("src.lmay", "/structure/models/path"),
        ]
        assert {f.type for f in report.errors} == {FindingType.REFERENCED_PATH_NOT_FOUND}

    def test_new_undocumented_directory(self, sample_project: Path) -> None:
        (sample_project / "scripts").mkdir()
        (sample_project / "scripts" / "deploy.sh").write_text("#!/bin/sh\n")

        drift = LmayValidator().detect_drift(sample_project)

        assert [f.metadata["directory"] for f in drift.warnings] == ["scripts"]

    def test_sarif_report(self, sample_project: Path) -> None:
        (sample_project / "src" / "api" / "routes.py").unlink()
        report = LmayValidator().validate_project(sample_project)

        sarif = json.loads(ReportFormatter(sample_project).format(report, "sarif"))

        results = sarif["runs"][0]["results"]
        assert [r["ruleId"] for r in results] == ["referenced_path_not_found"]
        location = results[0]["locations"][0]
        assert location["physicalLocation"]["artifactLocation"]["uri"] == "src/api/api.lmay"
        assert location["logicalLocations"] == [
            {"fullyQualifiedName": "/structure/routes.py/path"}
        ]


class TestCycles:
    def test_cycle_reported_by_both_passes(self, cycle_project: Path) -> None:
        """Test that the reference and hierarchy passes both report the loop."""
        report = LmayValidator().validate_project(cycle_project)

        cycles = [f for f in report.errors if f.type == FindingType.CIRCULAR_REFERENCE]
        assert sorted(f.validator for f in cycles) == [
            ValidatorName.HIERARCHY,
            ValidatorName.REFERENCES,
        ]
        expected = [str(cycle_project / "a.lmay"), str(cycle_project / "b.lmay")]
        expected.append(expected[0])
        for finding in cycles:
            assert finding.cycle == expected
            assert finding.file == str(cycle_project / "b.lmay")

    def test_cycle_text_report(self, cycle_project: Path) -> None:
        report = LmayValidator().validate_project(cycle_project)

        text = ReportFormatter(cycle_project).format(report, "text")

        assert "== References: 1 errors, 0 warnings ==" in text
        assert "== Hierarchy: 1 errors, 0 warnings ==" in text
        assert "Circular reference detected: a.lmay -> b.lmay -> a.lmay" in text


class TestWatchRevalidation:
    """Watcher-driven re-validation sees edits made between runs."""

    def test_flush_revalidates_with_fresh_session(self, sample_project: Path) -> None:
        validator = LmayValidator()
        reports = []

        def revalidate(changed):
            reports.append(validator.validate_project(sample_project))

        watcher = DocumentWatcher(sample_project, on_change=revalidate, debounce_seconds=60)
        revalidate(set())

        api_doc = sample_project / "src" / "api" / "api.lmay"
        api_doc.write_text(api_doc.read_text().replace("depth: 2", "depth: 5"))
        watcher.notify(str(api_doc))
        watcher.flush()

        assert len(reports) == 2
        assert reports[0].valid
        assert [f.type for f in reports[1].errors] == [FindingType.INCORRECT_HIERARCHY_DEPTH]

    @pytest.mark.slow
    def test_observer_triggers_revalidation(self, sample_project: Path) -> None:
        validator = LmayValidator()
        done = threading.Event()
        reports = []

        def revalidate(changed):
            reports.append(validator.validate_project(sample_project))
            done.set()

        watcher = DocumentWatcher(sample_project, on_change=revalidate, debounce_seconds=0.2)
        watcher.start()
        try:
            (sample_project / "tests" / "tests.lmay").write_text(
                'lmay_version: "1.0"\nproject:\n  name: billing-tests\n'
            )
            assert done.wait(timeout=10)
        finally:
            watcher.stop()

        assert [f.type for f in reports[-1].warnings] == [FindingType.ORPHAN_DOCUMENT]
