# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""LmayValidator - orchestration of the validation passes.

Pipeline for a project:
1. Root document: load, text lint, schema (stop here when the root has
   errors, unless continue_on_root_error)
2. Reference validation over the whole nested-document graph
3. Hierarchy validation over an independently built tree (skipped when the
   root document cannot be loaded)

All passes share one ValidationSession, whose DocumentCache guarantees each
file is read at most once per run. A new run (for example a watch-mode
re-validation) starts a new session, so edits on disk are always seen.

Findings are aggregated into a ValidationReport. The per-validator summary is
derived from the findings themselves, so warning suppression keeps the counts
consistent.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from lmay_validator.config import Config
from lmay_validator.finding_suppression import FindingSuppressionManager
from lmay_validator.hierarchy_validator import HierarchyValidator
from lmay_validator.loader import DocumentCache, DocumentLoader, DocumentLoadError, canonical_path
from lmay_validator.models import Finding, ValidatorName, ValidatorReport
from lmay_validator.obsolescence import ObsolescenceAnalyzer, ObsolescenceReport, detect_drift
from lmay_validator.reference_validator import ReferenceValidator
from lmay_validator.scanner import IgnoreRules, ProjectSnapshot, discover_documents
from lmay_validator.schema_validator import SchemaValidator
from lmay_validator.yaml_lint import YamlLinter

logger = logging.getLogger(__name__)


@dataclass
class ValidatorOptions:
    """Options of one validator instance.

    Built from a Config with from_config(); CLI flags arrive as overrides.
    """

    root_file: str = "root.lmay"
    document_extension: str = ".lmay"
    supported_versions: Tuple[str, ...] = ("1.0",)
    check_references: bool = True
    check_hierarchy: bool = True
    continue_on_root_error: bool = False
    strict_schema: bool = False
    strict_obsolescence: bool = False
    threshold_days: int = 30
    max_hierarchy_depth: int = 10
    flat_hierarchy_threshold: int = 10
    unbalanced_ratio: int = 3
    max_traversal_depth: int = 256
    ignore_patterns: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: Config, **overrides: Any) -> "ValidatorOptions":
        """Build options from config, then apply non-None overrides."""
        values: Dict[str, Any] = {
            "root_file": config.root_file,
            "document_extension": config.document_extension,
            "supported_versions": tuple(config.supported_versions),
            "check_references": config.check_references,
            "check_hierarchy": config.check_hierarchy,
            "continue_on_root_error": config.continue_on_root_error,
            "strict_schema": config.strict_schema,
            "strict_obsolescence": config.strict_obsolescence,
            "threshold_days": config.threshold_days,
            "max_hierarchy_depth": config.max_hierarchy_depth,
            "flat_hierarchy_threshold": config.flat_hierarchy_threshold,
            "unbalanced_ratio": config.unbalanced_ratio,
            "max_traversal_depth": config.max_traversal_depth,
            "ignore_patterns": list(config.ignore_patterns),
        }
        for key, value in overrides.items():
            if key not in values:
                raise TypeError(f"Unknown validator option: {key}")
            if value is not None:
                values[key] = value
        return cls(**values)

    def ignore_rules(self) -> IgnoreRules:
        return IgnoreRules(self.ignore_patterns)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["supported_versions"] = list(self.supported_versions)
        return result


class ValidationSession:
    """State of one validation run: the loader and its document cache."""

    def __init__(self) -> None:
        self.cache = DocumentCache()
        self.loader = DocumentLoader(self.cache)


class ValidationReport:
    """Aggregated findings of one validation run.

    Usage:
        report = validator.validate_project(Path("."))
        if not report.valid:
            for error in report.errors:
                print(error.message)
    """

    def __init__(self) -> None:
        self.errors: List[Finding] = []
        self.warnings: List[Finding] = []
        self.validators: List[str] = []
        self.files_validated: Dict[str, int] = {}

    def merge(self, report: ValidatorReport) -> None:
        """Append one validator's findings."""
        if report.validator not in self.validators:
            self.validators.append(report.validator)
        self.errors.extend(report.errors)
        self.warnings.extend(report.warnings)
        self.files_validated[report.validator] = (
            self.files_validated.get(report.validator, 0) + report.files_validated
        )

    def extend(self, other: "ValidationReport") -> None:
        for validator in other.validators:
            if validator not in self.validators:
                self.validators.append(validator)
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        for validator, count in other.files_validated.items():
            self.files_validated[validator] = self.files_validated.get(validator, 0) + count

    @property
    def valid(self) -> bool:
        return not self.errors

    def apply_suppression(self, manager: FindingSuppressionManager) -> int:
        """Drop suppressed warnings. Errors are never suppressed.

        Returns:
            Number of warnings removed.
        """
        before = len(self.warnings)
        self.warnings = manager.filter_findings(self.warnings)
        removed = before - len(self.warnings)
        if removed:
            logger.debug(f"Suppressed {removed} warnings")
        return removed

    @property
    def summary(self) -> Dict[str, Dict[str, Any]]:
        result: Dict[str, Dict[str, Any]] = {}
        for validator in self.validators:
            errors = sum(1 for f in self.errors if f.validator == validator)
            warnings = sum(1 for f in self.warnings if f.validator == validator)
            result[validator] = {
                "error_count": errors,
                "warning_count": warnings,
                "valid": errors == 0,
            }
        result["total"] = {
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "valid": self.valid,
        }
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [f.to_dict() for f in self.errors],
            "warnings": [f.to_dict() for f in self.warnings],
            "summary": self.summary,
        }

    def detailed(self, options: Optional[ValidatorOptions] = None) -> Dict[str, Any]:
        """to_dict() plus run metadata."""
        from lmay_validator import __version__

        result = self.to_dict()
        result["timestamp"] = datetime.now(timezone.utc).isoformat()
        result["validator_version"] = __version__
        result["options"] = options.to_dict() if options is not None else {}
        return result

    def __repr__(self) -> str:
        return (
            f"ValidationReport(valid={self.valid}, errors={len(self.errors)}, "
            f"warnings={len(self.warnings)})"
        )


@dataclass
class BatchReport:
    """Per-file reports of a batch run."""

    results: Dict[str, ValidationReport] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return all(report.valid for report in self.results.values())

    def combined(self) -> ValidationReport:
        combined = ValidationReport()
        for report in self.results.values():
            combined.extend(report)
        return combined

    def summary(self) -> Dict[str, int]:
        valid_files = sum(1 for report in self.results.values() if report.valid)
        return {
            "total_files": len(self.results),
            "valid_files": valid_files,
            "invalid_files": len(self.results) - valid_files,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "summary": self.summary(),
            "files": {path: report.to_dict() for path, report in self.results.items()},
        }


class LmayValidator:
    """Runs the validation passes and aggregates their findings.

    Usage:
        validator = LmayValidator(ValidatorOptions.from_config(Config()))
        report = validator.validate_project(Path("/project"))
        print(report.summary["total"])
    """

    def __init__(
        self,
        options: Optional[ValidatorOptions] = None,
        suppression: Optional[FindingSuppressionManager] = None,
    ):
        self.options = options or ValidatorOptions()
        self.suppression = suppression
        self.linter = YamlLinter()
        self.schema_validator = SchemaValidator(
            strict=self.options.strict_schema,
            supported_versions=self.options.supported_versions,
        )

    @classmethod
    def from_config(
        cls, config: Config, project_root: Optional[Path] = None, **overrides: Any
    ) -> "LmayValidator":
        """Build a validator with options and suppression taken from config."""
        return cls(
            ValidatorOptions.from_config(config, **overrides),
            FindingSuppressionManager.from_config(config, project_root),
        )

    def new_session(self) -> ValidationSession:
        return ValidationSession()

    def validate_file(
        self, path: Path, session: Optional[ValidationSession] = None
    ) -> ValidationReport:
        """Text lint and schema-validate one document."""
        session = session or self.new_session()
        report = ValidationReport()
        self._validate_document(canonical_path(path), session, report)
        return self._finalize(report)

    def validate_project(
        self,
        project_root: Path,
        root_file: Optional[str] = None,
        session: Optional[ValidationSession] = None,
    ) -> ValidationReport:
        """Validate the root document, then references and hierarchy."""
        session = session or self.new_session()
        root_file = root_file or self.options.root_file
        project_root = canonical_path(project_root)
        root_path = canonical_path(project_root / root_file)
        logger.info(f"Validating LMAY project {project_root}")

        report = ValidationReport()
        root_valid = self._validate_document(root_path, session, report)
        if not root_valid and not self.options.continue_on_root_error:
            logger.info(f"Root document {root_path} is invalid, stopping validation")
            return self._finalize(report)
        root_loaded = session.loader.try_load(root_path) is not None

        if self.options.check_references:
            references = ReferenceValidator(
                loader=session.loader,
                extension=self.options.document_extension,
                ignore_rules=self.options.ignore_rules(),
                max_traversal_depth=self.options.max_traversal_depth,
                continue_on_root_error=self.options.continue_on_root_error,
            )
            report.merge(
                references.validate_project(
                    project_root, root_file, root_reported=not root_valid
                )
            )

        if self.options.check_hierarchy and not root_loaded:
            logger.debug(f"Root document {root_path} failed to load, skipping hierarchy checks")
        elif self.options.check_hierarchy:
            hierarchy = HierarchyValidator(
                loader=session.loader,
                max_hierarchy_depth=self.options.max_hierarchy_depth,
                flat_threshold=self.options.flat_hierarchy_threshold,
                unbalanced_ratio=self.options.unbalanced_ratio,
                max_traversal_depth=self.options.max_traversal_depth,
            )
            report.merge(hierarchy.validate_hierarchy(project_root, root_file))

        logger.debug(f"Project validation read {session.cache.reads} files")
        return self._finalize(report)

    def validate_batch(self, paths: Iterable[Path]) -> BatchReport:
        """Validate each file on its own; one session serves the whole batch."""
        session = self.new_session()
        batch = BatchReport()
        for path in paths:
            batch.results[str(path)] = self.validate_file(Path(path), session)
        return batch

    def analyze_obsolescence(
        self,
        project_root: Path,
        threshold_days: Optional[int] = None,
        strict: Optional[bool] = None,
    ) -> ObsolescenceReport:
        rules = self.options.ignore_rules()
        snapshot = ProjectSnapshot.capture(project_root, rules)
        documents = discover_documents(project_root, self.options.document_extension, rules)
        analyzer = ObsolescenceAnalyzer(
            threshold_days=self.options.threshold_days if threshold_days is None else threshold_days,
            strict=self.options.strict_obsolescence if strict is None else strict,
        )
        return analyzer.analyze(documents, snapshot)

    def detect_drift(
        self, project_root: Path, session: Optional[ValidationSession] = None
    ) -> ValidationReport:
        """Compare every loadable document's structure with the filesystem."""
        session = session or self.new_session()
        rules = self.options.ignore_rules()
        snapshot = ProjectSnapshot.capture(project_root, rules)

        report = ValidationReport()
        load_errors = ValidatorReport(ValidatorName.YAML)
        documents = []
        for document_file in discover_documents(
            project_root, self.options.document_extension, rules
        ):
            try:
                documents.append(session.loader.load(document_file.path))
            except DocumentLoadError as e:
                load_errors.add(e.to_finding())
        if load_errors.errors:
            report.merge(load_errors)
        report.merge(detect_drift(documents, snapshot))
        return self._finalize(report)

    def _validate_document(
        self, path: Path, session: ValidationSession, report: ValidationReport
    ) -> bool:
        """Run lint and schema on one document. Returns True when error-free."""
        yaml_report = ValidatorReport(ValidatorName.YAML)
        try:
            parsed = session.loader.parse(path)
        except DocumentLoadError as e:
            logger.debug(f"Failed to load {path}: {e}")
            yaml_report.add(e.to_finding())
            report.merge(yaml_report)
            return False

        yaml_report.extend(self.linter.lint(parsed.text, str(parsed.path)))
        yaml_report.files_validated = 1
        report.merge(yaml_report)

        schema_report = self.schema_validator.validate(parsed.data, str(parsed.path))
        report.merge(schema_report)
        return yaml_report.valid and schema_report.valid

    def _finalize(self, report: ValidationReport) -> ValidationReport:
        if self.suppression is not None:
            report.apply_suppression(self.suppression)
        return report
