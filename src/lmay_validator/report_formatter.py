# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Rendering of validation reports.

Formats:
- text: human-readable, findings grouped by validator
- json: ValidationReport.to_dict() (or the detailed form with run metadata)
- sarif: SARIF 2.1.0 log with one rule per finding type

SARIF mapping:
- ruleId: finding type
- level: "error" or "warning"
- physicalLocation: file URI, plus line/column when known
- the finding's JSON pointer is kept as a logical location
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from lmay_validator.models import Finding, Severity, ValidatorName
from lmay_validator.obsolescence import ObsolescenceReport
from lmay_validator.validator import BatchReport, ValidationReport, ValidatorOptions

logger = logging.getLogger(__name__)

FORMATS = ("text", "json", "sarif")

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
SARIF_VERSION = "2.1.0"
TOOL_NAME = "lmay-validator"

VALIDATOR_TITLES: Dict[str, str] = {
    ValidatorName.YAML: "YAML",
    ValidatorName.SCHEMA: "Schema",
    ValidatorName.REFERENCES: "References",
    ValidatorName.HIERARCHY: "Hierarchy",
    ValidatorName.OBSOLESCENCE: "Obsolescence",
    ValidatorName.DRIFT: "Drift",
}


class ReportFormatter:
    """Formats ValidationReports for output.

    Usage:
        formatter = ReportFormatter(project_root=Path("."))
        print(formatter.format(report, "sarif"))
    """

    def __init__(self, project_root: Optional[Path] = None) -> None:
        self.project_root = project_root.resolve() if project_root else None

    def format(
        self,
        report: ValidationReport,
        output_format: str = "text",
        options: Optional[ValidatorOptions] = None,
    ) -> str:
        if output_format == "json":
            return self.format_json(report, options)
        if output_format == "sarif":
            return self.format_sarif(report)
        if output_format == "text":
            return self.format_text(report)
        raise ValueError(f"Unknown output format: {output_format}")

    def _display_path(self, file: str) -> str:
        if self.project_root is None:
            return file
        try:
            return Path(file).resolve().relative_to(self.project_root).as_posix()
        except ValueError:
            return file

    def format_finding(self, finding: Finding) -> str:
        """One finding as text.

        Example:
            ERROR src/api.lmay:4:3 /structure/src/path [referenced_path_not_found]
              Referenced path not found: src
              -> Create the directory or fix the path
        """
        label = "ERROR" if finding.severity == Severity.ERROR else "WARNING"
        location = self._display_path(finding.file)
        if finding.line is not None:
            location += f":{finding.line}"
            if finding.column is not None:
                location += f":{finding.column}"
        if finding.path:
            location += f" {finding.path}"

        lines = [f"{label} {location} [{finding.type}]", f"  {finding.message}"]
        if finding.snippet:
            lines.extend(f"    {line}" for line in finding.snippet.split("\n"))
        if finding.suggestion:
            lines.append(f"  -> {finding.suggestion}")
        return "\n".join(lines)

    def format_text(self, report: ValidationReport) -> str:
        sections: List[str] = []
        summary = report.summary

        for validator in report.validators:
            findings = [f for f in report.errors + report.warnings if f.validator == validator]
            counts = summary[validator]
            title = VALIDATOR_TITLES.get(validator, validator)
            header = (
                f"== {title}: {counts['error_count']} errors, "
                f"{counts['warning_count']} warnings =="
            )
            body = [self.format_finding(f) for f in findings]
            sections.append("\n".join([header] + body))

        total = summary["total"]
        status = "VALID" if report.valid else "INVALID"
        sections.append(
            f"Result: {status} ({total['error_count']} errors, {total['warning_count']} warnings)"
        )
        return "\n\n".join(sections)

    def format_json(
        self, report: ValidationReport, options: Optional[ValidatorOptions] = None
    ) -> str:
        data = report.detailed(options) if options is not None else report.to_dict()
        return json.dumps(data, indent=2)

    def format_sarif(self, report: ValidationReport) -> str:
        return json.dumps(self.to_sarif(report), indent=2)

    def to_sarif(self, report: ValidationReport) -> Dict[str, Any]:
        from lmay_validator import __version__

        findings = report.errors + report.warnings
        rules: Dict[str, Dict[str, Any]] = {}
        results: List[Dict[str, Any]] = []

        for finding in findings:
            if finding.type not in rules:
                rules[finding.type] = {
                    "id": finding.type,
                    "name": "".join(part.capitalize() for part in finding.type.split("_")),
                    "shortDescription": {"text": finding.type.replace("_", " ")},
                    "properties": {"validator": finding.validator},
                }
            results.append(self._sarif_result(finding))

        return {
            "$schema": SARIF_SCHEMA,
            "version": SARIF_VERSION,
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": TOOL_NAME,
                            "version": __version__,
                            "rules": list(rules.values()),
                        }
                    },
                    "results": results,
                }
            ],
        }

    def _sarif_result(self, finding: Finding) -> Dict[str, Any]:
        physical: Dict[str, Any] = {"artifactLocation": {"uri": self._artifact_uri(finding.file)}}
        if finding.line is not None:
            region: Dict[str, Any] = {"startLine": finding.line}
            if finding.column is not None:
                region["startColumn"] = finding.column
            physical["region"] = region

        location: Dict[str, Any] = {"physicalLocation": physical}
        if finding.path:
            location["logicalLocations"] = [{"fullyQualifiedName": finding.path}]

        result: Dict[str, Any] = {
            "ruleId": finding.type,
            "level": "error" if finding.severity == Severity.ERROR else "warning",
            "message": {"text": finding.message},
            "locations": [location],
        }
        properties: Dict[str, Any] = {"validator": finding.validator}
        if finding.cycle:
            properties["cycle"] = list(finding.cycle)
        if finding.suggestion:
            properties["suggestion"] = finding.suggestion
        result["properties"] = properties
        return result

    def _artifact_uri(self, file: str) -> str:
        display = self._display_path(file)
        if Path(display).is_absolute():
            return Path(display).as_uri()
        return display


def format_batch_text(batch: BatchReport, formatter: ReportFormatter) -> str:
    parts = []
    for path, report in batch.results.items():
        parts.append(f"### {path}\n{formatter.format_text(report)}")
    summary = batch.summary()
    parts.append(
        f"Batch: {summary['valid_files']}/{summary['total_files']} files valid"
    )
    return "\n\n".join(parts)


def format_obsolescence_text(report: ObsolescenceReport, verbose: bool = False) -> str:
    summary = report.summary()
    lines = [
        f"Obsolescence analysis (threshold {report.threshold_days} days"
        f"{', strict' if report.strict else ''})",
        f"  Total LMAY files: {summary['total']}",
        f"  Obsolete: {summary['obsolete']}",
        f"  Outdated: {summary['outdated']}",
        f"  Valid: {summary['valid']}",
    ]
    if report.obsolete:
        lines.append("")
        lines.append("Obsolete files:")
        for verdict in report.obsolete:
            lines.append(f"  {verdict.relative_path} ({verdict.age_days} days): {verdict.reason}")
    if report.outdated and verbose:
        lines.append("")
        lines.append("Outdated files:")
        for verdict in report.outdated:
            lines.append(f"  {verdict.relative_path} ({verdict.age_days} days)")
    return "\n".join(lines)
