# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Documentation drift and obsolescence analysis.

Each documentation file is classified against a live ProjectSnapshot:

- valid: modified within threshold_days. Its references are not inspected.
- obsolete: older than the threshold, has at least one reference, and none of
  them resolve. In strict mode a single unresolved reference is enough.
- outdated: older than the threshold otherwise (some reference resolves, or
  it has no references at all).

References are found with the text scanner from reference_extraction, so a
stale file never goes through a full schema pass. Verdicts are recomputed on
every run.

detect_drift() compares the documented structure with the snapshot:
documented paths that no longer exist, and top-level directories that no
document mentions.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from lmay_validator.models import (
    Document,
    Finding,
    FindingType,
    ObsolescenceVerdict,
    ReferenceKind,
    Severity,
    ValidatorName,
    ValidatorReport,
    VerdictStatus,
)
from lmay_validator.reference_extraction import (
    DOCUMENT_RELATIVE_KINDS,
    TextReference,
    scan_text_references,
)
from lmay_validator.scanner import DocumentFile, ProjectSnapshot

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_THRESHOLD_DAYS = 30


@dataclass
class ObsolescenceReport:
    """Verdicts of one analysis run, bucketed by status."""

    obsolete: List[ObsolescenceVerdict] = field(default_factory=list)
    outdated: List[ObsolescenceVerdict] = field(default_factory=list)
    valid: List[ObsolescenceVerdict] = field(default_factory=list)
    threshold_days: int = DEFAULT_THRESHOLD_DAYS
    strict: bool = False

    def add(self, verdict: ObsolescenceVerdict) -> None:
        if verdict.status == VerdictStatus.OBSOLETE:
            self.obsolete.append(verdict)
        elif verdict.status == VerdictStatus.OUTDATED:
            self.outdated.append(verdict)
        else:
            self.valid.append(verdict)

    @property
    def verdicts(self) -> List[ObsolescenceVerdict]:
        return self.obsolete + self.outdated + self.valid

    def summary(self) -> Dict[str, int]:
        return {
            "total": len(self.verdicts),
            "obsolete": len(self.obsolete),
            "outdated": len(self.outdated),
            "valid": len(self.valid),
        }

    def to_findings(self) -> List[Finding]:
        """Obsolete and outdated verdicts as warnings."""
        findings: List[Finding] = []
        for verdict in self.obsolete:
            findings.append(
                Finding(
                    type=FindingType.OBSOLETE_DOCUMENT,
                    message=f"Obsolete LMAY file ({verdict.age_days} days old): {verdict.reason}",
                    file=verdict.path,
                    severity=Severity.WARNING,
                    validator=ValidatorName.OBSOLESCENCE,
                    suggestion="Regenerate or remove this document",
                    metadata={"age_days": verdict.age_days, "unresolved": list(verdict.unresolved)},
                )
            )
        for verdict in self.outdated:
            findings.append(
                Finding(
                    type=FindingType.OUTDATED_DOCUMENT,
                    message=f"Outdated LMAY file ({verdict.age_days} days old)",
                    file=verdict.path,
                    severity=Severity.WARNING,
                    validator=ValidatorName.OBSOLESCENCE,
                    suggestion="Review the document against the current project layout",
                    metadata={"age_days": verdict.age_days},
                )
            )
        return findings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "threshold_days": self.threshold_days,
            "strict": self.strict,
            "summary": self.summary(),
            "obsolete": [v.to_dict() for v in self.obsolete],
            "outdated": [v.to_dict() for v in self.outdated],
            "valid": [v.to_dict() for v in self.valid],
        }


@dataclass
class CleanResult:
    """Outcome of auto_clean()."""

    dry_run: bool
    removed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"dry_run": self.dry_run, "removed": list(self.removed), "failed": dict(self.failed)}


class ObsolescenceAnalyzer:
    """Classifies documentation files as valid, outdated or obsolete.

    Usage:
        snapshot = ProjectSnapshot.capture(project_root)
        documents = discover_documents(project_root)
        report = ObsolescenceAnalyzer(threshold_days=30).analyze(documents, snapshot)
    """

    def __init__(
        self,
        threshold_days: int = DEFAULT_THRESHOLD_DAYS,
        strict: bool = False,
        clock: Optional[Callable[[], float]] = None,
    ):
        """Initialize the analyzer.

        Args:
            threshold_days: Age in days after which a document is stale.
            strict: Any unresolved reference makes a stale document obsolete.
            clock: Returns the current time in epoch seconds (time.time by
                default).
        """
        self.threshold_days = threshold_days
        self.strict = strict
        self.clock = clock or time.time

    def analyze(
        self, documents: Iterable[DocumentFile], snapshot: ProjectSnapshot
    ) -> ObsolescenceReport:
        report = ObsolescenceReport(threshold_days=self.threshold_days, strict=self.strict)
        now = self.clock()
        for document in documents:
            report.add(self.classify(document, snapshot, now))

        logger.info(
            f"Obsolescence analysis: {len(report.obsolete)} obsolete, "
            f"{len(report.outdated)} outdated, {len(report.valid)} valid"
        )
        return report

    def classify(
        self, document: DocumentFile, snapshot: ProjectSnapshot, now: Optional[float] = None
    ) -> ObsolescenceVerdict:
        now = self.clock() if now is None else now
        age_seconds = max(0.0, now - document.modified)
        age_days = int(round(age_seconds / SECONDS_PER_DAY))

        verdict = ObsolescenceVerdict(
            path=str(document.path),
            relative_path=document.relative_path,
            status=VerdictStatus.VALID,
            age_days=age_days,
            modified=document.modified,
        )
        if age_seconds <= self.threshold_days * SECONDS_PER_DAY:
            return verdict

        references = self._read_references(document.path)
        unresolved = [
            ref.value for ref in references if not self._resolves(ref, document.path, snapshot)
        ]
        verdict.references = [ref.value for ref in references]
        verdict.unresolved = unresolved

        none_resolve = bool(references) and len(unresolved) == len(references)
        if none_resolve or (self.strict and unresolved):
            verdict.status = VerdictStatus.OBSOLETE
            verdict.reason = f"References non-existent files: {', '.join(unresolved)}"
        else:
            verdict.status = VerdictStatus.OUTDATED
        return verdict

    def _read_references(self, path: Path) -> List[TextReference]:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Unable to read {path} for obsolescence analysis: {e}")
            return []
        return scan_text_references(text)

    def _resolves(self, reference: TextReference, document_path: Path, snapshot: ProjectSnapshot) -> bool:
        base = document_path.parent if reference.kind in DOCUMENT_RELATIVE_KINDS else snapshot.root
        return snapshot.resolves(reference.value, base)


def auto_clean(verdicts: Iterable[ObsolescenceVerdict], dry_run: bool = True) -> CleanResult:
    """Delete obsolete documentation files.

    Only verdicts with status obsolete are considered. In dry-run mode the
    deletion set is reported and nothing is touched.
    """
    result = CleanResult(dry_run=dry_run)
    for verdict in verdicts:
        if verdict.status != VerdictStatus.OBSOLETE:
            continue
        if dry_run:
            logger.info(f"Would remove obsolete document {verdict.path}")
            result.removed.append(verdict.path)
            continue
        try:
            Path(verdict.path).unlink()
        except OSError as e:
            logger.error(f"Failed to remove {verdict.path}: {e}")
            result.failed[verdict.path] = str(e)
            continue
        logger.info(f"Removed obsolete document {verdict.path}")
        result.removed.append(verdict.path)
    return result


def detect_drift(documents: Iterable[Document], snapshot: ProjectSnapshot) -> ValidatorReport:
    """Compare documented structure paths with the live snapshot."""
    report = ValidatorReport(ValidatorName.DRIFT)
    documented: Set[str] = set()
    count = 0

    for document in documents:
        count += 1
        for entry in document.structure.values():
            if not entry.path:
                continue
            key = snapshot.normalize(entry.path)
            if key is not None:
                documented.add(key)
            if not snapshot.resolves(entry.path):
                report.warning(
                    FindingType.DOCUMENTED_PATH_MISSING,
                    f"Documented path no longer exists: {entry.path}",
                    str(document.path),
                    path=f"{entry.pointer}/path",
                    metadata={"reference_kind": ReferenceKind.STRUCTURE_PATH},
                )

    for directory in snapshot.top_level_directories():
        covered = any(
            key == directory or key.startswith(f"{directory}/") for key in documented
        )
        if not covered:
            report.warning(
                FindingType.UNDOCUMENTED_DIRECTORY,
                f"Directory not covered by any LMAY document: {directory}",
                str(snapshot.root),
                suggestion=f"Add a structure entry for {directory}",
                metadata={"directory": directory},
            )

    report.files_validated = count
    return report
