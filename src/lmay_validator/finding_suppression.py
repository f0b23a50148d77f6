# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Warning suppression configuration and filtering.

Suppression rules, most specific first:
1. File-specific finding types (file_specific_suppressions)
2. Global finding types (suppress_findings)
3. Exact document paths (suppress_paths without wildcards)
4. Glob patterns over project-relative paths (suppress_paths with
   wildcards; ``**`` spans directories)

Only warnings are ever suppressed. Errors decide the run's validity and pass
through unchanged whatever the configuration says.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Pattern, Set

from lmay_validator.models import Finding, FindingType, Severity

logger = logging.getLogger(__name__)


def _known_finding_types() -> Set[str]:
    return {
        value
        for name, value in vars(FindingType).items()
        if name.isupper() and isinstance(value, str)
    }


KNOWN_FINDING_TYPES: Set[str] = _known_finding_types()

_GLOB_CHARS = ("*", "?", "[")


def _is_glob(pattern: str) -> bool:
    return any(char in pattern for char in _GLOB_CHARS)


def _compile_glob(pattern: str) -> Pattern[str]:
    """Translate a gitignore-style glob into an anchored regex.

    ``**/`` matches zero or more directories, ``**`` at the end matches
    everything below, and single ``*`` stays within one path segment.
    """
    pattern = pattern.replace("\\", "/")
    parts: List[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        elif pattern[i] == "[" and "]" in pattern[i + 1 :]:
            end = pattern.index("]", i + 1)
            body = pattern[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            parts.append(f"[{body}]")
            i = end + 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(parts) + "$", re.DOTALL)


class FindingSuppressionManager:
    """Decides which warnings the configuration silences.

    Usage:
        manager = FindingSuppressionManager.from_config(config, project_root)
        warnings = manager.filter_findings(report.warnings)
    """

    def __init__(
        self,
        suppress_findings: Optional[Iterable[str]] = None,
        suppress_paths: Optional[Iterable[str]] = None,
        file_specific_suppressions: Optional[Dict[str, List[str]]] = None,
        project_root: Optional[Path] = None,
    ) -> None:
        self.project_root = (project_root or Path.cwd()).resolve()
        self.suppressed_types: Set[str] = self._validated_types(
            suppress_findings or [], "suppress_findings"
        )

        self.exact_paths: Set[str] = set()
        self.glob_patterns: List[Pattern[str]] = []
        for pattern in suppress_paths or []:
            if _is_glob(pattern):
                self.glob_patterns.append(_compile_glob(pattern))
            else:
                self.exact_paths.add(pattern.replace("\\", "/").rstrip("/"))

        self.file_specific: Dict[str, Set[str]] = {}
        for file, types in (file_specific_suppressions or {}).items():
            if not isinstance(types, list):
                logger.warning(
                    f"Invalid suppression config for '{file}': expected a list of finding "
                    f"types, got {type(types).__name__}, ignoring"
                )
                continue
            valid = self._validated_types(types, f"file_specific_suppressions[{file}]")
            if valid:
                self.file_specific[file.replace("\\", "/")] = valid

        if self.suppressed_types or self.exact_paths or self.glob_patterns or self.file_specific:
            logger.debug(
                f"Suppression configured: {len(self.suppressed_types)} types, "
                f"{len(self.exact_paths) + len(self.glob_patterns)} path rules, "
                f"{len(self.file_specific)} file-specific rules"
            )

    @staticmethod
    def _validated_types(types: Iterable[str], source: str) -> Set[str]:
        valid: Set[str] = set()
        for finding_type in types:
            if finding_type not in KNOWN_FINDING_TYPES:
                logger.warning(f"Unknown finding type '{finding_type}' in {source}, ignoring")
                continue
            valid.add(finding_type)
        return valid

    @classmethod
    def from_config(cls, config: Any, project_root: Optional[Path] = None) -> "FindingSuppressionManager":
        return cls(
            suppress_findings=config.suppress_findings,
            suppress_paths=config.suppress_paths,
            file_specific_suppressions=config.file_specific_suppressions,
            project_root=project_root,
        )

    def _relative(self, file: str) -> str:
        path = Path(file)
        if not path.is_absolute():
            return file.replace("\\", "/")
        try:
            return path.resolve().relative_to(self.project_root).as_posix()
        except ValueError:
            return path.as_posix()

    def get_suppression_reason(self, finding: Finding) -> Optional[str]:
        """Why a finding is suppressed, or None when it is kept."""
        if finding.severity != Severity.WARNING:
            return None

        relative = self._relative(finding.file)
        candidates = (finding.file.replace("\\", "/"), relative)

        for candidate in candidates:
            if finding.type in self.file_specific.get(candidate, ()):
                return f"File-specific suppression for {finding.type}"
        if finding.type in self.suppressed_types:
            return f"Global suppression for {finding.type}"
        for candidate in candidates:
            if candidate in self.exact_paths:
                return f"Path suppression for {candidate}"
        for pattern in self.glob_patterns:
            if pattern.match(relative):
                return f"Pattern suppression ({pattern.pattern})"
        return None

    def should_suppress(self, finding: Finding) -> bool:
        reason = self.get_suppression_reason(finding)
        if reason:
            logger.debug(f"Suppressed {finding.type} in {finding.file}: {reason}")
        return reason is not None

    def filter_findings(self, findings: List[Finding]) -> List[Finding]:
        return [finding for finding in findings if not self.should_suppress(finding)]
