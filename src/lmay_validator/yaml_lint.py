# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Text-level checks on documentation files.

These checks look at the raw YAML text rather than the parsed data, so they
can point at exact lines: tab characters, trailing whitespace, non-ASCII
characters, indentation consistency and key naming conventions. All findings
are warnings.
"""

import logging
import re
from typing import List, Optional

from lmay_validator.models import FindingType, ValidatorName, ValidatorReport

logger = logging.getLogger(__name__)

SNAKE_CASE_KEY = re.compile(r"^[a-z][a-z0-9_]*$")
KEY_PATTERN = re.compile(r"^(?:-\s+)?([^:#'\"{}\[\]]+):(?:\s|$)")
NON_ASCII = re.compile(r"[^\x00-\x7F]")

RECOMMENDED_INDENT = 2
MAX_KEY_LENGTH = 50

# Children of this top-level section are named after directories and files
FREE_FORM_KEY_SECTIONS = {"structure"}


class YamlLinter:
    """Emits style warnings for the raw text of a documentation file."""

    def lint(self, text: str, file_path: str) -> ValidatorReport:
        report = ValidatorReport(ValidatorName.YAML)
        lines = text.split("\n")
        self._check_indentation(lines, file_path, report)
        self._check_characters(lines, file_path, report)
        self._check_keys(lines, file_path, report)
        return report

    def _check_indentation(self, lines: List[str], file_path: str, report: ValidatorReport) -> None:
        expected_indent: Optional[int] = None

        for i, line in enumerate(lines):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue

            indent = len(line) - len(line.lstrip(" "))
            if indent == 0:
                continue
            if expected_indent is None:
                expected_indent = indent
            elif indent % expected_indent != 0:
                report.warning(
                    FindingType.INCONSISTENT_INDENTATION,
                    f"Inconsistent indentation (expected a multiple of {expected_indent})",
                    file_path,
                    line=i + 1,
                    column=1,
                )

        if expected_indent is not None and expected_indent != RECOMMENDED_INDENT:
            report.warning(
                FindingType.NON_STANDARD_INDENTATION,
                f"Non-standard indentation ({expected_indent} spaces, "
                f"recommended: {RECOMMENDED_INDENT})",
                file_path,
            )

    def _check_characters(self, lines: List[str], file_path: str, report: ValidatorReport) -> None:
        for i, line in enumerate(lines):
            tab_column = line.find("\t")
            if tab_column >= 0:
                report.warning(
                    FindingType.TAB_CHARACTER,
                    "Tab character found (use spaces)",
                    file_path,
                    line=i + 1,
                    column=tab_column + 1,
                    suggestion="Replace tabs with spaces",
                )

            if line.strip() and line != line.rstrip(" \t\r"):
                report.warning(
                    FindingType.TRAILING_WHITESPACE,
                    "Trailing whitespace",
                    file_path,
                    line=i + 1,
                    column=len(line.rstrip(" \t\r")) + 1,
                )

            match = NON_ASCII.search(line)
            if match:
                report.warning(
                    FindingType.NON_ASCII_CHARACTERS,
                    "Non-ASCII characters found (may cause tooling issues)",
                    file_path,
                    line=i + 1,
                    column=match.start() + 1,
                )

    def _check_keys(self, lines: List[str], file_path: str, report: ValidatorReport) -> None:
        section: Optional[str] = None
        section_child_indent: Optional[int] = None

        for i, line in enumerate(lines):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue

            indent = len(line) - len(line.lstrip(" "))
            match = KEY_PATTERN.match(stripped)
            if indent == 0:
                section = match.group(1).strip() if match else None
                section_child_indent = None
            if not match:
                continue
            key = match.group(1).strip()

            if indent > 0 and section in FREE_FORM_KEY_SECTIONS:
                if section_child_indent is None:
                    section_child_indent = indent
                if indent == section_child_indent:
                    continue

            if not SNAKE_CASE_KEY.match(key):
                report.warning(
                    FindingType.KEY_NAMING_CONVENTION,
                    f'Key "{key}" does not follow snake_case naming',
                    file_path,
                    line=i + 1,
                    column=indent + 1,
                )

            if len(key) > MAX_KEY_LENGTH:
                report.warning(
                    FindingType.LONG_KEY_NAME,
                    f'Key "{key}" is very long ({len(key)} characters)',
                    file_path,
                    line=i + 1,
                    column=indent + 1,
                )
