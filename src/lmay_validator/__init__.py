# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""LMAY documentation validator and drift detector."""

from .config import Config, ConfigurationError
from .finding_suppression import FindingSuppressionManager
from .hierarchy_validator import HierarchyValidator
from .loader import DocumentCache, DocumentLoader, DocumentLoadError
from .models import Document, Finding, FindingType, Severity, ValidatorName, ValidatorReport
from .obsolescence import ObsolescenceAnalyzer, ObsolescenceReport, auto_clean, detect_drift
from .reference_validator import ReferenceValidator
from .report_formatter import ReportFormatter
from .scanner import ProjectSnapshot, discover_documents, scan_tree
from .schema_validator import SchemaValidator
from .validator import LmayValidator, ValidationReport, ValidationSession, ValidatorOptions

__version__ = "1.0.0"

__all__ = [
    "Config",
    "ConfigurationError",
    "Document",
    "DocumentCache",
    "DocumentLoader",
    "DocumentLoadError",
    "Finding",
    "FindingSuppressionManager",
    "FindingType",
    "HierarchyValidator",
    "LmayValidator",
    "ObsolescenceAnalyzer",
    "ObsolescenceReport",
    "ProjectSnapshot",
    "ReferenceValidator",
    "ReportFormatter",
    "SchemaValidator",
    "Severity",
    "ValidationReport",
    "ValidationSession",
    "ValidatorName",
    "ValidatorOptions",
    "ValidatorReport",
    "auto_clean",
    "detect_drift",
    "discover_documents",
    "scan_tree",
]
