# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for the LMAY validator."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".lmay_validator.yml"


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for the LMAY validator.

    Loads configuration from .lmay_validator.yml with validation and defaults.

    The historical single "strict" switch is split into three independent
    options: ``continue_on_root_error`` (keep validating references and
    hierarchy when the root document is invalid), ``strict_schema`` (reject
    unknown top-level fields) and ``strict_obsolescence`` (any unresolved
    reference makes a stale document obsolete).
    """

    DEFAULTS = {
        "root_file": "root.lmay",
        "document_extension": ".lmay",
        "supported_versions": ["1.0"],
        "check_references": True,
        "check_hierarchy": True,
        "continue_on_root_error": False,
        "strict_schema": False,
        "strict_obsolescence": False,
        "threshold_days": 30,
        "max_hierarchy_depth": 10,
        "flat_hierarchy_threshold": 10,
        "unbalanced_ratio": 3,
        "max_traversal_depth": 256,
        "ignore_patterns": [],
        "suppress_findings": [],
        "suppress_paths": [],
        "file_specific_suppressions": {},
        "watch_debounce_seconds": 1.0,
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
        """
        if config_path is None:
            config_path = Path.cwd() / CONFIG_FILENAME

        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

    @classmethod
    def for_project(cls, project_root: Path) -> "Config":
        """Load the configuration file living at a project's root."""
        return cls(config_path=Path(project_root) / CONFIG_FILENAME)

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = _copy_defaults(self.DEFAULTS)
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                self._config = _copy_defaults(self.DEFAULTS)
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                self._config = _copy_defaults(self.DEFAULTS)
                return

            # Start with defaults and override with loaded values
            self._config = _copy_defaults(self.DEFAULTS)
            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = _copy_defaults(self.DEFAULTS)
        except OSError as e:
            logger.warning(
                f"Unable to read configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = _copy_defaults(self.DEFAULTS)

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with defaults.

        Invalid parameters are logged as warnings and defaults are used.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        default = self.DEFAULTS[key]

        # bool is a subclass of int; keep them apart
        if isinstance(default, bool):
            return isinstance(value, bool)
        if isinstance(default, float):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return False
            return value >= 0
        if isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int):
                return False
            if key == "threshold_days":
                return value >= 0
            return value > 0

        expected_type = type(default)
        if not isinstance(value, expected_type):
            return False

        if key in ("root_file", "document_extension"):
            return bool(value.strip())
        elif key in ("supported_versions", "ignore_patterns", "suppress_findings", "suppress_paths"):
            return all(isinstance(item, str) for item in value)
        elif key == "file_specific_suppressions":
            # Must be a dict with string keys and list of string values
            for filepath, finding_types in value.items():
                if not isinstance(filepath, str):
                    return False
                if not isinstance(finding_types, list):
                    return False
                if not all(isinstance(ft, str) for ft in finding_types):
                    return False
            return True

        return True

    def as_dict(self) -> Dict[str, Any]:
        """Return a copy of the effective configuration."""
        return _copy_defaults(self._config)

    @property
    def root_file(self) -> str:
        """Root documentation file, relative to the project root."""
        value = self._config["root_file"]
        assert isinstance(value, str)
        return value

    @property
    def document_extension(self) -> str:
        """Extension identifying documentation files."""
        value = self._config["document_extension"]
        assert isinstance(value, str)
        return value

    @property
    def supported_versions(self) -> List[str]:
        """LMAY versions the schema validator accepts without warning."""
        value = self._config["supported_versions"]
        assert isinstance(value, list)
        return value

    @property
    def check_references(self) -> bool:
        value = self._config["check_references"]
        assert isinstance(value, bool)
        return value

    @property
    def check_hierarchy(self) -> bool:
        value = self._config["check_hierarchy"]
        assert isinstance(value, bool)
        return value

    @property
    def continue_on_root_error(self) -> bool:
        """Keep validating references and hierarchy when the root document is invalid."""
        value = self._config["continue_on_root_error"]
        assert isinstance(value, bool)
        return value

    @property
    def strict_schema(self) -> bool:
        """Reject unknown top-level fields."""
        value = self._config["strict_schema"]
        assert isinstance(value, bool)
        return value

    @property
    def strict_obsolescence(self) -> bool:
        """Classify a stale document obsolete as soon as one reference is unresolved."""
        value = self._config["strict_obsolescence"]
        assert isinstance(value, bool)
        return value

    @property
    def threshold_days(self) -> int:
        """Age in days after which a document is considered stale."""
        value = self._config["threshold_days"]
        assert isinstance(value, int)
        return value

    @property
    def max_hierarchy_depth(self) -> int:
        value = self._config["max_hierarchy_depth"]
        assert isinstance(value, int)
        return value

    @property
    def flat_hierarchy_threshold(self) -> int:
        value = self._config["flat_hierarchy_threshold"]
        assert isinstance(value, int)
        return value

    @property
    def unbalanced_ratio(self) -> int:
        value = self._config["unbalanced_ratio"]
        assert isinstance(value, int)
        return value

    @property
    def max_traversal_depth(self) -> int:
        """Guard against pathological nested-document chains."""
        value = self._config["max_traversal_depth"]
        assert isinstance(value, int)
        return value

    @property
    def ignore_patterns(self) -> List[str]:
        """Additional glob patterns excluded from document discovery."""
        value = self._config["ignore_patterns"]
        assert isinstance(value, list)
        return value

    @property
    def suppress_findings(self) -> List[str]:
        """Warning types suppressed everywhere."""
        value = self._config["suppress_findings"]
        assert isinstance(value, list)
        return value

    @property
    def suppress_paths(self) -> List[str]:
        """File/directory patterns whose warnings are suppressed."""
        value = self._config["suppress_paths"]
        assert isinstance(value, list)
        return value

    @property
    def file_specific_suppressions(self) -> Dict[str, List[str]]:
        """Per-file warning-type suppressions.

        Returns:
            Dictionary mapping file paths to list of suppressed finding types.
            Example: {"services/root.lmay": ["orphan_document"]}
        """
        value = self._config["file_specific_suppressions"]
        assert isinstance(value, dict)
        return value

    @property
    def watch_debounce_seconds(self) -> float:
        value = self._config["watch_debounce_seconds"]
        assert isinstance(value, (int, float))
        return float(value)


def _copy_defaults(values: Dict[str, Any]) -> Dict[str, Any]:
    copied: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, list):
            copied[key] = list(value)
        elif isinstance(value, dict):
            copied[key] = dict(value)
        else:
            copied[key] = value
    return copied
