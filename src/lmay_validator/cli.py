# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Command-line interface for the LMAY validator.

Commands:
    validate   Validate one document, or a whole project (default)
    batch      Validate several documents independently
    obsolete   Classify documents as valid, outdated or obsolete by age
    drift      Compare documented structure with the filesystem
    watch      Re-validate a project whenever it changes

Exit status is 0 when the run found no errors, 1 otherwise.
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Set

from lmay_validator.config import CONFIG_FILENAME, Config, ConfigurationError
from lmay_validator.file_watcher import DocumentWatcher
from lmay_validator.logging_setup import setup_logging
from lmay_validator.obsolescence import auto_clean
from lmay_validator.report_formatter import (
    FORMATS,
    ReportFormatter,
    format_batch_text,
    format_obsolescence_text,
)
from lmay_validator.validator import LmayValidator

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="lmay-validate",
        description="Validate LMAY documentation and detect documentation drift",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Configuration file. Default: <project>/{CONFIG_FILENAME}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("--log-file", type=Path, default=None, help="Write JSON logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate a document or a project")
    validate.add_argument("file", nargs="?", type=Path, help="Single document to validate")
    validate.add_argument(
        "-p", "--project", type=Path, default=Path("."), help="Project directory. Default: ."
    )
    validate.add_argument("--root-file", default=None, help="Root document relative to project")
    validate.add_argument(
        "--strict",
        action="store_true",
        help="Keep validating references and hierarchy when the root document is invalid",
    )
    validate.add_argument(
        "--strict-schema", action="store_true", help="Reject unknown top-level fields"
    )
    validate.add_argument(
        "--no-references", action="store_true", help="Skip cross-file reference checks"
    )
    validate.add_argument("--no-hierarchy", action="store_true", help="Skip hierarchy checks")
    validate.add_argument(
        "--detailed", action="store_true", help="Include run metadata in JSON output"
    )
    _add_output_arguments(validate, FORMATS)

    batch = subparsers.add_parser("batch", help="Validate several documents")
    batch.add_argument("files", nargs="+", type=Path)
    batch.add_argument("--strict-schema", action="store_true")
    _add_output_arguments(batch, ("text", "json"))

    obsolete = subparsers.add_parser("obsolete", help="Detect stale documents")
    obsolete.add_argument("path", nargs="?", type=Path, default=Path("."))
    obsolete.add_argument("--threshold", type=int, default=None, help="Age threshold in days")
    obsolete.add_argument(
        "--strict",
        action="store_true",
        help="Any unresolved reference makes a stale document obsolete",
    )
    obsolete.add_argument("--auto-clean", action="store_true", help="Delete obsolete documents")
    obsolete.add_argument(
        "--dry-run", action="store_true", help="With --auto-clean, only list what would go"
    )
    obsolete.add_argument("--verbose-list", action="store_true", help="Also list outdated files")
    _add_output_arguments(obsolete, ("text", "json"))

    drift = subparsers.add_parser("drift", help="Compare documentation with the filesystem")
    drift.add_argument("path", nargs="?", type=Path, default=Path("."))
    _add_output_arguments(drift, FORMATS)

    watch = subparsers.add_parser("watch", help="Re-validate on every change")
    watch.add_argument("path", nargs="?", type=Path, default=Path("."))
    watch.add_argument("--debounce", type=float, default=None, help="Seconds to wait for quiet")
    watch.add_argument("-f", "--format", choices=["text", "json"], default="text")

    return parser.parse_args(argv)


def _add_output_arguments(parser: argparse.ArgumentParser, formats: tuple) -> None:
    parser.add_argument("-f", "--format", choices=list(formats), default="text")
    parser.add_argument("-o", "--output", type=Path, default=None, help="Write report to file")


def load_config(config_path: Optional[Path], project_root: Path) -> Config:
    """Load an explicit config file, or the project's own one if present.

    Raises:
        ConfigurationError: If an explicitly requested file does not exist.
    """
    if config_path is not None:
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        return Config(config_path)
    return Config.for_project(project_root)


def _emit(text: str, output: Optional[Path]) -> None:
    if output is None:
        print(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text + "\n", encoding="utf-8")
    logger.info(f"Report written to {output}")


def run_validate(args: argparse.Namespace) -> int:
    project_root = args.project.resolve()
    config = load_config(args.config, project_root)
    validator = LmayValidator.from_config(
        config,
        project_root,
        continue_on_root_error=True if args.strict else None,
        strict_schema=True if args.strict_schema else None,
        check_references=False if args.no_references else None,
        check_hierarchy=False if args.no_hierarchy else None,
    )

    if args.file is not None:
        report = validator.validate_file(args.file)
    else:
        report = validator.validate_project(project_root, args.root_file)

    formatter = ReportFormatter(project_root)
    options = validator.options if args.detailed else None
    _emit(formatter.format(report, args.format, options), args.output)
    return 0 if report.valid else 1


def run_batch(args: argparse.Namespace) -> int:
    config = load_config(args.config, Path.cwd())
    validator = LmayValidator.from_config(
        config, Path.cwd(), strict_schema=True if args.strict_schema else None
    )
    batch = validator.validate_batch(args.files)

    formatter = ReportFormatter(Path.cwd())
    if args.format == "json":
        text = json.dumps(batch.to_dict(), indent=2)
    else:
        text = format_batch_text(batch, formatter)
    _emit(text, args.output)
    return 0 if batch.valid else 1


def run_obsolete(args: argparse.Namespace) -> int:
    project_root = args.path.resolve()
    config = load_config(args.config, project_root)
    validator = LmayValidator.from_config(config, project_root)
    report = validator.analyze_obsolescence(
        project_root,
        threshold_days=args.threshold,
        strict=True if args.strict else None,
    )

    clean = None
    if args.auto_clean and report.obsolete:
        clean = auto_clean(report.obsolete, dry_run=args.dry_run)

    if args.format == "json":
        data = report.to_dict()
        if clean is not None:
            data["clean"] = clean.to_dict()
        text = json.dumps(data, indent=2)
    else:
        text = format_obsolescence_text(report, verbose=args.verbose_list)
        if clean is not None:
            verb = "Would remove" if clean.dry_run else "Removed"
            lines = [f"  {verb}: {path}" for path in clean.removed]
            lines += [f"  Failed: {path} ({error})" for path, error in clean.failed.items()]
            text = "\n".join([text, "", "Auto-clean:"] + lines)
    _emit(text, args.output)
    return 1 if clean is not None and clean.failed else 0


def run_drift(args: argparse.Namespace) -> int:
    project_root = args.path.resolve()
    config = load_config(args.config, project_root)
    validator = LmayValidator.from_config(config, project_root)
    report = validator.detect_drift(project_root)
    _emit(ReportFormatter(project_root).format(report, args.format), args.output)
    return 0 if report.valid else 1


def run_watch(args: argparse.Namespace) -> int:
    project_root = args.path.resolve()
    config = load_config(args.config, project_root)
    validator = LmayValidator.from_config(config, project_root)
    formatter = ReportFormatter(project_root)

    def revalidate(changed: Set[str]) -> None:
        # validate_project() starts a new session, so nothing stale is reused
        report = validator.validate_project(project_root)
        _emit(formatter.format(report, args.format), None)

    revalidate(set())
    debounce = args.debounce if args.debounce is not None else config.watch_debounce_seconds
    watcher = DocumentWatcher(
        project_root,
        on_change=revalidate,
        debounce_seconds=debounce,
        ignore_rules=validator.options.ignore_rules(),
    )
    watcher.start()
    try:
        while watcher.is_running():
            time.sleep(0.5)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping watch mode")
    finally:
        watcher.stop()
    return 0


COMMANDS = {
    "validate": run_validate,
    "batch": run_batch,
    "obsolete": run_obsolete,
    "drift": run_drift,
    "watch": run_watch,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the lmay-validate command."""
    args = parse_args(argv)
    setup_logging(
        log_file=args.log_file,
        log_level=logging.DEBUG if args.verbose else logging.WARNING,
        verbose=args.verbose,
    )

    try:
        return COMMANDS[args.command](args)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"Unexpected error during {args.command}: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
