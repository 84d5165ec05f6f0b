"""
Templating context logger.

Provides logging interface for the templating context with automatic [template] prefix.
All templating modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from cvbuild.utils.timestamp import format_elapsed

CONTEXT_PREFIX = "[template]"


# Wrapper functions with automatic [template] prefix


def _log_info(message: str) -> None:
    """Log info message with [template] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [template] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [template] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [template] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [template] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level templating-specific logging helpers


def log_schema_loaded(schema) -> None:
    """Log a loaded schema (Schema)."""
    _log_info(f"Loaded schema '{schema.name}' ({len(schema.root.fields)} fields)")
    _log_debug(f"  Source: {schema.source}")
    _log_debug(f"  Fields: {', '.join(schema.field_names)}")
    if schema.records:
        _log_debug(f"  Records: {', '.join(schema.records)}")


def log_document_loaded(document) -> None:
    """Log a loaded document (Document)."""
    _log_info(f"Loaded document '{document.name}' ({document.format})")
    _log_debug(f"  Source: {document.source}")
    _log_debug(f"  Top-level fields: {', '.join(document.field_names)}")


def log_validation_report(document_name: str, report, verbose: bool = False) -> None:
    """
    Log a validation report.

    Errors are always listed (first 10 unless verbose); warnings are listed
    at warning level.

    Args:
        document_name: Document identifier
        report: ValidationReport from validate_document()
        verbose: List every issue instead of the first 10
    """
    errors = report.errors
    warnings = report.warnings

    if report.is_valid:
        _log_success(f"{document_name}: validation passed ({len(warnings)} warnings)")
    else:
        _log_error(
            f"{document_name}: validation failed ({len(errors)} errors, {len(warnings)} warnings)"
        )

    limit = None if verbose else 10
    error_lines = [issue.format() for issue in report.sorted() if issue.is_error]
    for line in error_lines[:limit]:
        _log_error(f"  {line}")
    if limit is not None and len(error_lines) > limit:
        _log_error(f"  ... and {len(error_lines) - limit} more errors")

    for issue in report.sorted():
        if not issue.is_error:
            _log_warning(f"  {issue.format()}")


def log_conversion_result(document_name: str, output_path: Path, elapsed_time: float) -> None:
    """Log a completed conversion."""
    _log_success(f"{document_name}: conversion succeeded ({format_elapsed(elapsed_time)})")
    _log_debug(f"  Output: {output_path}")
