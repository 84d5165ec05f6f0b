"""
Build pipeline logger.

Provides logging interface for the build orchestrator with automatic [build] prefix.
"""

from pathlib import Path
from typing import Optional

from loguru import logger

from cvbuild.utils.logger import setup_logger as _setup_logger
from cvbuild.utils.timestamp import format_elapsed

CONTEXT_PREFIX = "[build]"


def setup_build_logger(
    log_dir: Path,
    document_source: Optional[Path] = None,
    schema_source: Optional[Path] = None,
    renderer: Optional[str] = None,
    verbose: bool = False,
) -> Path:
    """
    Setup logger for a build run.

    Args:
        log_dir: Directory for this build session
        document_source: Document recorded in the provenance header
        schema_source: Schema recorded in the provenance header
        renderer: Renderer name recorded in the provenance header
        verbose: Show DEBUG messages on the console too

    Returns:
        Path to log file
    """
    provenance = {}
    if document_source is not None:
        provenance["Document"] = document_source
    if schema_source is not None:
        provenance["Schema"] = schema_source
    provenance["Renderer"] = renderer or "inferred from template"

    return _setup_logger(
        context_name="build",
        log_dir=log_dir,
        extra_provenance=provenance,
        console_level="DEBUG" if verbose else "INFO",
    )


def _log_info(message: str) -> None:
    """Log info message with [build] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [build] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [build] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [build] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


def log_build_start(document_source: Path, schema_source: Path) -> None:
    _log_info(f"Starting build: {document_source.name}")
    _log_debug(f"  Document: {document_source}")
    _log_debug(f"  Schema: {schema_source}")


def log_state_change(old_state: str, new_state: str) -> None:
    _log_debug(f"State: {old_state} -> {new_state}")


def log_build_result(result) -> None:
    """Log the outcome of a build (BuildResult)."""
    if result.success:
        _log_success(f"{result.document_name}: build succeeded ({format_elapsed(result.time_s)})")
        if result.artifact_path:
            _log_info(f"  Artifact: {result.artifact_path}")
        if result.data_path:
            _log_info(f"  Data: {result.data_path}")
    else:
        _log_error(
            f"{result.document_name}: build failed in state '{result.failed_state}' "
            f"({format_elapsed(result.time_s)}, exit code {result.exit_code})"
        )
        if result.error is not None:
            _log_error(f"  {result.error.message}")
