"""
Rendering context logger.

Provides logging interface for the rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from utils.logger directly.
"""

from pathlib import Path

from loguru import logger

from cvbuild.utils.timestamp import format_elapsed

CONTEXT_PREFIX = "[render]"


# Wrapper functions with automatic [render] prefix


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level rendering-specific logging helpers


def log_render_start(renderer: str, template: Path, data_path: Path) -> None:
    """Log start of rendering with context."""
    _log_info(f"Rendering with {renderer}")
    _log_debug(f"  Template: {template}")
    _log_debug(f"  Data: {data_path}")


def log_render_output(renderer: str, stdout: str, stderr: str) -> None:
    """
    Log raw renderer output at debug level.

    Uses opt(raw=True) so multi-line tool output keeps its own formatting
    instead of getting a timestamp and level on every line.
    """
    if stdout:
        logger.opt(raw=True).debug(
            f"\n{'=' * 80}\n{renderer.upper()} STDOUT:\n{'=' * 80}\n{stdout}\n"
        )
    if stderr:
        logger.opt(raw=True).debug(
            f"\n{'=' * 80}\n{renderer.upper()} STDERR:\n{'=' * 80}\n{stderr}\n"
        )


def log_render_result(result, elapsed_time: float, verbose: bool = False) -> None:
    """
    Log a successful render.

    Args:
        result: RenderResult from a renderer
        elapsed_time: Time taken to render
        verbose: Show every renderer warning instead of the first 3
    """
    _log_success(f"Rendering succeeded ({format_elapsed(elapsed_time)})")
    _log_debug(f"  Artifact: {result.artifact_path}")

    if result.warnings:
        _log_warning(f"{len(result.warnings)} renderer warnings")
        warning_limit = None if verbose else 3
        for i, warn in enumerate(result.warnings[:warning_limit], 1):
            _log_debug(f"  Warning {i}: {warn}")
        if warning_limit is not None and len(result.warnings) > warning_limit:
            _log_debug(f"  ... and {len(result.warnings) - warning_limit} more warnings")


def log_render_failure(error, elapsed_time: float) -> None:
    """Log a failed render (RenderError) with the renderer's output attached."""
    _log_error(f"Rendering failed ({format_elapsed(elapsed_time)})")
    _log_error(f"  {error.message}")
    if error.returncode is not None:
        _log_error(f"  Exit status: {error.returncode}")
    log_render_output(error.renderer or "renderer", error.stdout, error.stderr)
