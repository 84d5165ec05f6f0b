"""
Per-run log setup for cvbuild.

Every build or convert run gets its own log directory holding a full DEBUG
log, while the console shows INFO and up. Each log opens with a provenance
header recording which cvbuild version ran, how it was invoked and which
CVBUILD_* / TYPST_* settings were in effect, so a log file is enough to
reproduce the run. Context-specific wrappers live in cvbuild/logger.py and
contexts/{context}/logger.py.
"""

import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv
from loguru import logger

from cvbuild import __version__

load_dotenv()

# Settings that change what a build produces
PROVENANCE_ENV_VARS = [
    "CVBUILD_SCHEMA",
    "CVBUILD_UNKNOWN_FIELDS",
    "CVBUILD_OUTPUT_PATH",
    "CVBUILD_LOGS_PATH",
    "CVBUILD_RENDER_TIMEOUT",
    "TYPST_COMPILER",
]

LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <7} | {message}"
CONSOLE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | <level>{message}</level>"
)


def setup_logger(
    context_name: str,
    log_dir: Path,
    extra_provenance: Optional[Dict] = None,
    level_colors: Optional[Dict[str, str]] = None,
    console_level: str = "INFO",
) -> Path:
    """
    Configure loguru for one cvbuild run.

    Args:
        context_name: Run kind, used as the log file name (e.g., "build" -> build.log)
        log_dir: Directory for this run (created if missing)
        extra_provenance: Run-specific header lines (document, schema, renderer)
        level_colors: Override default level colors (e.g., {"INFO": "<cyan>"})
        console_level: Minimum level shown on the console

    Returns:
        Path to log file

    Example:
        log_file = setup_logger(
            context_name="build",
            log_dir=Path("outs/logs/build_20251114_123456"),
            extra_provenance={"Document": "data/cv.toml", "Renderer": "typst"},
        )
    """
    log_dir.mkdir(exist_ok=True, parents=True)
    log_file = log_dir / f"{context_name}.log"

    logger.remove()

    colors = {**LEVEL_COLORS, **(level_colors or {})}
    for level_name, color in colors.items():
        logger.level(level_name, color=color)

    logger.add(log_file, format=FILE_FORMAT, level="DEBUG", encoding="utf-8")
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=console_level, colorize=True)

    log_provenance(context_name, extra_provenance)

    return log_file


def active_settings() -> List[str]:
    """'NAME=value' for each provenance setting that is set, in PROVENANCE_ENV_VARS order."""
    return [f"{name}={os.environ[name]}" for name in PROVENANCE_ENV_VARS if name in os.environ]


def log_provenance(context_name: str, extra_context: Optional[Dict] = None) -> None:
    """
    Write the provenance header for a run.

    Args:
        context_name: Run kind (e.g., "build", "convert")
        extra_context: Additional key-value pairs to log
    """
    logger.info("=" * 80)
    logger.info(f"cvbuild {__version__} ({context_name})")
    logger.info(f"Command: {' '.join(sys.argv)}")
    logger.info(f"Working directory: {Path.cwd()}")
    logger.info(f"Python: {sys.version.split()[0]}")

    if extra_context:
        for key, value in extra_context.items():
            logger.info(f"{key}: {value}")

    settings = active_settings()
    logger.info(f"Settings: {', '.join(settings) if settings else 'defaults'}")
    logger.info("=" * 80)
