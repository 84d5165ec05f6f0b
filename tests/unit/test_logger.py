"""Unit tests for per-run log setup and its provenance header."""

import pytest
from loguru import logger

from cvbuild import __version__
from cvbuild.logger import setup_build_logger
from cvbuild.utils.logger import active_settings, setup_logger


@pytest.mark.unit
def test_provenance_header(tmp_path, monkeypatch):
    """Test that the log opens with the cvbuild version and the settings in effect."""
    monkeypatch.setenv("CVBUILD_UNKNOWN_FIELDS", "error")
    monkeypatch.setenv("TYPST_COMPILER", "/opt/typst/bin/typst")

    log_file = setup_logger("build", tmp_path / "logs", extra_provenance={"Renderer": "typst"})
    logger.remove()

    text = log_file.read_text(encoding="utf-8")
    assert log_file == tmp_path / "logs" / "build.log"
    assert f"cvbuild {__version__} (build)" in text
    assert "Renderer: typst" in text
    assert "CVBUILD_UNKNOWN_FIELDS=error" in text
    assert "TYPST_COMPILER=/opt/typst/bin/typst" in text


@pytest.mark.unit
def test_active_settings_order(monkeypatch):
    for name in ("CVBUILD_SCHEMA", "CVBUILD_OUTPUT_PATH", "CVBUILD_LOGS_PATH", "CVBUILD_RENDER_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TYPST_COMPILER", "typst")
    monkeypatch.setenv("CVBUILD_UNKNOWN_FIELDS", "warn")

    assert active_settings() == ["CVBUILD_UNKNOWN_FIELDS=warn", "TYPST_COMPILER=typst"]


@pytest.mark.unit
def test_build_logger_records_inputs(tmp_path):
    log_file = setup_build_logger(
        tmp_path,
        document_source=tmp_path / "cv.toml",
        schema_source=tmp_path / "cv.schema.yaml",
        renderer="html",
    )
    logger.info("[build] Starting build: cv.toml")
    logger.remove()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert any(line.endswith(f"Document: {tmp_path / 'cv.toml'}") for line in lines)
    assert any(line.endswith(f"Schema: {tmp_path / 'cv.schema.yaml'}") for line in lines)
    assert lines[-1].endswith("[build] Starting build: cv.toml")
