"""Integration tests for the cvbuild command line interface."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

import cvbuild.cli
from cvbuild.cli import app

FIXTURES_PATH = Path(__file__).parent.parent / "fixtures"
DOCUMENTS_PATH = FIXTURES_PATH / "documents"
SCENARIO_SCHEMA = str(FIXTURES_PATH / "schemas" / "scenario.schema.yaml")
CV_SCHEMA = str(FIXTURES_PATH / "schemas" / "cv.schema.yaml")

runner = CliRunner()


@pytest.fixture(autouse=True)
def logs_path(tmp_path, monkeypatch):
    """Keep per-run logs out of the working tree."""
    path = tmp_path / "logs"
    monkeypatch.setattr(cvbuild.cli, "LOGS_PATH", path)
    return path


def _doc(name: str) -> str:
    return str(DOCUMENTS_PATH / name)


class TestBuildCommand:
    """Tests for 'cvbuild build'."""

    @pytest.mark.integration
    def test_success(self, tmp_path, logs_path):
        output_dir = tmp_path / "out"
        result = runner.invoke(
            app, ["build", _doc("scenario_valid.toml"), "-s", SCENARIO_SCHEMA, "-o", str(output_dir)]
        )

        assert result.exit_code == 0, result.output
        assert "Build succeeded" in result.output
        assert (output_dir / "scenario_valid.html").exists()
        assert (output_dir / "scenario_valid.json").exists()
        assert len(list(logs_path.glob("build_*/build.log"))) == 1

    @pytest.mark.integration
    def test_validation_failure(self, tmp_path):
        output_dir = tmp_path / "out"
        result = runner.invoke(
            app,
            ["build", _doc("scenario_bad_month.toml"), "-s", SCENARIO_SCHEMA, "-o", str(output_dir)],
        )

        assert result.exit_code == 1
        assert "Build failed while validating" in result.output
        assert "start_date: invalid date string '2024-13': month 13 out of range" in result.output
        assert not output_dir.exists()

    @pytest.mark.integration
    def test_render_failure(self, tmp_path):
        result = runner.invoke(
            app,
            [
                "build",
                _doc("scenario_valid.toml"),
                "-s",
                SCENARIO_SCHEMA,
                "-o",
                str(tmp_path),
                "-t",
                str(FIXTURES_PATH / "broken.html.jinja"),
            ],
        )

        assert result.exit_code == 2
        assert "Build failed while rendering" in result.output

    @pytest.mark.integration
    def test_template_runtime_error(self, tmp_path):
        result = runner.invoke(
            app,
            [
                "build",
                _doc("scenario_valid.toml"),
                "-s",
                SCENARIO_SCHEMA,
                "-o",
                str(tmp_path / "out"),
                "-t",
                str(FIXTURES_PATH / "type_error.html.jinja"),
            ],
        )

        assert result.exit_code == 2
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "Build failed while rendering" in result.output
        assert "TypeError" in result.output

    @pytest.mark.integration
    def test_uninferable_template(self, tmp_path):
        template = tmp_path / "cv.tex"
        template.write_text("\\documentclass{article}")

        result = runner.invoke(
            app,
            ["build", _doc("scenario_valid.toml"), "-s", SCENARIO_SCHEMA, "-t", str(template)],
        )

        assert result.exit_code == 2
        assert "Cannot infer renderer" in result.output

    @pytest.mark.integration
    def test_missing_document(self, tmp_path):
        result = runner.invoke(
            app, ["build", str(tmp_path / "cv.toml"), "-s", SCENARIO_SCHEMA, "-o", str(tmp_path)]
        )

        assert result.exit_code == 3
        assert "Document not found" in result.output


class TestValidateCommand:
    """Tests for 'cvbuild validate'."""

    @pytest.mark.integration
    def test_valid(self):
        result = runner.invoke(app, ["validate", _doc("scenario_valid.toml"), "-s", SCENARIO_SCHEMA])

        assert result.exit_code == 0
        assert "is valid" in result.output

    @pytest.mark.integration
    def test_errors_listed_by_path(self):
        result = runner.invoke(app, ["validate", _doc("cv_invalid.toml"), "-s", CV_SCHEMA])

        assert result.exit_code == 1
        lines = [line for line in result.output.splitlines() if ": " in line and "✗" not in line]
        assert lines[0].startswith("experience[0].start_date:")
        assert lines[-1] == "years: expected number, got string 'eight'"
        assert "8 errors" in result.output

    @pytest.mark.integration
    def test_unknown_fields_option(self):
        warn = runner.invoke(
            app, ["validate", _doc("scenario_extra_field.toml"), "-s", SCENARIO_SCHEMA, "-u", "warn"]
        )
        error = runner.invoke(
            app, ["validate", _doc("scenario_extra_field.toml"), "-s", SCENARIO_SCHEMA, "-u", "error"]
        )

        assert warn.exit_code == 0
        assert "nickname: warning: field is not declared" in warn.output
        assert error.exit_code == 1

    @pytest.mark.integration
    def test_datetime_listed_with_other_errors(self):
        result = runner.invoke(app, ["validate", _doc("scenario_datetime.toml"), "-s", SCENARIO_SCHEMA])

        assert result.exit_code == 1
        assert "name: required field is missing" in result.output
        assert "start_date: expected date (YYYY-MM or YYYY-MM-DD), got date-time" in result.output

    @pytest.mark.integration
    def test_bad_unknown_fields_setting(self, monkeypatch):
        monkeypatch.setenv("CVBUILD_UNKNOWN_FIELDS", "strict")
        result = runner.invoke(app, ["validate", _doc("scenario_valid.toml"), "-s", SCENARIO_SCHEMA])

        assert result.exit_code == 2
        assert "CVBUILD_UNKNOWN_FIELDS must be one of warn, error, ignore" in result.output

    @pytest.mark.integration
    def test_missing_schema(self, tmp_path):
        result = runner.invoke(
            app, ["validate", _doc("scenario_valid.toml"), "-s", str(tmp_path / "none.yaml")]
        )

        assert result.exit_code == 3
        assert "Schema not found" in result.output

    @pytest.mark.integration
    def test_malformed_schema(self):
        result = runner.invoke(
            app,
            [
                "validate",
                _doc("scenario_valid.toml"),
                "-s",
                str(FIXTURES_PATH / "schemas" / "unknown_type.schema.yaml"),
            ],
        )

        assert result.exit_code == 1
        assert "Unknown type 'text'" in result.output


class TestConvertCommand:
    """Tests for 'cvbuild convert'."""

    @pytest.mark.integration
    def test_convert(self, tmp_path):
        output = tmp_path / "cv.json"
        result = runner.invoke(
            app, ["convert", _doc("cv_valid.toml"), "-s", CV_SCHEMA, "-o", str(output)]
        )

        assert result.exit_code == 0, result.output
        assert output.exists()
        assert "Converted" in result.output

    @pytest.mark.integration
    def test_convert_invalid(self, tmp_path):
        output = tmp_path / "cv.json"
        result = runner.invoke(
            app, ["convert", _doc("scenario_missing_name.toml"), "-s", SCENARIO_SCHEMA, "-o", str(output)]
        )

        assert result.exit_code == 1
        assert "name: required field is missing" in result.output
        assert not output.exists()

    @pytest.mark.integration
    def test_convert_empty_list_item(self, tmp_path):
        """Test that an empty YAML list item is a validation failure, not a crash."""
        output = tmp_path / "cv.json"
        result = runner.invoke(
            app, ["convert", _doc("scenario_empty_item.yaml"), "-s", SCENARIO_SCHEMA, "-o", str(output)]
        )

        assert result.exit_code == 1
        assert "highlights[1]: expected string, got null" in result.output
        assert not output.exists()

    @pytest.mark.integration
    def test_bad_unknown_fields_setting(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CVBUILD_UNKNOWN_FIELDS", "strict")
        result = runner.invoke(
            app, ["convert", _doc("cv_valid.toml"), "-s", CV_SCHEMA, "-o", str(tmp_path / "cv.json")]
        )

        assert result.exit_code == 2
        assert "CVBUILD_UNKNOWN_FIELDS must be one of" in result.output


@pytest.mark.integration
def test_schema_command():
    result = runner.invoke(app, ["schema", CV_SCHEMA])

    assert result.exit_code == 0
    assert "experience: list<record>" in result.output
    assert "    company: string (required)" in result.output


@pytest.mark.integration
def test_no_command_shows_help():
    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert "build" in result.output
    assert "validate" in result.output
