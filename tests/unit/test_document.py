"""Unit tests for document loading."""

from pathlib import Path

import pytest

from cvbuild.contexts.templating.document import Document, detect_format, load_document
from cvbuild.contexts.templating.exceptions import (
    DocumentNotFoundError,
    DocumentParseError,
)
from cvbuild.contexts.templating.schema import load_schema
from cvbuild.contexts.templating.values import (
    BoolValue,
    DateValue,
    ListValue,
    NumberValue,
    RecordValue,
    StringValue,
    UnsupportedValue,
)

FIXTURES_PATH = Path(__file__).parent.parent / "fixtures"
DOCUMENTS_PATH = FIXTURES_PATH / "documents"


@pytest.fixture
def cv_schema():
    return load_schema(FIXTURES_PATH / "schemas" / "cv.schema.yaml")


class TestLoadDocument:
    """Tests for load_document() across formats."""

    @pytest.mark.unit
    def test_toml_with_schema(self, cv_schema):
        """Test TOML loading types declared fields with the schema."""
        document = load_document(DOCUMENTS_PATH / "cv_valid.toml", schema=cv_schema)

        assert document.format == "toml"
        assert document.name == "cv_valid"
        assert document.field_names[:3] == ["skills", "open_to_work", "years"]
        assert document.get("headline") == StringValue("true")
        assert document.get("open_to_work") == BoolValue(True)
        assert document.get("years") == NumberValue(8)

        jobs = document.get("experience")
        assert isinstance(jobs, ListValue)
        assert len(jobs) == 2
        assert jobs.items[0].get("start_date") == DateValue("2021-03-01")
        assert jobs.items[0].get("end_date") == DateValue("2023-12")

        project = jobs.items[0].get("projects").items[0]
        assert project.get("highlights") == ListValue(
            (StringValue("Event-driven rewrite"), StringValue("42"))
        )

    @pytest.mark.unit
    def test_yaml(self, cv_schema):
        document = load_document(DOCUMENTS_PATH / "cv_valid.yaml", schema=cv_schema)

        assert document.format == "yaml"
        assert document.get("open_to_work") == BoolValue(False)
        assert isinstance(document.get("location"), RecordValue)
        assert document.get("experience").items[0].get("start_date") == DateValue("2021-03")

    @pytest.mark.unit
    def test_json(self, cv_schema):
        document = load_document(DOCUMENTS_PATH / "cv_valid.json", schema=cv_schema)

        assert document.format == "json"
        assert document.get("experience").items[0].get("start_date") == DateValue("2021-03-15")

    @pytest.mark.unit
    def test_without_schema(self):
        """Test that documents load without a schema too."""
        document = load_document(str(DOCUMENTS_PATH / "scenario_valid.toml"))
        assert document.get("start_date") == DateValue("2024-01")

    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentNotFoundError) as exc_info:
            load_document(tmp_path / "cv.toml")
        assert exc_info.value.exit_code == 3

    @pytest.mark.unit
    def test_broken_toml(self):
        with pytest.raises(DocumentParseError, match="Invalid TOML document") as exc_info:
            load_document(DOCUMENTS_PATH / "broken.toml")
        assert exc_info.value.exit_code == 1

    @pytest.mark.unit
    def test_broken_json(self, tmp_path):
        path = tmp_path / "cv.json"
        path.write_text('{"name": ')
        with pytest.raises(DocumentParseError, match="Invalid JSON document"):
            load_document(path)

    @pytest.mark.unit
    def test_top_level_list_rejected(self, tmp_path):
        path = tmp_path / "cv.json"
        path.write_text('["a", "b"]')
        with pytest.raises(DocumentParseError, match="mapping at the top level"):
            load_document(path)

    @pytest.mark.unit
    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "cv.ini"
        path.write_text("name=x")
        with pytest.raises(DocumentParseError, match="Unsupported document format"):
            load_document(path)

    @pytest.mark.unit
    def test_toml_datetime_loads_as_unsupported(self, tmp_path):
        """Test that a date-time loads and is left for the validator to report."""
        path = tmp_path / "cv.toml"
        path.write_text("name = \"A\"\nupdated = 2024-01-01T10:00:00\n")

        document = load_document(path)

        assert document.get("name") == StringValue("A")
        assert document.get("updated").kind == "date-time"

    @pytest.mark.unit
    def test_yaml_empty_list_item_loads_as_unsupported(self):
        document = load_document(DOCUMENTS_PATH / "scenario_empty_item.yaml")
        assert document.get("highlights").items[1] == UnsupportedValue(
            "null", hint="remove the empty item"
        )


class TestDocument:
    """Tests for the Document value."""

    @pytest.mark.unit
    def test_equality_ignores_source(self):
        a = Document.from_native({"name": "A"}, source=Path("a.toml"), format="toml")
        b = Document.from_native({"name": "A"})
        assert a == b

    @pytest.mark.unit
    def test_in_memory_name(self):
        assert Document.from_native({}).name == "native"

    @pytest.mark.unit
    def test_to_native(self):
        data = {"name": "A", "skills": ["x"]}
        assert Document.from_native(data).to_native() == data


@pytest.mark.unit
@pytest.mark.parametrize(
    "name, fmt",
    [("cv.toml", "toml"), ("cv.yaml", "yaml"), ("cv.YML", "yaml"), ("cv.json", "json")],
)
def test_detect_format(name, fmt):
    assert detect_format(Path(name)) == fmt
