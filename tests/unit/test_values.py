"""Unit tests for document values and date checks."""

from datetime import date, datetime, time

import pytest

from cvbuild.contexts.templating.exceptions import ConversionError
from cvbuild.contexts.templating.schema import FieldSpec, FieldType
from cvbuild.contexts.templating.values import (
    BoolValue,
    DateValue,
    ListValue,
    NumberValue,
    RecordValue,
    StringValue,
    UnsupportedValue,
    check_date_text,
    describe,
    from_native,
    record_from_native,
    to_native,
)


class TestCheckDateText:
    """Tests for check_date_text()."""

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["2024-01", "2024-12", "2024-02-29", "1999-12-31"])
    def test_valid_dates(self, text):
        assert check_date_text(text) is None

    @pytest.mark.unit
    def test_month_out_of_range(self):
        assert check_date_text("2024-13") == "month 13 out of range"
        assert check_date_text("2024-00") == "month 00 out of range"

    @pytest.mark.unit
    def test_day_out_of_range(self):
        """Test calendar-aware day checks (leap years included)."""
        assert check_date_text("2021-02-29") == "day 29 out of range for 2021-02"
        assert check_date_text("2021-04-31") == "day 31 out of range for 2021-04"

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["March 2016", "2024", "2024/01", "24-01", "2024-1", ""])
    def test_bad_format(self, text):
        assert check_date_text(text) == "not in YYYY-MM or YYYY-MM-DD format"


class TestFromNative:
    """Tests for from_native() type mapping."""

    @pytest.mark.unit
    def test_scalars(self):
        assert from_native("Lisbon") == StringValue("Lisbon")
        assert from_native(8) == NumberValue(8)
        assert from_native(2.5) == NumberValue(2.5)
        assert from_native(True) == BoolValue(True)

    @pytest.mark.unit
    def test_bool_is_not_a_number(self):
        """Test that booleans never become numbers."""
        assert isinstance(from_native(False), BoolValue)

    @pytest.mark.unit
    def test_native_date(self):
        assert from_native(date(2021, 3, 1)) == DateValue("2021-03-01")

    @pytest.mark.unit
    def test_date_text_in_undeclared_position(self):
        assert from_native("2024-01") == DateValue("2024-01")

    @pytest.mark.unit
    def test_date_text_in_string_field_stays_string(self):
        spec = FieldSpec(name="code", type=FieldType.STRING)
        assert from_native("2024-01", spec) == StringValue("2024-01")

    @pytest.mark.unit
    def test_invalid_date_text_in_date_field_stays_string(self):
        """Test that invalid dates are left for the validator to report."""
        spec = FieldSpec(name="start_date", type=FieldType.DATE)
        assert from_native("2024-13", spec) == StringValue("2024-13")

    @pytest.mark.unit
    def test_string_list_items_stay_strings(self):
        spec = FieldSpec(name="tags", type=FieldType.LIST_OF_STRING)
        value = from_native(["2024-01", "Python"], spec)
        assert value == ListValue((StringValue("2024-01"), StringValue("Python")))

    @pytest.mark.unit
    def test_no_coercion_of_string_content(self):
        """Test that "true" and "42" stay strings."""
        assert from_native("true") == StringValue("true")
        assert from_native("42") == StringValue("42")

    @pytest.mark.unit
    def test_native_date_in_string_field_stays_string(self):
        """Test that an unquoted TOML/YAML date in a string field reads as its text."""
        spec = FieldSpec(name="name", type=FieldType.STRING)
        assert from_native(date(2024, 1, 15), spec) == StringValue("2024-01-15")

    @pytest.mark.unit
    def test_native_date_in_string_list(self):
        spec = FieldSpec(name="tags", type=FieldType.LIST_OF_STRING)
        value = from_native(["Python", date(2024, 1, 15)], spec)
        assert value == ListValue((StringValue("Python"), StringValue("2024-01-15")))

    @pytest.mark.unit
    def test_datetime_kept_as_unsupported(self):
        """Test that date-times are kept for the validator instead of raising."""
        value = from_native(datetime(2024, 1, 15, 10, 0), path="updated")

        assert value == UnsupportedValue(
            "date-time", "2024-01-15T10:00:00", hint="use a YYYY-MM or YYYY-MM-DD date"
        )

    @pytest.mark.unit
    def test_time_kept_as_unsupported(self):
        assert from_native(time(12, 0)).kind == "time"

    @pytest.mark.unit
    def test_null_in_list_kept_as_unsupported(self):
        value = from_native(["a", None], path="skills")
        assert value.items[1] == UnsupportedValue("null", hint="remove the empty item")

    @pytest.mark.unit
    def test_null_record_field_skipped(self):
        record = record_from_native({"name": "A. Dev", "headline": None})
        assert record.keys() == ["name"]

    @pytest.mark.unit
    def test_non_string_key_kept_as_unsupported(self):
        record = record_from_native({1: "x", "city": "Lisbon"}, path="location")

        assert record.keys() == ["1", "city"]
        assert isinstance(record.get("1"), UnsupportedValue)
        assert describe(record.get("1")) == "field named by int 1"

    @pytest.mark.unit
    def test_to_native_refuses_unsupported(self):
        with pytest.raises(ConversionError, match="unsupported date-time"):
            to_native(from_native({"updated": datetime(2024, 1, 15, 10, 0)}))


class TestRecordValue:
    """Tests for RecordValue equality and access."""

    @pytest.mark.unit
    def test_equality_ignores_key_order(self):
        a = RecordValue((("name", StringValue("A")), ("years", NumberValue(8))))
        b = RecordValue((("years", NumberValue(8)), ("name", StringValue("A"))))

        assert a == b
        assert hash(a) == hash(b)

    @pytest.mark.unit
    def test_list_equality_is_order_sensitive(self):
        a = ListValue((StringValue("x"), StringValue("y")))
        b = ListValue((StringValue("y"), StringValue("x")))
        assert a != b

    @pytest.mark.unit
    def test_access(self):
        record = record_from_native({"city": "Lisbon", "country": "Portugal"})

        assert record.get("city") == StringValue("Lisbon")
        assert record.get("zip") is None
        assert "country" in record
        assert len(record) == 2

    @pytest.mark.unit
    def test_to_native_keeps_record_order(self):
        data = {"b": 1, "a": ["x", {"c": date(2020, 1, 2)}]}
        assert to_native(from_native(data)) == {"b": 1, "a": ["x", {"c": "2020-01-02"}]}
        assert list(to_native(from_native(data))) == ["b", "a"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "value, expected",
    [
        (StringValue("2024-13"), "string '2024-13'"),
        (NumberValue(42), "number 42"),
        (BoolValue(True), "boolean true"),
        (DateValue("2024-01"), "date 2024-01"),
        (ListValue((StringValue("a"),)), "list of 1 item(s)"),
        (RecordValue((("a", NumberValue(1)), ("b", NumberValue(2)))), "record with 2 field(s)"),
        (UnsupportedValue("null"), "null"),
        (UnsupportedValue("time", "12:00:00"), "time 12:00:00"),
    ],
)
def test_describe(value, expected):
    assert describe(value) == expected
