"""
Document Value Model

Closed set of value shapes a document can hold. Loaded data (TOML, YAML or
JSON) is turned into these values at the loader boundary, so the validator
and the converter work over a fixed set of cases instead of arbitrary Python
objects:

    StringValue | NumberValue | BoolValue | DateValue | ListValue | RecordValue

Dates are kept as text in one of two formats, YYYY-MM or YYYY-MM-DD. No
timezone handling is done.

Loaded data with no document representation (date-times, times, nulls inside
lists, non-string field names) is kept as UnsupportedValue so the validator
can report it at its path alongside every other problem.
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from cvbuild.contexts.templating.exceptions import ConversionError
from cvbuild.contexts.templating.schema import FieldSpec, FieldType, RecordSchema

DATE_PATTERN = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})(?:-(?P<day>\d{2}))?$")


def check_date_text(text: str) -> Optional[str]:
    """
    Check a textual date against the YYYY-MM[-DD] format and the calendar.

    Args:
        text: Candidate date string

    Returns:
        None if valid, otherwise a short description of the problem
    """
    match = DATE_PATTERN.match(text)
    if not match:
        return "not in YYYY-MM or YYYY-MM-DD format"

    year, month = int(match["year"]), int(match["month"])
    if not 1 <= month <= 12:
        return f"month {month:02d} out of range"

    if match["day"] is not None:
        day = int(match["day"])
        try:
            date(year, month, day)
        except ValueError:
            return f"day {day:02d} out of range for {year:04d}-{month:02d}"

    return None


def is_date_text(text: str) -> bool:
    return check_date_text(text) is None


@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class NumberValue:
    value: Union[int, float]


@dataclass(frozen=True)
class BoolValue:
    value: bool


@dataclass(frozen=True)
class DateValue:
    """Calendar date kept in its textual YYYY-MM or YYYY-MM-DD form."""

    text: str


@dataclass(frozen=True)
class ListValue:
    """Ordered sequence of values; equality is order sensitive."""

    items: Tuple["Value", ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator["Value"]:
        return iter(self.items)


@dataclass(frozen=True, eq=False)
class RecordValue:
    """
    Mapping of field name to value that remembers insertion order.

    Equality is field-wise: two records are equal when they hold the same
    names with equal values, regardless of key order.
    """

    fields: Tuple[Tuple[str, "Value"], ...] = ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RecordValue):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __hash__(self) -> int:
        return hash(frozenset(self.fields))

    def as_dict(self) -> Dict[str, "Value"]:
        return dict(self.fields)

    def keys(self) -> List[str]:
        return [name for name, _ in self.fields]

    def get(self, name: str) -> Optional["Value"]:
        for key, value in self.fields:
            if key == name:
                return value
        return None

    def __contains__(self, name: str) -> bool:
        return any(key == name for key, _ in self.fields)

    def __len__(self) -> int:
        return len(self.fields)


@dataclass(frozen=True)
class UnsupportedValue:
    """
    Loaded data the document model cannot hold.

    Attributes:
        kind: What was found (e.g., 'date-time', 'null')
        text: Textual form of the loaded data, if any
        hint: How to fix it
    """

    kind: str
    text: str = ""
    hint: str = ""


Value = Union[
    StringValue, NumberValue, BoolValue, DateValue, ListValue, RecordValue, UnsupportedValue
]


def describe(value: Value) -> str:
    """Short human-readable description of a value for validation messages."""
    if isinstance(value, UnsupportedValue):
        return f"{value.kind} {value.text}" if value.text else value.kind
    if isinstance(value, StringValue):
        text = value.value if len(value.value) <= 40 else value.value[:37] + "..."
        return f"string {text!r}"
    if isinstance(value, BoolValue):
        return f"boolean {str(value.value).lower()}"
    if isinstance(value, NumberValue):
        return f"number {value.value!r}"
    if isinstance(value, DateValue):
        return f"date {value.text}"
    if isinstance(value, ListValue):
        return f"list of {len(value)} item(s)"
    if isinstance(value, RecordValue):
        return f"record with {len(value)} field(s)"
    raise TypeError(f"Not a document value: {value!r}")


def _child_path(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def from_native(obj: Any, spec: Optional[FieldSpec] = None, path: str = "") -> Value:
    """
    Build a document value from loaded Python data.

    Valid date strings become DateValue in date-typed and undeclared
    positions; declared string positions keep them as StringValue. Native
    date objects (TOML and YAML dates) follow the same rule using their ISO
    text. Nested records follow the field's record schema.

    Data with no representation (datetime, time, None inside a list, other
    types) becomes UnsupportedValue instead of raising, so it shows up in the
    validation report.

    Args:
        obj: Loaded data (str, bool, int, float, date, list, dict)
        spec: Field spec describing this position, if declared
        path: Field path of this position

    Returns:
        Document value
    """
    # bool is a subclass of int, check it first
    if isinstance(obj, bool):
        return BoolValue(obj)

    if isinstance(obj, (int, float)):
        return NumberValue(obj)

    if isinstance(obj, str):
        # Undeclared positions keep date-shaped text as dates so that a
        # converted document parses back to the same values
        if (spec is None or spec.type is FieldType.DATE) and is_date_text(obj):
            return DateValue(obj)
        return StringValue(obj)

    if isinstance(obj, datetime):
        return UnsupportedValue(
            "date-time", obj.isoformat(), hint="use a YYYY-MM or YYYY-MM-DD date"
        )

    if isinstance(obj, time):
        return UnsupportedValue("time", obj.isoformat(), hint="use a YYYY-MM or YYYY-MM-DD date")

    if isinstance(obj, date):
        if spec is not None and spec.type is FieldType.STRING:
            return StringValue(obj.isoformat())
        return DateValue(obj.isoformat())

    if obj is None:
        # Only reachable inside lists; records drop null fields
        return UnsupportedValue("null", hint="remove the empty item")

    if isinstance(obj, (list, tuple)):
        item_spec = None
        if spec is not None and spec.type is FieldType.LIST_OF_RECORD:
            item_spec = FieldSpec(name=spec.name, type=FieldType.RECORD, record=spec.record)
        elif spec is not None and spec.type is FieldType.LIST_OF_STRING:
            item_spec = FieldSpec(name=spec.name, type=FieldType.STRING)
        return ListValue(
            tuple(from_native(item, item_spec, f"{path}[{i}]") for i, item in enumerate(obj))
        )

    if isinstance(obj, dict):
        record = spec.record if spec is not None and spec.type.is_record else None
        return record_from_native(obj, record, path)

    return UnsupportedValue(type(obj).__name__, repr(obj))


def record_from_native(
    obj: Dict[str, Any], record: Optional[RecordSchema] = None, path: str = ""
) -> RecordValue:
    """Build a RecordValue from a mapping, typing declared fields with the record schema."""
    fields = []
    for key, item in obj.items():
        # Empty YAML keys and JSON nulls mean "not provided"
        if item is None:
            continue
        if not isinstance(key, str):
            fields.append(
                (
                    str(key),
                    UnsupportedValue(
                        f"field named by {type(key).__name__}",
                        repr(key),
                        hint="quote the field name",
                    ),
                )
            )
            continue
        child_spec = record.get(key) if record is not None else None
        fields.append((key, from_native(item, child_spec, _child_path(path, key))))
    return RecordValue(tuple(fields))


def to_native(value: Value) -> Any:
    """
    Convert a document value back to plain Python data.

    Records keep their own key order; dates become their text.

    Raises:
        ConversionError: If the value holds an UnsupportedValue
    """
    if isinstance(value, UnsupportedValue):
        raise ConversionError(f"unsupported {describe(value)}")
    if isinstance(value, (StringValue, NumberValue, BoolValue)):
        return value.value
    if isinstance(value, DateValue):
        return value.text
    if isinstance(value, ListValue):
        return [to_native(item) for item in value.items]
    if isinstance(value, RecordValue):
        return {name: to_native(item) for name, item in value.fields}
    raise TypeError(f"Not a document value: {value!r}")


def is_finite_number(value: NumberValue) -> bool:
    return not (isinstance(value.value, float) and not math.isfinite(value.value))
