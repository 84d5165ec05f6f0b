"""
Format Converter

Converts a validated Document into the renderer-consumable JSON serialization.

The conversion is a lossless structural transform:
- Declared fields come first, in schema declaration order, followed by any
  undeclared fields in document order
- Nested record lists stay ordered sequences of mappings, each record ordered
  by its own record schema
- Scalars keep their JSON types (strings are never turned into numbers or
  booleans); dates are written as their YYYY-MM[-DD] text

parse_converted() is the inverse: for every valid document D,
parse_converted(to_json(D, S), S) == D.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from cvbuild.contexts.templating.document import Document
from cvbuild.contexts.templating.exceptions import ConversionError, DocumentParseError
from cvbuild.contexts.templating.schema import FieldType, RecordSchema, Schema
from cvbuild.contexts.templating.values import (
    BoolValue,
    DateValue,
    ListValue,
    NumberValue,
    RecordValue,
    StringValue,
    UnsupportedValue,
    Value,
    describe,
    is_finite_number,
)

JSON_INDENT = 2


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


def _convert_value(value: Value, record: Optional[RecordSchema], path: str) -> Any:
    if isinstance(value, BoolValue):
        return value.value
    if isinstance(value, NumberValue):
        if not is_finite_number(value):
            raise ConversionError(
                f"non-finite number {value.value!r} has no JSON representation", field_path=path
            )
        return value.value
    if isinstance(value, StringValue):
        return value.value
    if isinstance(value, DateValue):
        return value.text
    if isinstance(value, ListValue):
        return [_convert_value(item, record, f"{path}[{i}]") for i, item in enumerate(value.items)]
    if isinstance(value, RecordValue):
        return _convert_record(value, record, path)
    if isinstance(value, UnsupportedValue):
        raise ConversionError(f"unsupported {describe(value)}", field_path=path)
    raise ConversionError(f"unsupported value {value!r}", field_path=path)


def _convert_record(value: RecordValue, record: Optional[RecordSchema], path: str) -> Dict[str, Any]:
    converted: Dict[str, Any] = {}

    if record is not None:
        for spec in record.fields:
            item = value.get(spec.name)
            if item is None:
                continue
            nested = spec.record if spec.type in (FieldType.LIST_OF_RECORD, FieldType.RECORD) else None
            converted[spec.name] = _convert_value(item, nested, _join(path, spec.name))

    # Undeclared fields follow in document order
    for name, item in value.fields:
        if name in converted:
            continue
        converted[name] = _convert_value(item, None, _join(path, name))

    return converted


def convert_document(document: Document, schema: Schema) -> Dict[str, Any]:
    """
    Convert a document to plain, schema-ordered data ready for JSON encoding.

    Args:
        document: Validated document
        schema: Schema the document was validated against

    Returns:
        Dict whose key order follows the schema

    Raises:
        ConversionError: If a value has no JSON representation
    """
    return _convert_record(document.root, schema.root, "")


def to_json(document: Document, schema: Schema) -> str:
    """
    Serialize a document to the renderer-consumable JSON text.

    Raises:
        ConversionError: If a value has no JSON representation
    """
    data = convert_document(document, schema)
    try:
        return json.dumps(data, indent=JSON_INDENT, ensure_ascii=False, allow_nan=False) + "\n"
    except (TypeError, ValueError) as e:
        raise ConversionError(f"JSON encoding failed: {e}") from e


def write_converted(document: Document, schema: Schema, output_path: Path) -> Path:
    """
    Write the converted JSON for a document.

    Args:
        document: Validated document
        schema: Schema the document was validated against
        output_path: Destination .json file (parent directories are created)

    Returns:
        Path of the written file
    """
    text = to_json(document, schema)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    return output_path


def parse_converted(text: str, schema: Schema, source: Optional[Path] = None) -> Document:
    """
    Parse converted JSON back into a Document typed with the schema.

    Args:
        text: JSON produced by to_json()
        schema: Schema used for the conversion
        source: Optional path the text was read from

    Returns:
        Document equal (field-wise) to the one that was converted

    Raises:
        DocumentParseError: If text is not valid JSON or not a JSON object
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentParseError(f"Invalid converted JSON: {e}", path=source) from e
    return Document.from_native(data, schema=schema, source=source, format="json")
