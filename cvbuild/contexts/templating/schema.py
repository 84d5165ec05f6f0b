"""
Schema Loader

Parses schema definition files (YAML, loaded with OmegaConf) into immutable
Schema values. A schema declares the fields of a document and of the records
nested inside it, each with a type tag and a required/optional marker.

Declaration order is preserved everywhere: the converter reproduces it in its
output.

Example schema file:

    # Curriculum vitae
    name: cv
    fields:
      name: string!                 # shorthand, "!" marks required
      start_date: {type: date, required: true}
      highlights: list<string>
      experience:
        type: list<record>
        record: job
    records:
      job:
        fields:
          company: string!
          title: string
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from cvbuild.contexts.templating.exceptions import SchemaNotFoundError, SchemaParseError


class FieldType(str, Enum):
    """Type tags a field can declare."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    LIST_OF_STRING = "list<string>"
    LIST_OF_RECORD = "list<record>"
    RECORD = "record"

    @property
    def is_record(self) -> bool:
        """True for types that carry a nested record definition."""
        return self in (FieldType.LIST_OF_RECORD, FieldType.RECORD)

    @property
    def is_list(self) -> bool:
        return self in (FieldType.LIST_OF_STRING, FieldType.LIST_OF_RECORD)


# Accepted spellings for each type tag
TYPE_ALIASES = {
    "string": FieldType.STRING,
    "str": FieldType.STRING,
    "number": FieldType.NUMBER,
    "boolean": FieldType.BOOLEAN,
    "bool": FieldType.BOOLEAN,
    "date": FieldType.DATE,
    "list<string>": FieldType.LIST_OF_STRING,
    "list-of-string": FieldType.LIST_OF_STRING,
    "list<record>": FieldType.LIST_OF_RECORD,
    "list-of-record": FieldType.LIST_OF_RECORD,
    "record": FieldType.RECORD,
}

FIELD_KEYS = {"name", "type", "required", "record", "fields", "description"}


@dataclass(frozen=True)
class FieldSpec:
    """
    One declared field.

    Attributes:
        name: Field name (unique within its record)
        type: Declared type tag
        required: Whether the field must be present
        record: Nested record schema for list<record> and record fields
        description: Optional human-readable note from the schema file
    """

    name: str
    type: FieldType
    required: bool = False
    record: Optional["RecordSchema"] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class RecordSchema:
    """
    Ordered set of field specs describing one record shape.

    Attributes:
        name: Record name ('cv' for the document root, 'job', 'experience.job', ...)
        fields: Field specs in declaration order
    """

    name: str
    fields: Tuple[FieldSpec, ...] = ()

    @property
    def field_names(self) -> List[str]:
        """Field names in declaration order."""
        return [f.name for f in self.fields]

    @property
    def required_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.required]

    def get(self, name: str) -> Optional[FieldSpec]:
        """Look up a field spec by name (None if undeclared)."""
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None


@dataclass(frozen=True)
class Schema:
    """
    A loaded schema: the document-level record plus its named record definitions.

    Attributes:
        name: Schema name (defaults to the schema file stem)
        root: Document-level record schema
        records: Named record definitions from the 'records' section
        source: Path the schema was loaded from (None when built from a dict)
    """

    name: str
    root: RecordSchema
    records: Mapping[str, RecordSchema] = field(default_factory=lambda: MappingProxyType({}))
    source: Optional[Path] = None

    @property
    def field_names(self) -> List[str]:
        """Document-level field names in declaration order."""
        return self.root.field_names

    def record(self, name: str) -> RecordSchema:
        """Get a named record definition."""
        return self.records[name]


class _SchemaBuilder:
    """Resolves raw schema data into frozen schema values, detecting reference cycles."""

    def __init__(self, raw: Dict[str, Any], path: Optional[Path]):
        self.raw = raw
        self.path = path
        raw_records = raw.get("records") or {}
        if not isinstance(raw_records, dict):
            self._fail("'records' must be a mapping of record name to definition", "records")
        self.raw_records: Dict[str, Any] = raw_records
        self.built: Dict[str, RecordSchema] = {}
        self.resolving: List[str] = []

    def _fail(self, message: str, location: Optional[str] = None):
        raise SchemaParseError(message, path=self.path, location=location)

    def build(self, default_name: str) -> Schema:
        name = self.raw.get("name") or default_name
        if not isinstance(name, str):
            self._fail("Schema 'name' must be a string", "name")

        if "fields" not in self.raw:
            self._fail("Schema must declare document-level 'fields'")

        root = self._build_record(name, self.raw["fields"], "fields")

        # Resolve every named record, including ones nothing references yet
        for record_name in self.raw_records:
            self._named_record(record_name, f"records.{record_name}")

        return Schema(
            name=name,
            root=root,
            records=MappingProxyType(dict(self.built)),
            source=self.path,
        )

    def _named_record(self, record_name: str, location: str) -> RecordSchema:
        if record_name in self.built:
            return self.built[record_name]

        if record_name not in self.raw_records:
            self._fail(f"Reference to undefined record '{record_name}'", location)

        if record_name in self.resolving:
            cycle = " -> ".join(self.resolving + [record_name])
            self._fail(f"Recursive record reference: {cycle}", location)

        definition = self.raw_records[record_name]
        if not isinstance(definition, dict) or "fields" not in definition:
            self._fail(
                f"Record '{record_name}' must be a mapping with 'fields'", f"records.{record_name}"
            )

        self.resolving.append(record_name)
        try:
            record = self._build_record(
                record_name, definition["fields"], f"records.{record_name}.fields"
            )
        finally:
            self.resolving.pop()

        self.built[record_name] = record
        return record

    def _build_record(self, record_name: str, raw_fields: Any, location: str) -> RecordSchema:
        entries = self._field_entries(raw_fields, location)

        specs = []
        seen = set()
        for field_name, definition in entries:
            field_location = f"{location}.{field_name}"
            if not isinstance(field_name, str) or not field_name:
                self._fail(f"Field names must be non-empty strings, got {field_name!r}", location)
            if field_name in seen:
                self._fail(f"Duplicate field name '{field_name}'", field_location)
            seen.add(field_name)
            specs.append(self._build_field(record_name, field_name, definition, field_location))

        return RecordSchema(name=record_name, fields=tuple(specs))

    def _field_entries(self, raw_fields: Any, location: str) -> List[Tuple[Any, Any]]:
        """Normalize mapping and list forms of a 'fields' block to (name, definition) pairs."""
        if isinstance(raw_fields, dict):
            return list(raw_fields.items())

        if isinstance(raw_fields, list):
            entries = []
            for i, item in enumerate(raw_fields):
                if not isinstance(item, dict) or "name" not in item:
                    self._fail("List-form fields must be mappings with a 'name' key", f"{location}[{i}]")
                entries.append((item["name"], {k: v for k, v in item.items() if k != "name"}))
            return entries

        self._fail("'fields' must be a mapping or a list", location)

    def _build_field(
        self, record_name: str, field_name: str, definition: Any, location: str
    ) -> FieldSpec:
        if isinstance(definition, str):
            definition = {"type": definition}
        if not isinstance(definition, dict):
            self._fail(
                f"Field definition must be a type string or a mapping, got {type(definition).__name__}",
                location,
            )

        unknown_keys = set(definition) - FIELD_KEYS
        if unknown_keys:
            self._fail(f"Unknown field keys: {sorted(unknown_keys)}", location)

        type_tag = definition.get("type")
        if not isinstance(type_tag, str):
            self._fail("Field must declare a 'type'", location)

        required = definition.get("required", False)
        type_tag = type_tag.strip()
        if type_tag.endswith("!"):
            type_tag = type_tag[:-1].strip()
            required = True

        field_type = TYPE_ALIASES.get(type_tag.lower())
        if field_type is None:
            self._fail(
                f"Unknown type '{type_tag}'. Valid types: {[t.value for t in FieldType]}", location
            )

        if not isinstance(required, bool):
            self._fail(f"'required' must be true or false, got {required!r}", location)

        description = definition.get("description")

        has_reference = definition.get("record") is not None
        has_inline = definition.get("fields") is not None

        record = None
        if field_type.is_record:
            if has_reference and has_inline:
                self._fail("Use either 'record' or inline 'fields', not both", location)
            if has_reference:
                reference = definition["record"]
                if not isinstance(reference, str):
                    self._fail("'record' must name a record from 'records'", location)
                record = self._named_record(reference, f"{location}.record")
            elif has_inline:
                record = self._build_record(
                    f"{record_name}.{field_name}", definition["fields"], f"{location}.fields"
                )
            else:
                self._fail(
                    f"Field of type '{field_type.value}' needs a 'record' reference or inline 'fields'",
                    location,
                )
        elif has_reference or has_inline:
            self._fail(f"Field of type '{field_type.value}' cannot declare a record", location)

        return FieldSpec(
            name=field_name,
            type=field_type,
            required=required,
            record=record,
            description=description,
        )


def schema_from_dict(raw: Dict[str, Any], name: str = "document", path: Optional[Path] = None) -> Schema:
    """
    Build a Schema from already-loaded schema data.

    Args:
        raw: Schema data (same structure as a schema file)
        name: Schema name used when 'name' is absent
        path: Source path, only used in error messages

    Returns:
        Immutable Schema

    Raises:
        SchemaParseError: If the definition is malformed
    """
    if not isinstance(raw, dict):
        raise SchemaParseError("Schema must be a mapping at the top level", path=path)
    return _SchemaBuilder(raw, path).build(default_name=name)


def load_schema(source: Path | str) -> Schema:
    """
    Load a schema definition file.

    Args:
        source: Path to a YAML schema file

    Returns:
        Immutable Schema with declaration order preserved

    Raises:
        SchemaNotFoundError: If the file does not exist
        SchemaParseError: If the file is not valid YAML or the definition is malformed
    """
    path = Path(source)
    if not path.is_file():
        raise SchemaNotFoundError(path)

    try:
        raw = OmegaConf.to_container(OmegaConf.load(path), resolve=True)
    except (yaml.YAMLError, OmegaConfBaseException) as e:
        raise SchemaParseError(f"Invalid schema file: {e}", path=path) from e

    return schema_from_dict(raw, name=path.name.split(".")[0], path=path)
