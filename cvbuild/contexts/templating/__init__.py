"""
Templating Context

Responsibilities:
- Loads schema definitions (record shapes, field order, required markers)
- Loads human-edited documents (TOML, YAML, JSON) into typed document values
- Validates documents against schemas, accumulating every issue
- Converts validated documents to the renderer-consumable JSON serialization

Owns: Schema, Document, value model, ValidationReport, JSON conversion
Never: Invokes external renderers
"""

from cvbuild.contexts.templating.converter import (
    convert_document,
    parse_converted,
    to_json,
    write_converted,
)
from cvbuild.contexts.templating.document import Document, load_document
from cvbuild.contexts.templating.exceptions import (
    ConversionError,
    CVBuildError,
    DocumentNotFoundError,
    DocumentParseError,
    SchemaNotFoundError,
    SchemaParseError,
)
from cvbuild.contexts.templating.schema import (
    FieldSpec,
    FieldType,
    RecordSchema,
    Schema,
    load_schema,
    schema_from_dict,
)
from cvbuild.contexts.templating.validator import (
    Severity,
    UnknownFieldPolicy,
    ValidationIssue,
    ValidationReport,
    validate_document,
)

__all__ = [
    # Schema loading
    "load_schema",
    "schema_from_dict",
    "Schema",
    "RecordSchema",
    "FieldSpec",
    "FieldType",
    # Documents
    "load_document",
    "Document",
    # Validation
    "validate_document",
    "ValidationReport",
    "ValidationIssue",
    "Severity",
    "UnknownFieldPolicy",
    # Conversion
    "convert_document",
    "to_json",
    "write_converted",
    "parse_converted",
    # Errors
    "CVBuildError",
    "SchemaNotFoundError",
    "SchemaParseError",
    "DocumentNotFoundError",
    "DocumentParseError",
    "ConversionError",
]
