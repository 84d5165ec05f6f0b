"""
Structured-Data Validator

Validates a Document against a Schema and accumulates every violation into a
single ValidationReport, so all problems can be fixed in one pass. The
validator never raises on the first error.

Fields present in the document but absent from the schema are handled by an
UnknownFieldPolicy (warning by default, so documents can carry
forward-compatible extra data).
"""

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from cvbuild.contexts.templating.document import Document
from cvbuild.contexts.templating.schema import FieldSpec, FieldType, RecordSchema, Schema
from cvbuild.contexts.templating.values import (
    BoolValue,
    DateValue,
    ListValue,
    NumberValue,
    RecordValue,
    StringValue,
    UnsupportedValue,
    Value,
    check_date_text,
    describe,
    is_finite_number,
)

load_dotenv()


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class UnknownFieldPolicy(str, Enum):
    """What to do with fields the schema does not declare."""

    WARN = "warn"
    ERROR = "error"
    IGNORE = "ignore"


UNKNOWN_FIELDS_ENV = "CVBUILD_UNKNOWN_FIELDS"


def resolve_unknown_field_policy(
    unknown_fields: Optional[UnknownFieldPolicy | str] = None,
) -> UnknownFieldPolicy:
    """
    Resolve an unknown-field policy, falling back to CVBUILD_UNKNOWN_FIELDS (or "warn").

    The environment is read on each call, not at import.

    Raises:
        ValueError: If the value (or the environment variable) is not a policy name
    """
    if isinstance(unknown_fields, UnknownFieldPolicy):
        return unknown_fields

    source = "unknown_fields"
    if unknown_fields is None:
        source = UNKNOWN_FIELDS_ENV
        unknown_fields = os.getenv(UNKNOWN_FIELDS_ENV, "warn")

    try:
        return UnknownFieldPolicy(unknown_fields.strip().lower())
    except ValueError as e:
        choices = ", ".join(policy.value for policy in UnknownFieldPolicy)
        raise ValueError(f"{source} must be one of {choices}, got {unknown_fields!r}") from e


_PATH_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def path_sort_key(path: str) -> Tuple[Tuple[int, int, str], ...]:
    """
    Sort key for field paths that orders list indices numerically.

    'experience[2].company' sorts before 'experience[10].company'.
    """
    key = []
    for name, index in _PATH_TOKEN.findall(path):
        if index:
            key.append((0, int(index), ""))
        else:
            key.append((1, 0, name))
    return tuple(key)


@dataclass(frozen=True)
class ValidationIssue:
    """
    One validation finding.

    Attributes:
        path: Field path (e.g., 'experience[0].company')
        message: What is wrong
        expected: Expected type or constraint
        actual: Description of the value found ("missing" if absent)
        severity: error or warning
    """

    path: str
    message: str
    expected: Optional[str] = None
    actual: Optional[str] = None
    severity: Severity = Severity.ERROR

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def format(self) -> str:
        """Render as a single 'path: problem' line."""
        prefix = "warning: " if self.severity is Severity.WARNING else ""
        return f"{self.path}: {prefix}{self.message}"


@dataclass(frozen=True)
class ValidationReport:
    """
    Result of validating one document. Created fresh per call and never mutated.

    An empty report (no issues at all) means the document is valid and clean;
    a report holding only warnings is still valid.
    """

    issues: Tuple[ValidationIssue, ...] = field(default_factory=tuple)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [issue for issue in self.issues if not issue.is_error]

    @property
    def is_valid(self) -> bool:
        """True when no error-level issues were found."""
        return not self.errors

    @property
    def is_empty(self) -> bool:
        return not self.issues

    def sorted(self) -> List[ValidationIssue]:
        """Issues ordered by field path, errors before warnings at the same path."""
        return sorted(
            self.issues,
            key=lambda issue: (path_sort_key(issue.path), issue.severity is Severity.WARNING),
        )

    def format_lines(self, include_warnings: bool = True) -> List[str]:
        """One 'path: problem' line per issue, sorted by field path."""
        return [
            issue.format()
            for issue in self.sorted()
            if include_warnings or issue.is_error
        ]

    def paths(self, severity: Optional[Severity] = None) -> List[str]:
        return [
            issue.path for issue in self.sorted() if severity is None or issue.severity is severity
        ]


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


class _Walker:
    """Accumulates issues while walking a record against its schema."""

    def __init__(self, unknown_fields: UnknownFieldPolicy):
        self.unknown_fields = unknown_fields
        self.issues: List[ValidationIssue] = []

    def error(self, path: str, message: str, expected: str = None, actual: str = None) -> None:
        self.issues.append(ValidationIssue(path, message, expected, actual, Severity.ERROR))

    def type_error(self, path: str, expected: str, value: Value) -> None:
        actual = describe(value)
        message = f"expected {expected}, got {actual}"
        if isinstance(value, UnsupportedValue) and value.hint:
            message += f" ({value.hint})"
        self.error(path, message, expected=expected, actual=actual)

    def check_supported(self, value: Value, path: str) -> None:
        """Report unsupported data anywhere inside an undeclared value."""
        if isinstance(value, UnsupportedValue):
            actual = describe(value)
            message = f"unsupported {actual}"
            if value.hint:
                message += f", {value.hint}"
            self.error(path, message, actual=actual)
        elif isinstance(value, ListValue):
            for i, item in enumerate(value.items):
                self.check_supported(item, f"{path}[{i}]")
        elif isinstance(value, RecordValue):
            for name, item in value.fields:
                self.check_supported(item, _join(path, name))

    def check_record(self, record: RecordValue, schema: RecordSchema, path: str) -> None:
        for spec in schema.fields:
            field_path = _join(path, spec.name)
            value = record.get(spec.name)
            if value is None:
                if spec.required:
                    self.error(
                        field_path,
                        "required field is missing",
                        expected=spec.type.value,
                        actual="missing",
                    )
                continue
            self.check_field(value, spec, field_path)

        for name in record.keys():
            if name in schema:
                continue
            field_path = _join(path, name)
            # Undeclared fields are still converted, whatever the policy
            self.check_supported(record.get(name), field_path)
            if self.unknown_fields is UnknownFieldPolicy.IGNORE:
                continue
            severity = (
                Severity.ERROR
                if self.unknown_fields is UnknownFieldPolicy.ERROR
                else Severity.WARNING
            )
            self.issues.append(
                ValidationIssue(
                    field_path,
                    f"field is not declared in record '{schema.name}'",
                    actual=describe(record.get(name)),
                    severity=severity,
                )
            )

    def check_field(self, value: Value, spec: FieldSpec, path: str) -> None:
        field_type = spec.type

        if field_type is FieldType.STRING:
            # Date-shaped text in documents loaded without a schema is still text
            if not isinstance(value, (StringValue, DateValue)):
                self.type_error(path, "string", value)

        elif field_type is FieldType.NUMBER:
            if not isinstance(value, NumberValue):
                self.type_error(path, "number", value)
            elif not is_finite_number(value):
                self.error(
                    path, f"number must be finite, got {value.value!r}", "number", describe(value)
                )

        elif field_type is FieldType.BOOLEAN:
            if not isinstance(value, BoolValue):
                self.type_error(path, "boolean", value)

        elif field_type is FieldType.DATE:
            self.check_date(value, path)

        elif field_type is FieldType.LIST_OF_STRING:
            if not isinstance(value, ListValue):
                self.type_error(path, "list of strings", value)
                return
            for i, item in enumerate(value.items):
                if not isinstance(item, StringValue):
                    self.type_error(f"{path}[{i}]", "string", item)

        elif field_type is FieldType.LIST_OF_RECORD:
            if not isinstance(value, ListValue):
                self.type_error(path, f"list of '{spec.record.name}' records", value)
                return
            for i, item in enumerate(value.items):
                item_path = f"{path}[{i}]"
                if not isinstance(item, RecordValue):
                    self.type_error(item_path, f"'{spec.record.name}' record", item)
                    continue
                self.check_record(item, spec.record, item_path)

        elif field_type is FieldType.RECORD:
            if not isinstance(value, RecordValue):
                self.type_error(path, f"'{spec.record.name}' record", value)
                return
            self.check_record(value, spec.record, path)

        else:
            raise AssertionError(f"Unhandled field type: {field_type}")

    def check_date(self, value: Value, path: str) -> None:
        expected = "date (YYYY-MM or YYYY-MM-DD)"
        if isinstance(value, DateValue):
            problem = check_date_text(value.text)
        elif isinstance(value, StringValue):
            problem = check_date_text(value.value)
        else:
            self.type_error(path, expected, value)
            return

        if problem is not None:
            actual = describe(value)
            self.error(path, f"invalid date {actual}: {problem}", expected=expected, actual=actual)


def validate_document(
    document: Document,
    schema: Schema,
    unknown_fields: Optional[UnknownFieldPolicy | str] = None,
) -> ValidationReport:
    """
    Validate a document against a schema.

    Args:
        document: Loaded document
        schema: Loaded schema
        unknown_fields: Policy for undeclared fields ("warn", "error", "ignore").
            Defaults to CVBUILD_UNKNOWN_FIELDS (or "warn").

    Returns:
        ValidationReport holding every issue found

    Raises:
        ValueError: If the unknown-field policy is not recognised

    Example:
        >>> report = validate_document(document, schema)
        >>> for line in report.format_lines():
        ...     print(line)
        start_date: invalid date string '2024-13': month 13 out of range
    """
    walker = _Walker(resolve_unknown_field_policy(unknown_fields))
    walker.check_record(document.root, schema.root, "")
    return ValidationReport(issues=tuple(walker.issues))
