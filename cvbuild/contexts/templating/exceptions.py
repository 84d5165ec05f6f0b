"""Custom exceptions for the templating context with file and field references."""

from pathlib import Path
from typing import Optional

# Process exit codes shared by the CLI and BuildResult
EXIT_SUCCESS = 0
EXIT_VALIDATION_FAILED = 1
EXIT_CONVERSION_FAILED = 2
EXIT_NOT_FOUND = 3


class CVBuildError(Exception):
    """
    Base class for all build pipeline errors.

    Attributes:
        message: Error description
        exit_code: Process exit code the CLI reports for this error
    """

    exit_code = EXIT_CONVERSION_FAILED

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SchemaNotFoundError(CVBuildError):
    """Raised when the schema source file does not exist."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Schema not found: {self.path}")


class SchemaParseError(CVBuildError):
    """
    Raised when a schema definition is malformed.

    Attributes:
        message: Error description
        path: Schema file that failed to parse
        location: Dotted location inside the schema (e.g., 'records.job.fields.company')
    """

    exit_code = EXIT_VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        location: Optional[str] = None,
    ):
        self.path = path
        self.location = location

        parts = [message]
        if location:
            parts.append(f"At: {location}")
        if path:
            parts.append(f"Schema: {path}")

        super().__init__("\n".join(parts))
        self.message = message


class DocumentNotFoundError(CVBuildError):
    """Raised when the document source file does not exist."""

    exit_code = EXIT_NOT_FOUND

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(f"Document not found: {self.path}")


class DocumentParseError(CVBuildError):
    """Raised when a document file is not valid TOML/YAML/JSON or has no top-level mapping."""

    exit_code = EXIT_VALIDATION_FAILED

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(f"{message}\nDocument: {path}" if path else message)
        self.message = message


class ConversionError(CVBuildError):
    """
    Raised when a value has no representation in the target serialization.

    Attributes:
        message: Error description
        field_path: Path of the offending value (e.g., 'experience[0].start')
    """

    exit_code = EXIT_CONVERSION_FAILED

    def __init__(self, message: str, field_path: Optional[str] = None):
        self.field_path = field_path
        super().__init__(f"{field_path}: {message}" if field_path else message)
        self.message = message
