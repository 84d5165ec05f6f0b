"""
Document Loader

Reads human-editable CV data files (TOML, YAML or JSON) into Document values.

When a schema is given, declared fields are typed with it (e.g., valid date
strings in date fields become DateValue); undeclared fields are still loaded
so the validator can report them.
"""

import json
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from cvbuild.contexts.templating.exceptions import DocumentNotFoundError, DocumentParseError
from cvbuild.contexts.templating.schema import Schema
from cvbuild.contexts.templating.values import RecordValue, Value, record_from_native, to_native

# File suffix -> document format
DOCUMENT_FORMATS = {
    ".toml": "toml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
}


@dataclass(frozen=True)
class Document:
    """
    One complete structured-data source file.

    Attributes:
        root: Top-level fields and record lists
        source: File the document was loaded from (None when built in memory)
        format: Source format ("toml", "yaml", "json" or "native")
    """

    root: RecordValue
    source: Optional[Path] = None
    format: str = "native"

    def __eq__(self, other: object) -> bool:
        # Field-wise comparison; where a document came from is not part of its content
        if not isinstance(other, Document):
            return NotImplemented
        return self.root == other.root

    def __hash__(self) -> int:
        return hash(self.root)

    @classmethod
    def from_native(
        cls,
        data: Dict[str, Any],
        schema: Optional[Schema] = None,
        source: Optional[Path] = None,
        format: str = "native",
    ) -> "Document":
        """
        Build a Document from loaded data.

        Data with no document representation is kept as UnsupportedValue for
        the validator to report.

        Raises:
            DocumentParseError: If data is not a mapping
        """
        if not isinstance(data, dict):
            raise DocumentParseError(
                f"Document must be a mapping at the top level, got {type(data).__name__}",
                path=source,
            )
        record = schema.root if schema is not None else None
        return cls(root=record_from_native(data, record), source=source, format=format)

    @property
    def name(self) -> str:
        """Document identifier (source file stem, or the format for in-memory documents)."""
        return self.source.stem if self.source is not None else self.format

    @property
    def field_names(self) -> List[str]:
        """Top-level field names in source order."""
        return self.root.keys()

    def get(self, name: str) -> Optional[Value]:
        return self.root.get(name)

    def to_native(self) -> Dict[str, Any]:
        """Plain Python data in source key order."""
        return to_native(self.root)


def detect_format(path: Path) -> str:
    """
    Map a document path to its format by suffix.

    Raises:
        DocumentParseError: If the suffix is not a supported format
    """
    fmt = DOCUMENT_FORMATS.get(path.suffix.lower())
    if fmt is None:
        raise DocumentParseError(
            f"Unsupported document format '{path.suffix}'. Supported: {sorted(DOCUMENT_FORMATS)}",
            path=path,
        )
    return fmt


def _read_native(path: Path, fmt: str) -> Any:
    if fmt == "toml":
        with open(path, "rb") as f:
            return tomllib.load(f)
    if fmt == "yaml":
        return OmegaConf.to_container(OmegaConf.load(path), resolve=False)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_document(source: Path | str, schema: Optional[Schema] = None) -> Document:
    """
    Load a document file.

    Args:
        source: Path to a .toml, .yaml/.yml or .json file
        schema: Optional schema used to type declared fields

    Returns:
        Document

    Raises:
        DocumentNotFoundError: If the file does not exist
        DocumentParseError: If the file cannot be parsed or is not a mapping
    """
    path = Path(source)
    if not path.is_file():
        raise DocumentNotFoundError(path)

    fmt = detect_format(path)

    try:
        data = _read_native(path, fmt)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError, OmegaConfBaseException) as e:
        raise DocumentParseError(f"Invalid {fmt.upper()} document: {e}", path=path) from e
    except UnicodeDecodeError as e:
        raise DocumentParseError(f"Document is not valid UTF-8: {e}", path=path) from e

    return Document.from_native(data, schema=schema, source=path, format=fmt)
