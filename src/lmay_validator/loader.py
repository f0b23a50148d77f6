# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Document loading with a per-session cache.

The loader turns a documentation file on disk into a ParsedDocument (raw
text plus the YAML mapping) and then into a typed Document. Results are
memoized by canonical path in a DocumentCache owned by one validation
session, so a project run reads every file at most once.

Failures are raised as DocumentLoadError subclasses, each of which can be
turned into a Finding for the report:
- DocumentNotFoundError -> file_not_found
- EmptyDocumentError -> empty_file
- DocumentSyntaxError -> yaml_syntax_error (with line, column and snippet)
- DocumentReadError -> file_read_error
- InvalidDocumentError -> invalid_document_shape

Failed loads are cached as well; re-validation of a changed file needs a new
session (or an explicit invalidate()).
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from lmay_validator.models import (
    Document,
    DocumentShapeError,
    Finding,
    FindingType,
    Severity,
    ValidatorName,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

# Lines of context shown on each side of a syntax error
SNIPPET_CONTEXT_LINES = 2


def canonical_path(path: PathLike) -> Path:
    """Return the canonical absolute form of a path used as cache key."""
    return Path(os.path.abspath(os.fspath(path))).resolve()


class DocumentLoadError(Exception):
    """Base class for failures while loading a documentation file."""

    finding_type = FindingType.FILE_READ_ERROR

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(message)
        self.path = path
        self.message = message

    def to_finding(self, validator: str = ValidatorName.YAML) -> Finding:
        return Finding(
            type=self.finding_type,
            message=self.message,
            file=str(self.path),
            severity=Severity.ERROR,
            validator=validator,
        )


class DocumentNotFoundError(DocumentLoadError):
    finding_type = FindingType.FILE_NOT_FOUND


class EmptyDocumentError(DocumentLoadError):
    finding_type = FindingType.EMPTY_FILE


class DocumentReadError(DocumentLoadError):
    finding_type = FindingType.FILE_READ_ERROR


class DocumentSyntaxError(DocumentLoadError):
    """YAML parse failure with its position and a source excerpt."""

    finding_type = FindingType.YAML_SYNTAX_ERROR

    def __init__(
        self,
        path: Path,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        snippet: Optional[str] = None,
    ) -> None:
        super().__init__(path, message)
        self.line = line
        self.column = column
        self.snippet = snippet

    def to_finding(self, validator: str = ValidatorName.YAML) -> Finding:
        finding = super().to_finding(validator)
        finding.line = self.line
        finding.column = self.column
        finding.snippet = self.snippet
        return finding


class InvalidDocumentError(DocumentLoadError):
    """Parsed YAML does not have the shape of an LMAY document."""

    finding_type = FindingType.INVALID_DOCUMENT_SHAPE

    def __init__(self, path: Path, message: str, pointer: str = "") -> None:
        super().__init__(path, message)
        self.pointer = pointer

    def to_finding(self, validator: str = ValidatorName.YAML) -> Finding:
        finding = super().to_finding(validator)
        if self.pointer:
            finding.path = self.pointer
        return finding


@dataclass(frozen=True)
class ParsedDocument:
    """Raw text and parsed YAML data of one documentation file."""

    path: Path
    text: str
    data: Any


def build_snippet(text: str, line_index: int, context: int = SNIPPET_CONTEXT_LINES) -> str:
    """Extract the lines around a 0-based line index, marking the failing one.

    Example output for line_index=3::

            2: structure:
            3:   src:
        >>> 4:     path: [unclosed
            5:     type: directory
    """
    lines = text.split("\n")
    if not lines:
        return ""
    line_index = max(0, min(line_index, len(lines) - 1))
    start = max(0, line_index - context)
    end = min(len(lines), line_index + context + 1)

    snippet = []
    for i in range(start, end):
        marker = ">>> " if i == line_index else "    "
        snippet.append(f"{marker}{i + 1}: {lines[i]}")
    return "\n".join(snippet)


class DocumentCache:
    """Session-scoped memo of parsed and typed documents.

    Keys are canonical paths. Entries are either a successful result or the
    DocumentLoadError raised for that path. The cache is a plain dict and is
    meant to be used from one thread; parallel callers must populate it
    during a sequential discovery phase first.
    """

    def __init__(self) -> None:
        self._parsed: Dict[Path, Union[ParsedDocument, DocumentLoadError]] = {}
        self._documents: Dict[Path, Union[Document, DocumentLoadError]] = {}
        self.reads = 0

    def get_parsed(self, key: Path) -> Optional[Union[ParsedDocument, DocumentLoadError]]:
        return self._parsed.get(key)

    def put_parsed(self, key: Path, value: Union[ParsedDocument, DocumentLoadError]) -> None:
        self._parsed[key] = value

    def get_document(self, key: Path) -> Optional[Union[Document, DocumentLoadError]]:
        return self._documents.get(key)

    def put_document(self, key: Path, value: Union[Document, DocumentLoadError]) -> None:
        self._documents[key] = value

    def invalidate(self, key: Path) -> None:
        """Forget everything cached for a path."""
        self._parsed.pop(key, None)
        self._documents.pop(key, None)

    def clear(self) -> None:
        self._parsed.clear()
        self._documents.clear()

    def loaded_documents(self) -> Dict[Path, Document]:
        """Successfully loaded typed documents, keyed by canonical path."""
        return {
            key: value for key, value in self._documents.items() if isinstance(value, Document)
        }

    def __contains__(self, key: object) -> bool:
        return key in self._documents

    def __len__(self) -> int:
        return len(self._documents)


class DocumentLoader:
    """Loads documentation files through a DocumentCache.

    Usage:
        loader = DocumentLoader()
        document = loader.load("/project/root.lmay")
        again = loader.load("/project/./root.lmay")  # served from cache
    """

    def __init__(self, cache: Optional[DocumentCache] = None) -> None:
        self.cache = cache if cache is not None else DocumentCache()

    def parse(self, path: PathLike) -> ParsedDocument:
        """Read and parse a documentation file.

        Raises:
            DocumentNotFoundError: If the file does not exist.
            EmptyDocumentError: If the file is blank after trimming.
            DocumentSyntaxError: If the YAML cannot be parsed.
            DocumentReadError: If the file cannot be read.
        """
        key = canonical_path(path)
        cached = self.cache.get_parsed(key)
        if cached is not None:
            if isinstance(cached, DocumentLoadError):
                raise cached
            return cached

        try:
            parsed = self._parse_uncached(key)
        except DocumentLoadError as e:
            self.cache.put_parsed(key, e)
            raise
        self.cache.put_parsed(key, parsed)
        return parsed

    def load(self, path: PathLike) -> Document:
        """Load a typed Document.

        Raises:
            DocumentLoadError: Any parse failure, or InvalidDocumentError when
                the YAML does not have the shape of an LMAY document.
        """
        key = canonical_path(path)
        cached = self.cache.get_document(key)
        if cached is not None:
            if isinstance(cached, DocumentLoadError):
                raise cached
            return cached

        try:
            parsed = self.parse(key)
            try:
                document = Document.from_mapping(key, parsed.data)
            except DocumentShapeError as e:
                raise InvalidDocumentError(key, f"Invalid LMAY document: {e}", e.pointer) from e
        except DocumentLoadError as e:
            self.cache.put_document(key, e)
            raise

        self.cache.put_document(key, document)
        return document

    def try_load(self, path: PathLike) -> Optional[Document]:
        """Load a document, returning None instead of raising."""
        try:
            return self.load(path)
        except DocumentLoadError:
            return None

    def _parse_uncached(self, key: Path) -> ParsedDocument:
        if not key.exists():
            raise DocumentNotFoundError(key, f"File not found: {key}")
        if key.is_dir():
            raise DocumentReadError(key, f"Path is a directory, not a file: {key}")

        try:
            text = key.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise DocumentReadError(key, f"Unable to decode file as UTF-8: {e}") from e
        except OSError as e:
            raise DocumentReadError(key, f"Error reading file: {e}") from e
        self.cache.reads += 1

        if not text.strip():
            raise EmptyDocumentError(key, "The LMAY file is empty")

        try:
            data = yaml.safe_load(text)
        except yaml.MarkedYAMLError as e:
            mark = e.problem_mark
            line = mark.line + 1 if mark is not None else None
            column = mark.column + 1 if mark is not None else None
            snippet = build_snippet(text, mark.line) if mark is not None else None
            message = str(e.problem or e).strip()
            if line is not None:
                message = f"{message} (line {line}, column {column})"
            raise DocumentSyntaxError(key, message, line, column, snippet) from e
        except yaml.YAMLError as e:
            raise DocumentSyntaxError(key, str(e)) from e

        logger.debug(f"Parsed documentation file {key}")
        return ParsedDocument(path=key, text=text, data=data)
