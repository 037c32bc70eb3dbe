"""Document parser selection by file extension."""

from __future__ import annotations

from pathlib import Path

from src.models.document import DocumentFormat, ParsedDocument

from .markdown import MarkdownParser, PlainTextParser

_EXTENSION_FORMATS: dict[str, DocumentFormat] = {
    ".md": "markdown",
    ".markdown": "markdown",
    ".txt": "plain",
}


def get_format_from_extension(file_path: str | Path) -> DocumentFormat:
    return _EXTENSION_FORMATS.get(Path(file_path).suffix.lower(), "plain")


def create_parser(format: DocumentFormat) -> MarkdownParser:
    if format == "markdown":
        return MarkdownParser()
    if format == "plain":
        return PlainTextParser()
    raise ValueError(f"Unsupported document format: {format}")


def parse_document(file_path: str | Path) -> ParsedDocument:
    """Parse a specification file, picking the parser from its extension."""
    return create_parser(get_format_from_extension(file_path)).parse_file(file_path)
