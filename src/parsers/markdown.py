"""Markdown parser: splits a specification document into heading sections."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from src.errors import DocumentParseError
from src.models.document import DocumentMetadata, DocumentSection, ParsedDocument

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")

INTRODUCTION_HEADING = "Introduction"


def parse_markdown_sections(content: str) -> list[DocumentSection]:
    """Split *content* on ATX headings.

    Non-blank text before the first heading becomes a level-0
    "Introduction" section. Line numbers are 1-based.
    """
    lines = content.split("\n")
    sections: list[DocumentSection] = []
    current: Optional[dict] = None
    body: list[str] = []

    def _close(end_line: int) -> None:
        current["content"] = "\n".join(body).strip()
        current["end_line"] = end_line
        sections.append(DocumentSection(**current))

    for number, line in enumerate(lines, start=1):
        match = _HEADING_RE.match(line)
        if match:
            if current is not None:
                _close(number - 1)
            current = {
                "heading": match.group(2).strip(),
                "content": "",
                "start_line": number,
                "end_line": number,
                "level": len(match.group(1)),
            }
            body = []
        elif current is not None:
            body.append(line)
        elif line.strip():
            current = {
                "heading": INTRODUCTION_HEADING,
                "content": "",
                "start_line": 1,
                "end_line": number,
                "level": 0,
            }
            body = [line]

    if current is not None:
        _close(len(lines))
    return sections


class MarkdownParser:
    """Parses Markdown (and plain text, which simply has no headings)."""

    format = "markdown"

    def parse_file(self, file_path: str | Path) -> ParsedDocument:
        path = Path(file_path)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise DocumentParseError(f"Specification file not found: {path}", str(path)) from e
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentParseError(f"Cannot read specification file {path}: {e}", str(path)) from e
        return self.parse_content(content, str(file_path))

    def parse_content(self, content: str, file_path: str) -> ParsedDocument:
        sections = parse_markdown_sections(content)
        title = next((s.heading for s in sections if s.level == 1), None)
        return ParsedDocument(
            file_path=file_path,
            format=self.format,
            raw_content=content,
            sections=sections,
            metadata=DocumentMetadata(
                title=title,
                line_count=len(content.split("\n")),
                character_count=len(content),
                section_count=len(sections),
            ),
        )


class PlainTextParser(MarkdownParser):
    format = "plain"
