"""Parsed specification document structures."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

DocumentFormat = Literal["markdown", "plain"]


class DocumentSection(BaseModel):
    heading: str
    content: str = ""
    start_line: int  # 1-indexed
    end_line: int
    level: int  # 0 for the implicit introduction section


class DocumentMetadata(BaseModel):
    title: Optional[str] = None
    line_count: int = 0
    character_count: int = 0
    section_count: int = 0


class ParsedDocument(BaseModel):
    file_path: str
    format: DocumentFormat = "markdown"
    raw_content: str = ""
    sections: list[DocumentSection] = Field(default_factory=list)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
