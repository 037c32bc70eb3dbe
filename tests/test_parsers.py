"""Tests for specification document parsing."""

import pytest

from src.errors import DocumentParseError
from src.parsers.document import create_parser, get_format_from_extension, parse_document
from src.parsers.markdown import MarkdownParser, PlainTextParser, parse_markdown_sections


class TestParseMarkdownSections:
    """Tests for heading-based section splitting."""

    def test_sections_and_line_ranges(self):
        content = "# Title\nIntro line\n\n## Login\nUsers sign in.\n### Errors\nShow a message."
        sections = parse_markdown_sections(content)

        assert [(s.heading, s.level) for s in sections] == [("Title", 1), ("Login", 2), ("Errors", 3)]
        assert sections[0].start_line == 1
        assert sections[0].end_line == 3
        assert sections[0].content == "Intro line"
        assert sections[1].start_line == 4
        assert sections[2].end_line == 7

    def test_text_before_first_heading_is_introduction(self):
        sections = parse_markdown_sections("\nSome preamble\n# First\nBody")
        assert sections[0].heading == "Introduction"
        assert sections[0].level == 0
        assert sections[0].content == "Some preamble"
        assert sections[1].heading == "First"

    def test_no_headings_single_introduction(self):
        sections = parse_markdown_sections("just text\nmore text")
        assert len(sections) == 1
        assert sections[0].level == 0

    def test_empty_document(self):
        assert parse_markdown_sections("") == []

    def test_hash_without_space_is_not_heading(self):
        sections = parse_markdown_sections("# Real\n#hashtag line")
        assert len(sections) == 1
        assert "#hashtag" in sections[0].content


class TestMarkdownParser:
    """Tests for MarkdownParser.parse_file."""

    def test_parse_file_metadata(self, spec_file):
        doc = MarkdownParser().parse_file(spec_file)
        assert doc.format == "markdown"
        assert doc.metadata.title == "Todo App"
        assert doc.metadata.section_count == 3
        assert doc.metadata.character_count == len(doc.raw_content)
        assert doc.file_path == str(spec_file)

    def test_title_none_without_h1(self):
        doc = MarkdownParser().parse_content("## Only h2\nbody", "x.md")
        assert doc.metadata.title is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentParseError, match="not found") as exc_info:
            MarkdownParser().parse_file(tmp_path / "missing.md")
        assert exc_info.value.file_path.endswith("missing.md")


class TestParserSelection:
    """Tests for choosing a parser by extension."""

    @pytest.mark.parametrize("name,expected", [
        ("spec.md", "markdown"),
        ("SPEC.MARKDOWN", "markdown"),
        ("notes.txt", "plain"),
        ("README", "plain"),
    ])
    def test_format_from_extension(self, name, expected):
        assert get_format_from_extension(name) == expected

    def test_create_parser(self):
        assert isinstance(create_parser("plain"), PlainTextParser)
        with pytest.raises(ValueError):
            create_parser("docx")

    def test_parse_plain_text(self, tmp_path):
        path = tmp_path / "spec.txt"
        path.write_text("The page shows a search box.", encoding="utf-8")
        doc = parse_document(path)
        assert doc.format == "plain"
        assert doc.sections[0].heading == "Introduction"
