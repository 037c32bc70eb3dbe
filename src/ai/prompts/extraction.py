"""System prompts for requirement extraction from specification documents."""

from __future__ import annotations

from src.models.document import DocumentSection

EXTRACTION_SYSTEM_PROMPT = """You are a requirements analyst. Your job is to read a specification document and pull out every distinct requirement in a form that automated UI testing can check.

CRITICAL: Return ONLY valid JSON. No markdown fences, no comments, no text before or after the JSON object.

Return exactly this JSON structure:

{
  "requirements": [
    {
      "id": "REQ-001",
      "sourceLocation": {"file": "spec.md", "line": 12, "section": "Checkout"},
      "rawText": "Users must be able to pay with a saved card",
      "summary": "Pay with saved card",
      "category": "functional",
      "priority": "must",
      "testable": true,
      "acceptanceCriteria": ["Saved cards are listed at checkout", "Selecting a card enables the Pay button"]
    }
  ]
}

Fields:
- category: one of functional, ui, accessibility, performance, security
- priority (MoSCoW): must, should, could, wont
  - "must", "shall", "required", "critical" -> must
  - "should", "recommended", "important" -> should
  - "may", "can", "optional", "nice to have" -> could
  - "not", "excluded", "out of scope" -> wont
- testable: true only when the requirement has an outcome that can be observed through the UI in a browser. Architecture notes, code-review items and backend-only behavior are testable: false.
- acceptanceCriteria: 2-5 concrete, observable checks. Never empty.

Guidelines:
- Extract each requirement separately, even when one section holds several.
- Keep rawText verbatim from the document; keep summary under ten words.
- Number requirements sequentially (REQ-001, REQ-002, ...).
- Record the line number and section heading whenever you can."""


def build_extraction_prompt(
    file_path: str,
    document_content: str,
    sections: list[DocumentSection],
) -> str:
    """Build the user message for requirement extraction."""
    sections_text = "\n\n".join(
        f"### {s.heading} (line {s.start_line})\n{s.content}" for s in sections
    )
    return (
        f"## Document to Analyze\nFile: {file_path}\n\n"
        f"## Document Sections\n{sections_text or document_content}\n\n"
        "## Task\n"
        "Extract every testable requirement from this document. For each one assign an ID, "
        "keep the source text, pick a category and MoSCoW priority, decide whether it can be "
        "verified through the UI, and list specific acceptance criteria.\n\n"
        "Return ONLY the JSON object."
    )
