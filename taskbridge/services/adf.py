"""Plain text <-> Atlassian Document Format conversion"""

from typing import Any, Dict, List, Optional


def text_to_adf(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Wrap plain text into an ADF document, one paragraph per line."""
    if not text:
        return None
    paragraphs: List[Dict[str, Any]] = []
    for line in text.split("\n"):
        if line == "":
            paragraphs.append({"type": "paragraph"})
            continue
        paragraphs.append({"type": "paragraph", "content": [{"type": "text", "text": line}]})
    return {"type": "doc", "version": 1, "content": paragraphs}


def _extract_text(node: Any) -> str:
    if not isinstance(node, dict):
        return ""
    if node.get("type") == "text":
        return node.get("text") or ""
    if node.get("type") == "hardBreak":
        return "\n"
    return "".join(_extract_text(child) for child in node.get("content") or [])


def adf_to_text(doc: Any) -> str:
    """Extract text from an ADF document, one line per top-level block.

    Plain strings (Jira API v2 style bodies) are returned unchanged.
    """
    if not doc:
        return ""
    if isinstance(doc, str):
        return doc
    if not isinstance(doc, dict):
        return str(doc)
    return "\n".join(_extract_text(block) for block in doc.get("content") or [])


class AdfFormatter:
    """Format converter used for every body crossing the Jira boundary"""

    def to_remote(self, text: Optional[str]) -> Optional[Dict[str, Any]]:
        return text_to_adf(text)

    def from_remote(self, blob: Any) -> str:
        return adf_to_text(blob)
