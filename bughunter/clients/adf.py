"""Atlassian Document Format (ADF) helpers.

Jira Cloud v3 takes rich-text fields such as ``description`` as an ADF
document rather than a string.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional


def build_document(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Wrap plain text as a single-paragraph ADF document.

    Returns None for empty or whitespace-only text. The text is not parsed:
    markup inside it reaches Jira as literal characters.
    """
    if text is None or not text.strip():
        return None
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": text}],
            }
        ],
    }


def _iter_text_nodes(adf: Any) -> Iterable[str]:
    if isinstance(adf, dict):
        if "text" in adf and isinstance(adf["text"], str):
            yield adf["text"]
        for v in adf.values():
            yield from _iter_text_nodes(v)
    elif isinstance(adf, list):
        for item in adf:
            yield from _iter_text_nodes(item)


def document_to_text(adf: Any, fallback: str = "") -> str:
    """Flatten an ADF document (or a legacy plain-string description) to text."""
    if isinstance(adf, str):
        return adf
    text = " ".join(t for t in _iter_text_nodes(adf) if t.strip())
    return text.strip() if text else fallback
