"""Best-effort extraction of an HTML document from model output.

A heuristic, not a parser. The rule order is fixed because scores are
compared across runs: the same text must always yield the same artifact.

1. A fenced code block tagged ``html``.
2. The first fenced code block of any kind.
3. An ``<html ...>`` through ``</html>`` span.
4. Everything from the first ``<`` to the last ``>``.
5. The trimmed text itself.
"""

from __future__ import annotations

import re

_FENCED_HTML = re.compile(r"```html\s*([\s\S]*?)```", re.IGNORECASE)
_FENCED_ANY = re.compile(r"```[a-zA-Z]*\s*([\s\S]*?)```")
_HTML_DOCUMENT = re.compile(r"<html[\s\S]*</html>", re.IGNORECASE)


def extract_html(text: str | None) -> str:
    """Return the HTML artifact contained in a raw completion.

    Never raises. Empty input yields an empty string.
    """
    if not text:
        return ""

    match = _FENCED_HTML.search(text)
    if match and match.group(1):
        return match.group(1).strip()

    match = _FENCED_ANY.search(text)
    if match and match.group(1):
        return match.group(1).strip()

    match = _HTML_DOCUMENT.search(text)
    if match:
        return match.group(0)

    start = text.find("<")
    end = text.rfind(">")
    if start != -1 and end > start:
        return text[start : end + 1].strip()

    return text.strip()
