import re

CONTEXT_BEFORE = 60
CONTEXT_AFTER = 200
ELLIPSIS = "..."


def find_snippet(text: str, query: str) -> tuple[int, str] | None:
    """Locate the first case-insensitive occurrence of query in text.

    Returns (match_index, snippet) where the snippet keeps up to 60 characters
    before the match and up to 200 after it, with "..." marking truncation.
    Returns None when query is empty or absent.
    """
    if not query:
        return None
    match = re.search(re.escape(query), text, re.IGNORECASE)
    if match is None:
        return None
    index = match.start()
    start = max(0, index - CONTEXT_BEFORE)
    end = min(len(text), match.end() + CONTEXT_AFTER)
    snippet = text[start:end]
    if start > 0:
        snippet = ELLIPSIS + snippet
    if end < len(text):
        snippet = snippet + ELLIPSIS
    return index, snippet


def leading_snippet(text: str) -> str:
    """Preview used when only the document title matched."""
    return text[:CONTEXT_AFTER]
