"""
Match span helpers and HTML highlighting for search excerpts.
"""
import html
from typing import Iterable, List, Tuple

Span = Tuple[int, int]


def merge_spans(spans: Iterable[Span]) -> List[Span]:
    """Sort spans and merge the ones that overlap or touch."""
    merged: List[Span] = []
    for start, end in sorted(spans):
        if merged and start <= merged[-1][1]:
            if end > merged[-1][1]:
                merged[-1] = (merged[-1][0], end)
        else:
            merged.append((start, end))
    return merged


def highlight(text: str, spans: Iterable[Span], tag: str = "mark") -> str:
    """
    Wrap each span of text in <tag>...</tag>.

    Text outside and inside the spans is HTML-escaped, so the result is safe
    to render as markup.
    """
    parts = []
    last = 0
    for start, end in merge_spans(spans):
        parts.append(html.escape(text[last:start]))
        parts.append(f"<{tag}>{html.escape(text[start:end])}</{tag}>")
        last = end
    parts.append(html.escape(text[last:]))
    return "".join(parts)
