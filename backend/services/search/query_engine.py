"""
Relevance-ranked full-text search over a loaded archive snapshot.
"""
import re
from typing import FrozenSet, List, Optional, Pattern, Set

from core.config import (
    LONG_LINE_BONUS,
    MEDIUM_LINE_BONUS,
    PHRASE_MATCH_WEIGHT,
    SHORT_LINE_BONUS,
    TERM_FREQUENCY_WEIGHT,
)
from models.index_models import InvertedIndex
from models.search_models import PanelMatch, SearchMode, SearchOptions, SearchResult
from models.transcript_models import TranscriptDocument
from services.processing.tokenizer import Tokenizer, default_tokenizer
from services.search.highlighter import highlight, merge_spans
from services.search.transcript_store import TranscriptStore


def phrase_pattern(query: str) -> Optional[Pattern]:
    """Case-insensitive pattern for the whole query, any run of whitespace between words."""
    words = query.lower().split()
    if not words:
        return None
    return re.compile(r"\s+".join(re.escape(word) for word in words), re.IGNORECASE)


class QueryEngine:
    """
    Scores candidates as

        TERM_FREQUENCY_WEIGHT * (query token occurrences in the dialogue)
        + PHRASE_MATCH_WEIGHT * (whole-query occurrences within single lines)
        + a per-matched-line bonus that favors short, specific lines.
    """

    def __init__(
        self,
        tokenizer: Tokenizer = default_tokenizer,
        term_frequency_weight: float = TERM_FREQUENCY_WEIGHT,
        phrase_match_weight: float = PHRASE_MATCH_WEIGHT,
        short_line_bonus: float = SHORT_LINE_BONUS,
        medium_line_bonus: float = MEDIUM_LINE_BONUS,
        long_line_bonus: float = LONG_LINE_BONUS,
    ):
        self.tokenizer = tokenizer
        self.term_frequency_weight = term_frequency_weight
        self.phrase_match_weight = phrase_match_weight
        self.short_line_bonus = short_line_bonus
        self.medium_line_bonus = medium_line_bonus
        self.long_line_bonus = long_line_bonus

    def search(
        self,
        store: TranscriptStore,
        index: InvertedIndex,
        query: str,
        options: Optional[SearchOptions] = None,
    ) -> List[SearchResult]:
        """
        Return results sorted by descending score, ties by date ascending.

        Empty queries, and queries with no indexable tokens, return [].
        """
        options = options or SearchOptions()
        if not query or not query.strip():
            return []

        tokens = self.tokenizer.unique_tokens(query)
        if not tokens:
            return []

        candidates = self.candidates(index, tokens, options.mode)
        token_set = set(tokens)
        pattern = phrase_pattern(query)

        results = []
        for date in candidates:
            document = store.get(date)
            if document is None:
                continue
            result = self.score_document(document, token_set, pattern)
            if result.score > 0:
                results.append(result)

        results.sort(key=lambda r: (-r.score, r.date))
        start = max(0, options.offset)
        return results[start:start + max(0, options.limit)]

    def candidates(self, index: InvertedIndex, tokens: List[str], mode: SearchMode) -> FrozenSet[str]:
        postings = [index.postings(token) for token in tokens]
        if mode == SearchMode.ANY:
            return frozenset().union(*postings)
        # Intersect smallest first
        postings.sort(key=len)
        result: Set[str] = set(postings[0])
        for posting in postings[1:]:
            result &= posting
            if not result:
                break
        return frozenset(result)

    def score_document(
        self,
        document: TranscriptDocument,
        tokens: Set[str],
        pattern: Optional[Pattern],
    ) -> SearchResult:
        term_hits = 0
        phrase_hits = 0
        line_bonus = 0.0
        matches = []

        for panel, dialogue_index, line in document.iter_lines():
            token_spans = [
                (start, end) for start, end, token in self.tokenizer.iter_spans(line) if token in tokens
            ]
            phrase_spans = [m.span() for m in pattern.finditer(line)] if pattern else []
            if not token_spans and not phrase_spans:
                continue

            term_hits += len(token_spans)
            phrase_hits += len(phrase_spans)
            line_bonus += self.line_bonus(line)

            spans = merge_spans(token_spans + phrase_spans)
            matches.append(PanelMatch(
                panel_index=panel.index,
                dialogue_index=dialogue_index,
                text=line,
                spans=spans,
                highlighted=highlight(line, spans),
            ))

        score = (
            self.term_frequency_weight * term_hits
            + self.phrase_match_weight * phrase_hits
            + line_bonus
        )
        return SearchResult(date=document.date, score=score, matched_panels=matches)

    def line_bonus(self, line: str) -> float:
        if len(line) < 50:
            return self.short_line_bonus
        if len(line) < 100:
            return self.medium_line_bonus
        return self.long_line_bonus


# Global query engine instance
query_engine = QueryEngine()
