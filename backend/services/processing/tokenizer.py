"""
Tokenization shared by index building and querying.

Both sides must use the same Tokenizer settings: a word present verbatim in a
transcript is only retrievable if the query normalizes it to the same token.
"""
import re
from typing import FrozenSet, Iterable, Iterator, List, Optional, Tuple

from core.config import MIN_TOKEN_LENGTH, STOPWORDS

# ASCII \w runs, the split used by the published JS-built indexes;
# any other character separates words
WORD_PATTERN = re.compile(r"\w+", re.ASCII)


class Tokenizer:
    """Splits text on non-word boundaries and normalizes tokens."""

    def __init__(
        self,
        min_length: int = MIN_TOKEN_LENGTH,
        stopwords: Optional[Iterable[str]] = None,
    ):
        self.min_length = min_length
        self.stopwords: FrozenSet[str] = frozenset(
            word.lower() for word in (STOPWORDS if stopwords is None else stopwords)
        )

    def keep(self, token: str) -> bool:
        return len(token) >= self.min_length and token not in self.stopwords

    def tokenize(self, text: str) -> List[str]:
        """Return normalized tokens in order, duplicates included."""
        return [token for _, _, token in self.iter_spans(text)]

    def unique_tokens(self, text: str) -> List[str]:
        """Return normalized tokens in first-seen order without duplicates."""
        return list(dict.fromkeys(self.tokenize(text)))

    def iter_spans(self, text: str) -> Iterator[Tuple[int, int, str]]:
        """Yield (start, end, token) for kept tokens, offsets into the original text."""
        if not text:
            return
        for match in WORD_PATTERN.finditer(text):
            token = match.group().lower()
            if self.keep(token):
                yield match.start(), match.end(), token


default_tokenizer = Tokenizer()
