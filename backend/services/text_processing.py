"""Title tokenization helpers shared by topic clustering and plugins."""

import re
from collections import Counter
from collections.abc import Iterable

STOPWORDS = frozenset({
    # EN
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
    "by", "is", "are", "was", "were", "be", "been", "this", "that", "it", "i", "you",
    "he", "she", "we", "they", "video", "vlog", "how", "why", "what",
    # PL
    "w", "z", "o", "na", "do", "dla", "po", "jak", "co", "czy", "jest", "są", "był",
    "będzie", "to", "tam", "ten", "ta", "te", "się", "nie", "ale", "lub", "albo", "film",
})

_NON_LETTERS = re.compile(r"[^\w\s]|[\d_]")


def clean_text(text: str) -> list[str]:
    """Lower-case, strip non-letters and stop words, keep tokens longer than 2 chars."""
    stripped = _NON_LETTERS.sub("", text.lower())
    return [w for w in stripped.split() if len(w) > 2 and w not in STOPWORDS]


def top_words(texts: Iterable[str], n: int = 3) -> str:
    """Comma-separated most frequent tokens across ``texts``."""
    counts = Counter()
    for text in texts:
        counts.update(clean_text(text))
    return ", ".join(word for word, _ in counts.most_common(n))


def jaccard_similarity(first: str, second: str) -> float:
    a, b = set(clean_text(first)), set(clean_text(second))
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)
