"""Text windowing and ranking helpers.

Chunks are cut on code points rather than words, so the result is the same
for any language and never depends on a tokenizer. Ranking uses cosine
similarity when embeddings exist and a keyword overlap score otherwise.
"""

import math
import re
from dataclasses import dataclass

from workrag.constants import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_CHUNKS,
    DEFAULT_TOP_K,
)

_TOKEN_RE = re.compile(r"[a-z0-9]+")
MIN_KEYWORD_LENGTH = 3


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
    max_chunks: int = DEFAULT_MAX_CHUNKS,
) -> list[str]:
    """Split text into overlapping character windows.

    Args:
        text: The text to chunk; leading and trailing whitespace is ignored
        chunk_size: Window length in characters (default: 1200)
        overlap: Characters shared by consecutive windows (default: 200).
            Values >= chunk_size are replaced by chunk_size // 4.
        max_chunks: Hard cap on the number of windows (default: 200)

    Returns:
        list[str]: Windows in document order. Whitespace-only windows are dropped.
    """
    text = (text or "").strip()
    if not text:
        return []

    if chunk_size <= 0:
        chunk_size = DEFAULT_CHUNK_SIZE
    if overlap < 0:
        overlap = 0
    if overlap >= chunk_size:
        overlap = chunk_size // 4
    if max_chunks <= 0:
        max_chunks = DEFAULT_MAX_CHUNKS

    step = chunk_size - overlap
    chunks: list[str] = []
    start = 0
    while start < len(text) and len(chunks) < max_chunks:
        end = min(start + chunk_size, len(text))
        window = text[start:end]
        if window.strip():
            chunks.append(window)
        if end == len(text):
            break
        start += step

    return chunks


def cosine_similarity(vec_a: list[float] | None, vec_b: list[float] | None) -> float:
    """Compute cosine similarity between two vectors.

    Args:
        vec_a: First embedding vector
        vec_b: Second embedding vector

    Returns:
        float: Cosine similarity, or 0.0 when either vector is empty, has zero
        magnitude, or the lengths differ.
    """
    if not vec_a or not vec_b or len(vec_a) != len(vec_b):
        return 0.0

    dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
    magnitude_a = math.sqrt(sum(a * a for a in vec_a))
    magnitude_b = math.sqrt(sum(b * b for b in vec_b))

    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return dot_product / (magnitude_a * magnitude_b)


@dataclass(frozen=True)
class ScoredIndex:
    """Position of an item in its source list together with its relevance score."""

    index: int
    score: float


def top_k(scored: list[ScoredIndex], k: int = DEFAULT_TOP_K) -> list[ScoredIndex]:
    """Return the k best entries, highest score first.

    The sort is stable, so equal scores keep their original order.
    """
    if k <= 0:
        k = DEFAULT_TOP_K
    return sorted(scored, key=lambda item: item.score, reverse=True)[:k]


def keyword_score(query: str, text: str) -> float:
    """Score text by how often the query's keywords occur in it.

    Tokens are lower-cased alphanumeric runs of at least three characters;
    each contributes its substring occurrence count in the lower-cased text.
    """
    tokens = _TOKEN_RE.findall((query or "").lower())
    if not tokens:
        return 0.0

    content = (text or "").lower()
    score = 0.0
    for token in tokens:
        if len(token) < MIN_KEYWORD_LENGTH:
            continue
        score += content.count(token)
    return score
