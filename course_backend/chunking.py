"""Fixed-size character chunking with overlap."""

from __future__ import annotations


def chunk_text(text: str, chunk_size: int = 1024, overlap: int = 200) -> list[str]:
    """Split *text* into windows of ``chunk_size`` characters.

    Consecutive windows share ``overlap`` characters so a sentence cut at
    a boundary still appears whole in one chunk.  Whitespace-only windows
    are dropped.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if not 0 <= overlap < chunk_size:
        raise ValueError("overlap must be in [0, chunk_size)")

    text = text.strip()
    if not text:
        return []

    step = chunk_size - overlap
    chunks: list[str] = []
    start = 0
    while start < len(text):
        chunk = text[start:start + chunk_size].strip()
        if chunk:
            chunks.append(chunk)
        if start + chunk_size >= len(text):
            break
        start += step
    return chunks
