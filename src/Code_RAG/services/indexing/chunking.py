"""Text chunking strategies used before embedding."""

from __future__ import annotations

import re

DOC_EXTENSIONS = frozenset({".md", ".mdx", ".txt", ".rst", ".adoc", ".org"})
CHARS_PER_PARAGRAPH = 150

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def create_chunks(content: str, chunk_size: int = 512, overlap: int = 50) -> list[str]:
    """Fixed-size character windows, each overlapping the previous by ``overlap``.

    Whitespace-only windows are dropped.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    chunks: list[str] = []
    position = 0
    length = len(content)
    while position < length:
        end = min(position + chunk_size, length)
        chunk = content[position:end]
        if chunk.strip():
            chunks.append(chunk)
        if end >= length:
            break
        next_position = end - overlap
        position = next_position if position < next_position else end
    return chunks


def create_paragraph_chunks(content: str, per_chunk: int = 3, overlap: int = 1) -> list[str]:
    """Windows of ``per_chunk`` paragraphs joined by blank lines.

    Content with no more than ``per_chunk`` paragraphs becomes a single chunk.
    """
    if per_chunk <= 0:
        raise ValueError("per_chunk must be positive")
    paragraphs = [part.strip() for part in _PARAGRAPH_BREAK.split(content)]
    paragraphs = [part for part in paragraphs if part]
    if len(paragraphs) <= per_chunk:
        stripped = content.strip()
        return [stripped] if stripped else []

    chunks: list[str] = []
    position = 0
    while position < len(paragraphs):
        end = min(position + per_chunk, len(paragraphs))
        chunks.append("\n\n".join(paragraphs[position:end]))
        if end >= len(paragraphs):
            break
        next_position = end - overlap
        position = next_position if position < next_position else end
    return chunks


def is_documentation(extension: str) -> bool:
    return extension.lower() in DOC_EXTENSIONS


def create_smart_chunks(
    content: str,
    extension: str,
    *,
    chunk_size: int = 512,
    overlap: int = 50,
    paragraphs_per_chunk: int | None = None,
    paragraph_overlap: int | None = None,
) -> list[str]:
    """Paragraph chunks for prose files, character chunks for everything else.

    Paragraph counts default to an estimate of ``CHARS_PER_PARAGRAPH``
    characters per paragraph so both strategies produce similar sizes.
    """
    if is_documentation(extension):
        per_chunk = paragraphs_per_chunk or max(1, chunk_size // CHARS_PER_PARAGRAPH)
        para_overlap = (
            paragraph_overlap
            if paragraph_overlap is not None
            else max(1, overlap // CHARS_PER_PARAGRAPH)
        )
        return create_paragraph_chunks(content, per_chunk, para_overlap)
    return create_chunks(content, chunk_size, overlap)


__all__ = [
    "DOC_EXTENSIONS",
    "create_chunks",
    "create_paragraph_chunks",
    "create_smart_chunks",
    "is_documentation",
]
