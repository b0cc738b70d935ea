"""Text chunking utilities.

This module splits knowledge base documents into retrievable chunks.
"""

import logging
import re
from typing import Iterable, List

from langchain_text_splitters import RecursiveCharacterTextSplitter

from quizrag.errors import EmptyCorpusError
from quizrag.models import Chunk, RawDocument

logger = logging.getLogger(__name__)

CHUNK_POLICIES = ("paragraph", "window")

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def split_paragraphs(text: str) -> List[str]:
    """Split text on blank lines, dropping empty paragraphs.

    Args:
        text: Text to split.

    Returns:
        List of stripped paragraphs.
    """
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def split_windows(text: str, chunk_size: int, chunk_overlap: int) -> List[str]:
    """Split text into overlapping character windows.

    Args:
        text: Text to split.
        chunk_size: Target size for each chunk.
        chunk_overlap: Overlap between consecutive chunks.

    Returns:
        List of text chunks.
    """
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        length_function=len,
        separators=["\n\n", "\n", " ", ""],
    )
    return [c for c in splitter.split_text(text) if c.strip()]


def load_corpus(
    documents: Iterable[RawDocument],
    policy: str = "paragraph",
    chunk_size: int = 500,
    chunk_overlap: int = 50,
) -> List[Chunk]:
    """Split raw documents into chunks with stable ids.

    Chunk ids have the form ``{source_id}-{n}`` where ``n`` counts the
    chunks of a document from zero, so the same corpus always yields the
    same ids.

    Args:
        documents: Documents supplied by the knowledge base.
        policy: ``paragraph`` or ``window``.
        chunk_size: Window size for the ``window`` policy.
        chunk_overlap: Window overlap for the ``window`` policy.

    Returns:
        Chunks in document order.

    Raises:
        ValueError: If the policy is unknown.
        EmptyCorpusError: If no chunks result.
    """
    if policy not in CHUNK_POLICIES:
        raise ValueError(
            f"Unknown chunk policy {policy!r}, expected one of {CHUNK_POLICIES}"
        )

    chunks: List[Chunk] = []
    seen_sources: set[str] = set()
    for doc in documents:
        if doc.source_id in seen_sources:
            raise ValueError(f"Duplicate document source_id {doc.source_id!r}")
        seen_sources.add(doc.source_id)
        if policy == "paragraph":
            pieces = split_paragraphs(doc.text)
        else:
            pieces = split_windows(doc.text, chunk_size, chunk_overlap)
        for n, piece in enumerate(pieces):
            chunks.append(
                Chunk(
                    id=f"{doc.source_id}-{n}",
                    text=piece,
                    topic=doc.topic,
                    source_id=doc.source_id,
                )
            )

    if not chunks:
        raise EmptyCorpusError("Corpus produced no chunks")

    logger.info(f"Loaded corpus into {len(chunks)} chunks using {policy} policy")
    return chunks
