"""Query-time retrieval over an EmbeddingIndex."""

import logging
from typing import List, Sequence

from quizrag.errors import EmbeddingFailure, EmptyIndexError
from quizrag.models import RetrievalResult
from quizrag.rag.embeddings import Embedder
from quizrag.rag.index import EmbedFn, EmbeddingIndex

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 3


async def retrieve(
    query: str,
    embed: EmbedFn,
    index: EmbeddingIndex,
    k: int = DEFAULT_TOP_K,
) -> List[RetrievalResult]:
    """Embed ``query`` and return the ``k`` best matching chunks.

    An empty index yields an empty list without calling the embedder.

    Raises:
        EmbeddingFailure: If the embedding collaborator fails.
    """
    if k <= 0:
        return []
    if len(index) == 0:
        logger.info("Retrieval against an empty index, returning no results")
        return []

    try:
        vector = await embed(query)
    except EmbeddingFailure:
        raise
    except Exception as e:
        raise EmbeddingFailure(f"Query embedding failed: {e}") from e

    try:
        hits = index.query(vector, k)
    except EmptyIndexError:
        return []
    logger.debug(
        f"Retrieved {len(hits)} chunks for query {query[:50]!r}: "
        f"{[h.chunk.id for h in hits]}"
    )
    return hits


def format_context(results: Sequence[RetrievalResult]) -> str:
    """Join retrieved chunk texts into one grounding context."""
    return "\n\n".join(r.chunk.text for r in results)


class Retriever:
    """Retrieval bound to one embedder and one index."""

    def __init__(
        self, embedder: Embedder, index: EmbeddingIndex, top_k: int = DEFAULT_TOP_K
    ) -> None:
        self.embedder = embedder
        self.index = index
        self.top_k = top_k

    async def retrieve(self, query: str, k: int | None = None) -> List[RetrievalResult]:
        return await retrieve(
            query, self.embedder.embed, self.index, self.top_k if k is None else k
        )
