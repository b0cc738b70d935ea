"""Exact cosine-similarity index over corpus chunks."""

import asyncio
import logging
from typing import Awaitable, Callable, List, Sequence

import faiss
import numpy as np

from quizrag.errors import EmbeddingFailure, EmptyIndexError
from quizrag.models import Chunk, IndexEntry, RetrievalResult

logger = logging.getLogger(__name__)

EmbedFn = Callable[[str], Awaitable[Sequence[float]]]


def _normalize(vecs: np.ndarray) -> np.ndarray:
    # Computed in float64; zero rows stay zero so their inner product is 0.
    vecs = np.asarray(vecs, dtype=np.float64)
    norms = np.linalg.norm(vecs, axis=1, keepdims=True)
    safe = np.where(norms == 0, 1.0, norms)
    return vecs / safe


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero norm."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = np.linalg.norm(va) * np.linalg.norm(vb)
    if denom == 0:
        return 0.0
    return float(np.dot(va, vb) / denom)


class EmbeddingIndex:
    """Immutable vector index mapping each chunk to its embedding.

    Inner product search on normalized vectors equals cosine similarity.
    FAISS searches float32 copies; every candidate is re-scored against
    the float64 unit vectors, and the whole corpus is scored, so results
    are exact.
    """

    def __init__(self, entries: Sequence[IndexEntry]) -> None:
        self._entries: tuple[IndexEntry, ...] = tuple(entries)
        self.dim: int | None = None
        self._index = None
        self._unit: np.ndarray | None = None
        ids = [e.chunk.id for e in self._entries]
        if len(set(ids)) != len(ids):
            raise ValueError("Chunk ids must be unique within an index")
        if not self._entries:
            return

        dims = {len(e.vector) for e in self._entries}
        if len(dims) != 1:
            raise EmbeddingFailure(
                f"Embedding dimensions differ across chunks: {sorted(dims)}"
            )
        self.dim = dims.pop()
        if self.dim == 0:
            raise EmbeddingFailure("Embedding collaborator returned empty vectors")

        self._unit = _normalize(np.array([e.vector for e in self._entries]))
        self._index = faiss.IndexFlatIP(self.dim)
        self._index.add(np.ascontiguousarray(self._unit, dtype=np.float32))

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[IndexEntry, ...]:
        return self._entries

    @classmethod
    async def build(
        cls,
        chunks: Sequence[Chunk],
        embed: EmbedFn,
        concurrency: int = 1,
    ) -> "EmbeddingIndex":
        """Embed every chunk and build an index.

        The collaborator is called once per chunk. With ``concurrency``
        above one, calls overlap up to that bound; vectors are still
        assigned to chunks by position.

        Args:
            chunks: Chunks to index, in insertion order.
            embed: Async text-to-vector collaborator.
            concurrency: Maximum embedding calls in flight.

        Returns:
            A new index.

        Raises:
            EmbeddingFailure: If any embedding call fails or the vectors
                have inconsistent dimensions. No partial index is kept.
        """
        semaphore = asyncio.Semaphore(max(1, concurrency))
        aborted = asyncio.Event()

        async def _embed_one(chunk: Chunk) -> tuple[float, ...] | None:
            async with semaphore:
                # Chunks still queued behind a failure are never embedded.
                if aborted.is_set():
                    return None
                try:
                    vector = await embed(chunk.text)
                except EmbeddingFailure:
                    aborted.set()
                    raise
                except Exception as e:
                    aborted.set()
                    raise EmbeddingFailure(
                        f"Embedding failed for chunk {chunk.id}: {e}"
                    ) from e
            return tuple(float(x) for x in vector)

        tasks = [asyncio.ensure_future(_embed_one(c)) for c in chunks]
        try:
            vectors = await asyncio.gather(*tasks)
        except EmbeddingFailure as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.error(f"Index build aborted: {e}")
            raise

        index = cls(
            [IndexEntry(chunk=c, vector=v) for c, v in zip(chunks, vectors)]
        )
        logger.info(f"Built index with {len(index)} entries (dim={index.dim})")
        return index

    def query(self, vector: Sequence[float], k: int) -> List[RetrievalResult]:
        """Return the ``k`` chunks most similar to ``vector``.

        Results are ordered by descending score; equal scores keep
        insertion order.

        Raises:
            EmptyIndexError: If the index has no entries.
            EmbeddingFailure: If the vector dimension does not match.
        """
        if k <= 0:
            return []
        if self._index is None:
            raise EmptyIndexError("Index has no entries")
        if len(vector) != self.dim:
            raise EmbeddingFailure(
                f"Query vector has dimension {len(vector)}, index expects {self.dim}"
            )

        q = _normalize(np.array([vector]))
        total = self._index.ntotal
        _, idxs = self._index.search(np.ascontiguousarray(q, dtype=np.float32), total)
        candidates = [int(idx) for idx in idxs[0].tolist() if 0 <= idx < total]
        # float32 scores lose near-ties; rank on float64 cosines instead.
        exact = self._unit[candidates] @ q[0]
        ranked = sorted(
            zip(exact.tolist(), candidates),
            key=lambda pair: (-pair[0], pair[1]),
        )
        return [
            RetrievalResult(chunk=self._entries[idx].chunk, score=score)
            for score, idx in ranked[:k]
        ]
