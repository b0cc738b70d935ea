import pytest

from quizrag.errors import EmbeddingFailure
from quizrag.models import Chunk, RetrievalResult
from quizrag.rag.chunker import load_corpus
from quizrag.rag.index import EmbeddingIndex
from quizrag.rag.retriever import DEFAULT_TOP_K, Retriever, format_context, retrieve


async def build_index(documents, embed):
    return await EmbeddingIndex.build(load_corpus(documents), embed)


@pytest.mark.asyncio
async def test_retrieve_top_one_returns_python_chunk(documents, embed):
    index = await build_index(documents, embed)

    results = await retrieve("What is a list in Python?", embed, index, k=1)

    assert len(results) == 1
    assert results[0].chunk.id == "py-0"
    assert results[0].chunk.topic == "Python"


@pytest.mark.asyncio
async def test_default_k_is_three(documents, embed):
    assert DEFAULT_TOP_K == 3
    index = await build_index(documents, embed)

    results = await retrieve("python web learning", embed, index)

    assert len(results) == 3
    scores = [r.score for r in results]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_empty_index_returns_empty_without_embedding():
    calls = []

    async def _embed(text):
        calls.append(text)
        return [1.0]

    results = await retrieve("anything", _embed, EmbeddingIndex([]))

    assert results == []
    assert calls == []


@pytest.mark.asyncio
async def test_embedding_errors_become_embedding_failure(documents, embed):
    index = await build_index(documents, embed)

    async def _broken(text):
        raise RuntimeError("model not loaded")

    with pytest.raises(EmbeddingFailure):
        await retrieve("What is a list?", _broken, index)


@pytest.mark.asyncio
async def test_retriever_uses_embedder_and_top_k(documents, embedder):
    index = await EmbeddingIndex.build(load_corpus(documents), embedder.embed)
    retriever = Retriever(embedder, index, top_k=2)

    results = await retriever.retrieve("What is HTTP on the web?")

    assert len(results) == 2
    assert results[0].chunk.id == "web-0"
    assert embedder.calls[-1] == "What is HTTP on the web?"
    assert len(await retriever.retrieve("web", k=1)) == 1


def test_format_context_joins_texts_in_rank_order():
    results = [
        RetrievalResult(chunk=Chunk(id="a", text="first", topic="T"), score=0.9),
        RetrievalResult(chunk=Chunk(id="b", text="second", topic="T"), score=0.5),
    ]
    assert format_context(results) == "first\n\nsecond"
    assert format_context([]) == ""
