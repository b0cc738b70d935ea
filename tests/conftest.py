import re

import pytest

from quizrag.config import Settings
from quizrag.models import RawDocument
from quizrag.rag.embeddings import Embedder
from quizrag.rag.generator import Generator

KEYWORD_AXES = [
    ("python", "list", "tuple"),
    ("learning", "model", "ml"),
    ("web", "http", "html"),
]


def keyword_vector(text: str) -> list[float]:
    """Three-axis bag-of-keywords vector (Python, ML, Web)."""
    words = re.findall(r"[a-z]+", text.lower())
    return [float(sum(words.count(k) for k in axis)) for axis in KEYWORD_AXES]


async def keyword_embed(text: str) -> list[float]:
    return keyword_vector(text)


class StubEmbedder(Embedder):
    def __init__(self):
        super().__init__()
        self.calls = []

    def _embed_sync(self, text: str) -> list[float]:
        self.calls.append(text)
        return keyword_vector(text)


class StubGenerator(Generator):
    """Generator returning queued responses, then a default.

    Queued exceptions are raised instead of returned.
    """

    def __init__(self, responses=None, default="Correct! Well done."):
        super().__init__("stub-model")
        self.is_ready = True
        self.responses = list(responses or [])
        self.default = default
        self.calls = []

    def _load(self) -> None:
        pass

    def _generate_sync(self, prompt, options):
        self.calls.append((prompt, options))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return self.default


@pytest.fixture
def settings():
    return Settings(
        backend="local",
        local_embed_model="stub-embed",
        local_gen_model="stub-gen",
        ibm_cloud_api_key="",
        watsonx_region="us-south",
        watsonx_project_id="",
        watsonx_embed_model="",
        watsonx_gen_model="",
        chunk_policy="paragraph",
        chunk_size=500,
        chunk_overlap=50,
        top_k=3,
        embed_concurrency=1,
        generation_timeout=0,
        knowledge_base_path="data/knowledge_base.json",
        log_level="INFO",
    )


@pytest.fixture
def documents():
    return [
        RawDocument(
            source_id="py",
            topic="Python",
            text="A list in Python is an ordered, mutable collection of items.",
        ),
        RawDocument(
            source_id="ml",
            topic="ML",
            text="Machine learning trains a model on labelled data.",
        ),
        RawDocument(
            source_id="web",
            topic="Web",
            text="HTTP is the protocol of the web; HTML structures pages.",
        ),
    ]


@pytest.fixture
def embed():
    return keyword_embed


@pytest.fixture
def embedder():
    return StubEmbedder()


@pytest.fixture
def make_generator():
    return StubGenerator
