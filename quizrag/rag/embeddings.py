"""Embedding collaborators.

Each embedder exposes an async ``embed(text)`` returning one vector.
Model calls run in a worker thread behind a per-instance lock, so
concurrent requests to one loaded model are queued.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod

from ibm_watsonx_ai import Credentials
from ibm_watsonx_ai.foundation_models import Embeddings as WXEmbeddings
from sentence_transformers import SentenceTransformer

from quizrag.config import Settings
from quizrag.errors import EmbeddingFailure

logger = logging.getLogger(__name__)


class Embedder(ABC):
    """Text-to-vector collaborator."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @abstractmethod
    def _embed_sync(self, text: str) -> list[float]:
        """Blocking embedding call implemented by each backend."""

    def _embed_locked(self, text: str) -> list[float]:
        with self._lock:
            return self._embed_sync(text)

    async def embed(self, text: str) -> list[float]:
        try:
            return await asyncio.to_thread(self._embed_locked, text)
        except EmbeddingFailure:
            raise
        except Exception as e:
            logger.warning(f"Embedding call failed: {e}")
            raise EmbeddingFailure(str(e)) from e


class LocalEmbedder(Embedder):
    """sentence-transformers embedder; the model loads on first use."""

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2"):
        super().__init__()
        self.model_name = model_name
        self._model = None

    @property
    def model(self):
        if self._model is None:
            logger.info(f"Loading embedding model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def _embed_sync(self, text: str) -> list[float]:
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()


class WatsonxEmbedder(Embedder):
    """IBM watsonx.ai embedding client."""

    def __init__(self, settings: Settings):
        super().__init__()
        self.settings = settings
        credentials = Credentials(
            api_key=settings.ibm_cloud_api_key,
            url=f"https://{settings.watsonx_region}.ml.cloud.ibm.com",
        )
        self.client = WXEmbeddings(
            model_id=settings.watsonx_embed_model,
            project_id=settings.watsonx_project_id,
            credentials=credentials,
        )

    def _embed_sync(self, text: str) -> list[float]:
        result = self.client.embed_query(text)
        data = result.get_result() if hasattr(result, "get_result") else result
        if isinstance(data, dict):
            # {"results": [{"embedding"|"vector"|"values": [...]}, ...]}
            if data.get("results"):
                first = data["results"][0]
                if isinstance(first, dict):
                    for key in ("embedding", "vector", "values"):
                        if key in first:
                            return first[key]
            if "embedding" in data:
                return data["embedding"]
            if data.get("embeddings"):
                return data["embeddings"][0]
        # list-shaped: either a single vector or list of vectors
        if isinstance(data, list) and data:
            if isinstance(data[0], list):
                return data[0]
            if isinstance(data[0], (int, float)):
                return data
        raise EmbeddingFailure(
            f"Unexpected query embedding response format from watsonx.ai: {type(data)}"
        )


def create_embedder(settings: Settings) -> Embedder:
    """Build the embedder selected by ``settings.backend``."""
    if settings.backend == "local":
        return LocalEmbedder(settings.local_embed_model)
    if settings.backend == "watsonx":
        return WatsonxEmbedder(settings)
    raise ValueError(f"Unknown backend {settings.backend!r}")
