"""Application configuration settings.

This module defines the Settings dataclass that loads configuration
from environment variables.
"""

from dataclasses import dataclass
import os

# Generation models selectable from the quiz UI.
AVAILABLE_MODELS = {
    "google/flan-t5-small": {
        "name": "Flan-T5 Small",
        "size": "~250MB",
        "description": "Fast & lightweight",
    },
    "google/flan-t5-base": {
        "name": "Flan-T5 Base",
        "size": "~500MB",
        "description": "Better quality",
    },
    "MBZUAI/LaMini-Flan-T5-248M": {
        "name": "LaMini Flan-T5",
        "size": "~250MB",
        "description": "Instruction tuned",
    },
}


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Attributes:
        backend: Collaborator backend, ``local`` or ``watsonx``.
        local_embed_model: sentence-transformers model for local embeddings.
        local_gen_model: Hugging Face seq2seq model for local generation.
        ibm_cloud_api_key: IBM Cloud API key for authentication.
        watsonx_region: Watsonx.ai service region.
        watsonx_project_id: Watsonx.ai project ID.
        watsonx_embed_model: Watsonx embedding model ID.
        watsonx_gen_model: Watsonx generation model ID.
        chunk_policy: Corpus chunking policy, ``paragraph`` or ``window``.
        chunk_size: Window size in characters for the ``window`` policy.
        chunk_overlap: Window overlap in characters.
        top_k: Number of chunks retrieved per question.
        embed_concurrency: Concurrent embedding calls during index build.
        generation_timeout: Seconds before a generation call is abandoned
            (0 disables the timeout).
        knowledge_base_path: Path to the knowledge base JSON file.
        log_level: Root logging level name.
    """

    backend: str

    local_embed_model: str
    local_gen_model: str

    ibm_cloud_api_key: str
    watsonx_region: str
    watsonx_project_id: str
    watsonx_embed_model: str
    watsonx_gen_model: str

    chunk_policy: str
    chunk_size: int
    chunk_overlap: int
    top_k: int
    embed_concurrency: int
    generation_timeout: float

    knowledge_base_path: str
    log_level: str

    @property
    def timeout(self) -> float | None:
        """Generation timeout in seconds, or None when disabled."""
        return self.generation_timeout if self.generation_timeout > 0 else None

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings instance from environment variables.

        Returns:
            Settings instance with values loaded from environment.
        """
        return cls(
            backend=os.getenv("QUIZRAG_BACKEND", "local").lower(),
            local_embed_model=os.getenv(
                "LOCAL_EMBED_MODEL", "sentence-transformers/all-MiniLM-L6-v2"
            ),
            local_gen_model=os.getenv("LOCAL_GEN_MODEL", "google/flan-t5-small"),
            ibm_cloud_api_key=os.getenv("IBM_CLOUD_API_KEY", ""),
            watsonx_region=os.getenv("WATSONX_REGION", "us-south"),
            watsonx_project_id=os.getenv("WATSONX_PROJECT_ID", ""),
            watsonx_embed_model=os.getenv(
                "WATSONX_EMBED_MODEL",
                "ibm/granite-embedding-30m-english",
            ),
            watsonx_gen_model=os.getenv(
                "WATSONX_GEN_MODEL", "ibm/granite-13b-instruct-v2"
            ),
            chunk_policy=os.getenv("CHUNK_POLICY", "paragraph").lower(),
            chunk_size=int(os.getenv("CHUNK_SIZE", "500")),
            chunk_overlap=int(os.getenv("CHUNK_OVERLAP", "50")),
            top_k=int(os.getenv("TOP_K", "3")),
            embed_concurrency=int(os.getenv("EMBED_CONCURRENCY", "1")),
            generation_timeout=float(os.getenv("GENERATION_TIMEOUT", "60")),
            knowledge_base_path=os.getenv(
                "KNOWLEDGE_BASE_PATH", "data/knowledge_base.json"
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
