"""Text generation collaborators.

Generators are request/response: ``generate`` returns the complete text.
Model calls run in a worker thread behind a per-instance lock, so
overlapping requests to one loaded model are queued.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ibm_watsonx_ai import Credentials
from ibm_watsonx_ai.foundation_models import ModelInference
from ibm_watsonx_ai.metanames import GenTextParamsMetaNames as GenParams
from transformers import AutoModelForSeq2SeqLM, AutoTokenizer

from quizrag.config import Settings
from quizrag.errors import GenerationFailure
from quizrag.models import GenerationOptions, LoadProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[LoadProgress], None]


class Generator(ABC):
    """Prompt-to-text collaborator that must be initialized before use."""

    def __init__(self, model_id: str) -> None:
        self.model_id = model_id
        self.is_loading = False
        self.is_ready = False
        self._lock = threading.Lock()

    @abstractmethod
    def _load(self) -> None:
        """Load the model or client. Runs in a worker thread."""

    @abstractmethod
    def _generate_sync(self, prompt: str, options: GenerationOptions) -> str:
        """Blocking generation call implemented by each backend."""

    async def initialize(self, progress_callback: Optional[ProgressCallback] = None) -> None:
        """Load the model once, reporting progress to ``progress_callback``.

        Raises:
            GenerationFailure: If loading fails.
        """
        if self.is_ready:
            return

        self.is_loading = True
        try:
            logger.info(f"Loading generation model: {self.model_id}")
            if progress_callback:
                progress_callback(
                    LoadProgress(status="loading", progress=0, message="Loading LLM: 0%")
                )
            await asyncio.to_thread(self._load)
            self.is_ready = True
            logger.info(f"Generation model {self.model_id} loaded")
            if progress_callback:
                progress_callback(
                    LoadProgress(status="ready", progress=100, message="LLM model ready")
                )
        except Exception as e:
            logger.error(f"Failed to load generation model {self.model_id}: {e}")
            raise GenerationFailure(f"Failed to load {self.model_id}: {e}") from e
        finally:
            self.is_loading = False

    def _generate_locked(self, prompt: str, options: GenerationOptions) -> str:
        with self._lock:
            return self._generate_sync(prompt, options)

    async def generate(
        self, prompt: str, options: Optional[GenerationOptions] = None
    ) -> str:
        """Generate a complete response for ``prompt``.

        Raises:
            GenerationFailure: If the generator is not initialized or the
                backend call fails.
        """
        if not self.is_ready:
            raise GenerationFailure("LLM not initialized")
        options = options or GenerationOptions()
        try:
            return await asyncio.to_thread(self._generate_locked, prompt, options)
        except GenerationFailure:
            raise
        except Exception as e:
            logger.warning(f"Generation call failed: {e}")
            raise GenerationFailure(str(e)) from e


class LocalGenerator(Generator):
    """Hugging Face seq2seq model (Flan-T5 family) running in-process."""

    def __init__(self, model_id: str = "google/flan-t5-small"):
        super().__init__(model_id)
        self.tokenizer = None
        self.model = None

    def _load(self) -> None:
        self.tokenizer = AutoTokenizer.from_pretrained(self.model_id)
        self.model = AutoModelForSeq2SeqLM.from_pretrained(self.model_id)

    def _generate_sync(self, prompt: str, options: GenerationOptions) -> str:
        inputs = self.tokenizer(prompt, return_tensors="pt", truncation=True)
        kwargs = {"max_new_tokens": options.max_new_tokens, "do_sample": options.do_sample}
        if options.do_sample:
            kwargs["temperature"] = options.temperature
            kwargs["top_p"] = options.top_p
        outputs = self.model.generate(**inputs, **kwargs)
        return self.tokenizer.decode(outputs[0], skip_special_tokens=True)


class WatsonxGenerator(Generator):
    """IBM watsonx.ai text generation client."""

    def __init__(self, settings: Settings):
        super().__init__(settings.watsonx_gen_model)
        self.settings = settings
        self.client = None

    def _load(self) -> None:
        credentials = Credentials(
            api_key=self.settings.ibm_cloud_api_key,
            url=f"https://{self.settings.watsonx_region}.ml.cloud.ibm.com",
        )
        self.client = ModelInference(
            model_id=self.model_id,
            project_id=self.settings.watsonx_project_id,
            credentials=credentials,
        )

    def _generate_sync(self, prompt: str, options: GenerationOptions) -> str:
        params = {
            GenParams.DECODING_METHOD: "sample" if options.do_sample else "greedy",
            GenParams.TEMPERATURE: float(options.temperature),
            GenParams.TOP_P: float(options.top_p),
            GenParams.MAX_NEW_TOKENS: options.max_new_tokens,
        }
        response = self.client.generate(prompt=prompt, params=params)
        data = response.get_result() if hasattr(response, "get_result") else response
        if isinstance(data, str):
            return data
        if isinstance(data, dict):
            if data.get("results"):
                return data["results"][0].get("generated_text", "")
            if "generated_text" in data:
                return data["generated_text"]
        raise GenerationFailure(
            f"Unexpected generation response format from watsonx.ai: {type(data)}"
        )


async def run_generation(
    generator: Generator,
    prompt: str,
    options: GenerationOptions,
    timeout: Optional[float] = None,
) -> str:
    """Call ``generator.generate`` under an optional timeout.

    Any failure, including the timeout, surfaces as GenerationFailure.
    """
    try:
        return await asyncio.wait_for(generator.generate(prompt, options), timeout)
    except GenerationFailure:
        raise
    except asyncio.TimeoutError as e:
        logger.warning(f"Generation timed out after {timeout}s")
        raise GenerationFailure(f"Generation timed out after {timeout}s") from e
    except Exception as e:
        logger.warning(f"Generation call failed: {e}")
        raise GenerationFailure(str(e)) from e


def create_generator(settings: Settings, model_id: Optional[str] = None) -> Generator:
    """Build the generator selected by ``settings.backend``.

    Args:
        settings: Application settings.
        model_id: Optional override of the local generation model.
    """
    if settings.backend == "local":
        return LocalGenerator(model_id or settings.local_gen_model)
    if settings.backend == "watsonx":
        return WatsonxGenerator(settings)
    raise ValueError(f"Unknown backend {settings.backend!r}")
