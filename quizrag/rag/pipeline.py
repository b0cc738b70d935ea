"""Quiz pipeline wiring retrieval, grading and session aggregation.

The pipeline owns one index and a default session; callers serving several
users pass their own session from ``create_session``. Collaborators are
passed in, so several pipelines can run side by side.
"""

import logging
from typing import Iterable, Optional

from quizrag.config import Settings
from quizrag.errors import PipelineNotReadyError, SessionFinalizedError
from quizrag.models import QuestionRecord, RawDocument
from quizrag.rag.chunker import load_corpus
from quizrag.rag.embeddings import Embedder
from quizrag.rag.generator import Generator
from quizrag.rag.grader import AnswerGrader
from quizrag.rag.index import EmbeddingIndex
from quizrag.rag.retriever import Retriever, format_context
from quizrag.rag.session import QuizSession

logger = logging.getLogger(__name__)


class QuizPipeline:
    """Pipeline for building the knowledge index and grading quiz answers."""

    def __init__(
        self, settings: Settings, embedder: Embedder, generator: Generator
    ) -> None:
        """Initialize quiz pipeline.

        Args:
            settings: Application settings.
            embedder: Embedding collaborator.
            generator: Generation collaborator.
        """
        self.settings = settings
        self.embedder = embedder
        self.generator = generator
        self.grader = AnswerGrader(generator, timeout=settings.timeout)
        self.index: Optional[EmbeddingIndex] = None
        self.retriever: Optional[Retriever] = None
        self.session = self.new_session()

    @property
    def is_ready(self) -> bool:
        return self.retriever is not None

    async def build(self, documents: Iterable[RawDocument]) -> EmbeddingIndex:
        """Chunk the corpus and build the embedding index.

        Raises:
            EmptyCorpusError: If the documents yield no chunks.
            EmbeddingFailure: If any chunk fails to embed.
        """
        chunks = load_corpus(
            documents,
            policy=self.settings.chunk_policy,
            chunk_size=self.settings.chunk_size,
            chunk_overlap=self.settings.chunk_overlap,
        )
        index = await EmbeddingIndex.build(
            chunks, self.embedder.embed, concurrency=self.settings.embed_concurrency
        )
        self.index = index
        self.retriever = Retriever(self.embedder, index, top_k=self.settings.top_k)
        return index

    def _require_retriever(self) -> Retriever:
        if self.retriever is None:
            raise PipelineNotReadyError("Build the index before answering questions")
        return self.retriever

    async def context_for(self, question: str) -> str:
        hits = await self._require_retriever().retrieve(question)
        return format_context(hits)

    async def answer_question(
        self,
        question: str,
        topic: str,
        user_answer: str,
        session: Optional[QuizSession] = None,
    ) -> QuestionRecord:
        """Retrieve context, grade the answer and record it in a session.

        Args:
            question: Question text, also used as the retrieval query.
            topic: Topic label of the question.
            user_answer: The learner's free-text answer.
            session: Session to record into; defaults to ``self.session``.

        Raises:
            PipelineNotReadyError: If the index has not been built.
            EmbeddingFailure: If the question cannot be embedded.
            GenerationFailure: If grading fails; nothing is recorded.
            SessionFinalizedError: If the session was already summarized.
        """
        if session is None:
            session = self.session
        if session.finalized:
            raise SessionFinalizedError("Session already summarized")
        context = await self.context_for(question)
        result = await self.grader.grade(question, user_answer, context)
        record = QuestionRecord(
            question=question,
            topic=topic,
            user_answer=user_answer,
            context=context,
            is_correct=result.is_correct,
            score=result.score,
            feedback=result.feedback,
            correct_answer=result.correct_answer,
        )
        session.record_answer(record)
        return record

    async def hint(self, question: str) -> str:
        context = await self.context_for(question)
        return await self.grader.hint(question, context)

    async def finish(self, session: Optional[QuizSession] = None) -> str:
        """Summarize ``session``, or the pipeline's own session."""
        if session is None:
            session = self.session
        return await session.summary()

    def create_session(self) -> QuizSession:
        """Return a fresh session bound to this pipeline's generator.

        Each concurrent user needs its own session; the pipeline's index
        and collaborators are shared.
        """
        return QuizSession(self.generator, timeout=self.settings.timeout)

    def new_session(self) -> QuizSession:
        self.session = self.create_session()
        return self.session
