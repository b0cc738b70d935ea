"""Data models for the quiz RAG pipeline.

This module defines Pydantic models for corpus chunks, index entries,
retrieval results, grading verdicts and quiz records.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

PASS_SCORE = 60


class RawDocument(BaseModel):
    """Knowledge base document before chunking.

    Attributes:
        source_id: Stable identifier of the document.
        topic: Topic label attached to every chunk of the document.
        text: Document body.
    """

    source_id: str
    topic: str
    text: str


class Chunk(BaseModel):
    """Retrievable unit of the knowledge corpus.

    Attributes:
        id: Stable chunk identifier.
        text: Chunk text content.
        topic: Topic of the source document.
        source_id: Identifier of the source document.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    topic: str
    source_id: str = ""


class IndexEntry(BaseModel):
    """A chunk paired with its embedding vector."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    vector: tuple[float, ...]


class RetrievalResult(BaseModel):
    """Ranked retrieval hit.

    Attributes:
        chunk: Matched chunk.
        score: Cosine similarity between query and chunk vectors.
    """

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    score: float


class GenerationOptions(BaseModel):
    """Sampling options passed to the generation collaborator."""

    model_config = ConfigDict(frozen=True)

    max_new_tokens: int = 256
    temperature: float = 0.7
    top_p: float = 0.95
    do_sample: bool = True


class GradeResult(BaseModel):
    """Verdict for a single answer.

    Attributes:
        is_correct: Whether the answer passes.
        score: Score in the range 0..100.
        feedback: Raw grading text from the generator.
        correct_answer: Raw reference answer from the generator.
    """

    is_correct: bool
    score: int = Field(ge=0, le=100)
    feedback: str
    correct_answer: str


class QuestionRecord(BaseModel):
    """One answered quiz question.

    Attributes:
        question: Question text.
        topic: Topic the question belongs to.
        user_answer: Answer typed by the user.
        context: Retrieved chunk texts used for grading.
        is_correct: Whether the answer passes.
        score: Score in the range 0..100.
        feedback: Raw grading text from the generator.
        correct_answer: Raw reference answer from the generator.
    """

    model_config = ConfigDict(frozen=True)

    question: str
    topic: str
    user_answer: str
    context: str
    is_correct: bool
    score: int = Field(ge=0, le=100)
    feedback: str
    correct_answer: str

    @model_validator(mode="after")
    def _check_pass_mark(self) -> "QuestionRecord":
        if self.is_correct != (self.score >= PASS_SCORE):
            raise ValueError(
                f"is_correct={self.is_correct} disagrees with score={self.score}"
            )
        return self


class SessionStats(BaseModel):
    """Aggregated results of a quiz session."""

    correct_count: int
    total_count: int
    percentage: int
    topics: list[str]
    weak_topics: list[str]


class QuizQuestion(BaseModel):
    """Question offered by the knowledge base."""

    question: str
    topic: str


class LoadProgress(BaseModel):
    """Model loading notification for the presentation layer.

    Attributes:
        status: ``loading`` or ``ready``.
        progress: Percentage in the range 0..100.
        message: Human readable status line.
    """

    status: str
    progress: int
    message: str
