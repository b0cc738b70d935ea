"""Exceptions raised by the retrieval and grading core."""


class QuizRagError(Exception):
    """Base class for all quizrag errors."""


class EmptyCorpusError(QuizRagError):
    """Raised when chunking a corpus yields no chunks."""


class EmbeddingFailure(QuizRagError):
    """Raised when the embedding collaborator fails or returns unusable vectors."""


class EmptyIndexError(QuizRagError):
    """Raised when querying an index with zero entries.

    Retrieval treats this as an empty result rather than a failure.
    """


class GenerationFailure(QuizRagError):
    """Raised when the generation collaborator fails, is not ready, or times out."""


class EmptySessionError(QuizRagError):
    """Raised when statistics or a summary are requested for an empty session."""


class SessionFinalizedError(QuizRagError):
    """Raised when recording an answer into a session that was already summarized."""


class PipelineNotReadyError(QuizRagError):
    """Raised when the quiz pipeline is used before its index is built."""
