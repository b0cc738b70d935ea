"""Quiz session aggregation and summary generation."""

import logging
from typing import List, Optional

from quizrag.errors import EmptySessionError, GenerationFailure, SessionFinalizedError
from quizrag.models import GenerationOptions, QuestionRecord, SessionStats
from quizrag.rag.generator import Generator, run_generation

logger = logging.getLogger(__name__)

SUMMARY_OPTIONS = GenerationOptions(max_new_tokens=100, temperature=0.7)


def _distinct(values: List[str]) -> List[str]:
    # First-appearance order.
    return list(dict.fromkeys(values))


def build_summary_prompt(stats: SessionStats) -> str:
    topics = ", ".join(stats.topics)
    if stats.weak_topics:
        weak = f"They need to improve on: {', '.join(stats.weak_topics)}."
    else:
        weak = "They did great on all topics!"
    return (
        f"Write encouraging feedback for a student who scored "
        f"{stats.correct_count}/{stats.total_count} ({stats.percentage}%) "
        f"on a quiz about {topics}. {weak} Be brief and motivating:"
    )


class QuizSession:
    """Ordered record of answered questions for one quiz.

    Recording is single-writer. Requesting a summary finalizes the
    session; later answers are rejected.
    """

    def __init__(
        self, generator: Optional[Generator] = None, timeout: Optional[float] = None
    ) -> None:
        self.generator = generator
        self.timeout = timeout
        self._records: List[QuestionRecord] = []
        self.finalized = False

    @property
    def records(self) -> tuple[QuestionRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def record_answer(self, record: QuestionRecord) -> None:
        if self.finalized:
            raise SessionFinalizedError("Session already summarized")
        self._records.append(record)

    def statistics(self) -> SessionStats:
        """Compute counts, percentage, topics and weak topics.

        The percentage is rounded half up.

        Raises:
            EmptySessionError: If no answers were recorded.
        """
        total = len(self._records)
        if total == 0:
            raise EmptySessionError("No answers recorded in this session")
        correct = sum(1 for r in self._records if r.is_correct)
        return SessionStats(
            correct_count=correct,
            total_count=total,
            percentage=(200 * correct + total) // (2 * total),
            topics=_distinct([r.topic for r in self._records]),
            weak_topics=_distinct([r.topic for r in self._records if not r.is_correct]),
        )

    async def summary(self, generator: Optional[Generator] = None) -> str:
        """Generate encouraging feedback for the finished quiz.

        Args:
            generator: Collaborator to use instead of the session's own.

        Returns:
            Raw generated text.

        Raises:
            EmptySessionError: If no answers were recorded.
            GenerationFailure: If generation fails or no generator is set.
        """
        stats = self.statistics()
        generator = generator or self.generator
        if generator is None:
            raise GenerationFailure("No generator available for the session summary")

        self.finalized = True
        logger.info(
            f"Summarizing session: {stats.correct_count}/{stats.total_count} "
            f"({stats.percentage}%), weak topics={stats.weak_topics}"
        )
        return await run_generation(
            generator, build_summary_prompt(stats), SUMMARY_OPTIONS, self.timeout
        )
