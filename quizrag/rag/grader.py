"""Answer grading against retrieved context.

Grading asks the generator for a short verdict in free text and reads
correctness from keywords in that text. A second call produces the
reference answer shown to the user whatever the grade.
"""

import logging
from typing import Optional

from quizrag.models import PASS_SCORE, GenerationOptions, GradeResult
from quizrag.rag.generator import Generator, run_generation

logger = logging.getLogger(__name__)

GRADE_CONTEXT_CHARS = 500
ANSWER_CONTEXT_CHARS = 400
HINT_CONTEXT_CHARS = 300

GRADE_OPTIONS = GenerationOptions(max_new_tokens=100, temperature=0.3)
ANSWER_OPTIONS = GenerationOptions(max_new_tokens=80, temperature=0.2)
HINT_OPTIONS = GenerationOptions(max_new_tokens=60, temperature=0.5)

FULL_SCORE = 100
PARTIAL_SCORE = PASS_SCORE
FAIL_SCORE = 20


def classify_feedback(feedback: str) -> tuple[bool, bool]:
    """Return ``(correct_signal, partial_signal)`` for grading text.

    ``correct_signal`` requires "correct" without "incorrect";
    ``partial_signal`` is set by "partial" or "partly".
    """
    text = feedback.lower()
    correct_signal = "correct" in text and "incorrect" not in text
    partial_signal = "partial" in text or "partly" in text
    return correct_signal, partial_signal


def score_feedback(feedback: str) -> int:
    """Map grading text to 100, 60 or 20.

    A partial signal wins over a correct signal.
    """
    correct_signal, partial_signal = classify_feedback(feedback)
    if correct_signal and not partial_signal:
        return FULL_SCORE
    if partial_signal:
        return PARTIAL_SCORE
    return FAIL_SCORE


def build_grading_prompt(question: str, user_answer: str, context: str) -> str:
    return f"""Context: {context[:GRADE_CONTEXT_CHARS]}

Question: {question}
Student Answer: {user_answer}

Grade this answer as correct or incorrect and explain why in one sentence:"""


def build_answer_prompt(question: str, context: str) -> str:
    return f"""Based on this context, what is the answer to: {question}
Context: {context[:ANSWER_CONTEXT_CHARS]}
Answer:"""


def build_hint_prompt(question: str, context: str) -> str:
    return f"""Give a brief hint for this question without revealing the answer.
Question: {question}
Context: {context[:HINT_CONTEXT_CHARS]}
Hint:"""


class AnswerGrader:
    """Grades free-text answers with a generation collaborator."""

    def __init__(self, generator: Generator, timeout: Optional[float] = None) -> None:
        """Initialize the grader.

        Args:
            generator: Generation collaborator.
            timeout: Optional per-call timeout in seconds.
        """
        self.generator = generator
        self.timeout = timeout

    async def _generate(self, prompt: str, options: GenerationOptions) -> str:
        return await run_generation(self.generator, prompt, options, self.timeout)

    async def grade(self, question: str, user_answer: str, context: str) -> GradeResult:
        """Grade ``user_answer`` to ``question`` using ``context``.

        Args:
            question: The quiz question.
            user_answer: The user's answer.
            context: Retrieved context; may be empty.

        Returns:
            Verdict with score, raw feedback and reference answer.

        Raises:
            GenerationFailure: If either generation call fails.
        """
        feedback = await self._generate(
            build_grading_prompt(question, user_answer, context), GRADE_OPTIONS
        )
        score = score_feedback(feedback)

        correct_answer = await self._generate(
            build_answer_prompt(question, context), ANSWER_OPTIONS
        )

        logger.info(f"Graded answer to {question[:50]!r}: score={score}")
        return GradeResult(
            is_correct=score >= PASS_SCORE,
            score=score,
            feedback=feedback,
            correct_answer=correct_answer,
        )

    async def hint(self, question: str, context: str) -> str:
        """Generate a hint that should not reveal the answer."""
        return await self._generate(build_hint_prompt(question, context), HINT_OPTIONS)
