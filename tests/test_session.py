import pydantic
import pytest

from quizrag.errors import EmptySessionError, GenerationFailure, SessionFinalizedError
from quizrag.models import QuestionRecord
from quizrag.rag.session import QuizSession, build_summary_prompt


def record(topic, is_correct, question="q"):
    score = 100 if is_correct else 20
    return QuestionRecord(
        question=question,
        topic=topic,
        user_answer="a",
        context="ctx",
        is_correct=is_correct,
        score=score,
        feedback="Correct" if is_correct else "Incorrect",
        correct_answer="ref",
    )


def filled_session(generator=None):
    session = QuizSession(generator)
    for topic, ok in [
        ("Python", True),
        ("ML", False),
        ("Web", True),
        ("ML", False),
        ("Python", True),
    ]:
        session.record_answer(record(topic, ok))
    return session


def test_statistics_for_three_of_five():
    stats = filled_session().statistics()

    assert stats.correct_count == 3
    assert stats.total_count == 5
    assert stats.percentage == 60
    assert stats.topics == ["Python", "ML", "Web"]
    assert stats.weak_topics == ["ML"]


@pytest.mark.parametrize("correct, total, expected", [(1, 8, 13), (2, 3, 67), (1, 3, 33), (0, 4, 0)])
def test_percentage_rounds_half_up(correct, total, expected):
    session = QuizSession()
    for i in range(total):
        session.record_answer(record("T", i < correct))
    assert session.statistics().percentage == expected


def test_weak_topics_in_first_appearance_order():
    session = QuizSession()
    for topic, ok in [("Web", False), ("Python", False), ("Web", False), ("ML", True)]:
        session.record_answer(record(topic, ok))

    assert session.statistics().weak_topics == ["Web", "Python"]


def test_empty_session_statistics_raise():
    with pytest.raises(EmptySessionError):
        QuizSession().statistics()


@pytest.mark.asyncio
async def test_empty_session_summary_raises(make_generator):
    generator = make_generator()
    with pytest.raises(EmptySessionError):
        await QuizSession(generator).summary()
    assert generator.calls == []


@pytest.mark.asyncio
async def test_summary_prompt_and_options(make_generator):
    generator = make_generator(["Great effort!"])
    session = filled_session(generator)

    text = await session.summary()

    prompt, options = generator.calls[0]
    assert text == "Great effort!"
    assert prompt == (
        "Write encouraging feedback for a student who scored 3/5 (60%) on a quiz "
        "about Python, ML, Web. They need to improve on: ML. Be brief and motivating:"
    )
    assert (options.max_new_tokens, options.temperature) == (100, 0.7)


def test_summary_prompt_without_weak_topics():
    session = QuizSession()
    session.record_answer(record("Python", True))

    prompt = build_summary_prompt(session.statistics())

    assert "1/1 (100%)" in prompt
    assert "They did great on all topics!" in prompt


@pytest.mark.asyncio
async def test_summary_finalizes_session(make_generator):
    session = filled_session(make_generator())

    await session.summary()

    assert session.finalized
    with pytest.raises(SessionFinalizedError):
        session.record_answer(record("Python", True))
    assert len(session) == 5


@pytest.mark.asyncio
async def test_summary_accepts_generator_argument(make_generator):
    generator = make_generator(["From argument"])
    assert await filled_session().summary(generator) == "From argument"


@pytest.mark.asyncio
async def test_summary_without_generator_fails():
    with pytest.raises(GenerationFailure):
        await filled_session().summary()


def test_records_are_read_only_snapshot():
    session = filled_session()
    records = session.records
    assert isinstance(records, tuple)
    with pytest.raises(pydantic.ValidationError):
        records[0].score = 0


def test_record_rejects_inconsistent_verdict():
    with pytest.raises(pydantic.ValidationError):
        QuestionRecord(
            question="q",
            topic="T",
            user_answer="a",
            context="",
            is_correct=True,
            score=20,
            feedback="",
            correct_answer="",
        )
