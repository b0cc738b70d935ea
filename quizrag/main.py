"""Streamlit quiz tutor.

Presents knowledge base questions, grades typed answers through the
QuizPipeline and shows a generated summary at the end of the quiz.
"""

import asyncio
import logging

import streamlit as st
from dotenv import load_dotenv

from quizrag.config import AVAILABLE_MODELS, Settings
from quizrag.errors import (
    EmbeddingFailure,
    EmptyCorpusError,
    GenerationFailure,
    SessionFinalizedError,
)
from quizrag.knowledge_base import KnowledgeBase, load_knowledge_base
from quizrag.models import LoadProgress, QuestionRecord
from quizrag.rag.embeddings import create_embedder
from quizrag.rag.generator import create_generator
from quizrag.rag.pipeline import QuizPipeline
from quizrag.rag.session import QuizSession
from quizrag.streaming import iter_words

logger = logging.getLogger(__name__)


@st.cache_resource
def get_settings() -> Settings:
    """Load and cache application settings.

    Returns:
        Settings instance loaded from environment variables.
    """
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return settings


@st.cache_resource
def get_knowledge_base(path: str) -> KnowledgeBase:
    return load_knowledge_base(path)


@st.cache_resource
def get_pipeline(_settings: Settings, model_id: str) -> QuizPipeline:
    """Load models and build the index once per generation model.

    Args:
        _settings: Application settings (not hashed by the cache).
        model_id: Generation model to load.

    Returns:
        Ready QuizPipeline.
    """
    kb = get_knowledge_base(_settings.knowledge_base_path)
    bar = st.progress(0, text="Loading models...")

    def on_progress(progress: LoadProgress) -> None:
        bar.progress(progress.progress, text=progress.message)

    async def _setup() -> QuizPipeline:
        generator = create_generator(_settings, model_id)
        await generator.initialize(on_progress)
        pipeline = QuizPipeline(_settings, create_embedder(_settings), generator)
        await pipeline.build(kb.documents)
        return pipeline

    pipeline = asyncio.run(_setup())
    bar.empty()
    return pipeline


def init_state(pipeline: QuizPipeline) -> None:
    """Initialize Streamlit session state variables.

    The pipeline is cached across browser sessions, so each browser
    session keeps its own QuizSession here.
    """
    if "question_idx" not in st.session_state:
        st.session_state["question_idx"] = 0
    if "session" not in st.session_state:
        st.session_state["session"] = pipeline.create_session()
    if "summary" not in st.session_state:
        st.session_state["summary"] = None
    if "hint" not in st.session_state:
        st.session_state["hint"] = None
    if "last_record" not in st.session_state:
        st.session_state["last_record"] = None
    if "shown" not in st.session_state:
        st.session_state["shown"] = False


def current_session() -> QuizSession:
    return st.session_state["session"]


def reset_quiz(pipeline: QuizPipeline) -> None:
    st.session_state["session"] = pipeline.create_session()
    st.session_state["question_idx"] = 0
    st.session_state["summary"] = None
    st.session_state["hint"] = None
    st.session_state["last_record"] = None


def next_question(idx: int) -> None:
    st.session_state["question_idx"] = idx + 1
    st.session_state["hint"] = None
    st.session_state["last_record"] = None


def show_record(record: QuestionRecord, stream: bool = False) -> None:
    """Render a graded answer."""
    if record.is_correct:
        st.success(f"Score: {record.score}/100")
    else:
        st.error(f"Score: {record.score}/100")
    st.markdown("**Feedback**")
    if stream:
        st.write_stream(iter_words(record.feedback))
    else:
        st.write(record.feedback)
    st.markdown("**Reference answer**")
    st.write(record.correct_answer)
    with st.expander("Retrieved context"):
        st.text(record.context or "(no context retrieved)")


def quiz_page(pipeline: QuizPipeline, kb: KnowledgeBase) -> None:
    questions = kb.questions
    idx = st.session_state["question_idx"]

    if st.session_state["summary"] is not None:
        st.subheader("Quiz complete")
        st.write(st.session_state["summary"])
        for record in current_session().records:
            with st.expander(f"{record.topic}: {record.question}"):
                show_record(record)
        if st.button("Start again"):
            reset_quiz(pipeline)
            st.rerun()
        return

    if idx >= len(questions):
        if not current_session().records:
            st.info("No questions were answered.")
            return
        with st.spinner("Summarizing your quiz..."):
            try:
                st.session_state["summary"] = asyncio.run(
                    pipeline.finish(current_session())
                )
            except GenerationFailure as e:
                st.error(f"Could not generate the summary: {e}")
                return
        st.rerun()

    question = questions[idx]
    st.caption(f"Question {idx + 1} of {len(questions)} | {question.topic}")
    st.subheader(question.question)

    last = st.session_state["last_record"]
    if last is not None:
        show_record(last, stream=not st.session_state["shown"])
        st.session_state["shown"] = True
        if st.button("Next question"):
            next_question(idx)
            st.rerun()
        return

    if st.session_state["hint"]:
        st.info(st.session_state["hint"])

    with st.form(key=f"answer_{idx}"):
        answer = st.text_area("Your answer")
        submitted = st.form_submit_button("Submit answer")

    if submitted and answer.strip():
        with st.spinner("Grading..."):
            try:
                record = asyncio.run(
                    pipeline.answer_question(
                        question.question, question.topic, answer, current_session()
                    )
                )
            except SessionFinalizedError:
                st.warning("This quiz is already finished. Restart it to play again.")
                return
            except (GenerationFailure, EmbeddingFailure) as e:
                logger.warning(f"Grading failed for question {idx}: {e}")
                st.error(f"Grading failed: {e}. Submit again or skip the question.")
                return
        st.session_state["last_record"] = record
        st.session_state["shown"] = False
        st.rerun()

    col_hint, col_skip = st.columns(2)
    if col_hint.button("Hint", use_container_width=True):
        with st.spinner("Thinking of a hint..."):
            try:
                st.session_state["hint"] = asyncio.run(pipeline.hint(question.question))
            except (GenerationFailure, EmbeddingFailure) as e:
                st.warning(f"Hint unavailable: {e}")
        st.rerun()
    if col_skip.button("Skip question", use_container_width=True):
        next_question(idx)
        st.rerun()


def main() -> None:
    """Main entry point for the Streamlit application."""
    st.set_page_config(page_title="Quiz Tutor", layout="centered")
    settings = get_settings()

    st.sidebar.markdown("### Model")
    model_id = settings.local_gen_model
    if settings.backend == "local":
        model_ids = list(AVAILABLE_MODELS)
        if model_id not in model_ids:
            model_ids.insert(0, model_id)
        model_id = st.sidebar.selectbox(
            "Generation model",
            model_ids,
            index=model_ids.index(model_id),
            format_func=lambda m: AVAILABLE_MODELS.get(m, {}).get("name", m),
        )
        info = AVAILABLE_MODELS.get(model_id)
        if info:
            st.sidebar.caption(f"{info['size']} | {info['description']}")
    else:
        st.sidebar.caption(f"watsonx.ai: {settings.watsonx_gen_model}")

    st.title("Quiz Tutor")
    try:
        kb = get_knowledge_base(settings.knowledge_base_path)
        pipeline = get_pipeline(settings, model_id)
    except (EmptyCorpusError, EmbeddingFailure, GenerationFailure, OSError) as e:
        logger.error(f"Initialization failed: {e}")
        st.error(f"Could not start the quiz: {e}")
        return

    init_state(pipeline)
    records = current_session().records
    answered = len(records)
    correct = sum(1 for r in records if r.is_correct)
    st.sidebar.metric("Score", f"{correct}/{answered}")
    if st.sidebar.button("Restart quiz"):
        reset_quiz(pipeline)
        st.rerun()

    quiz_page(pipeline, kb)


if __name__ == "__main__":
    main()
