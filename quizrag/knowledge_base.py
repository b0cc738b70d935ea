"""Knowledge base loading.

The knowledge base is a JSON file with ``documents`` (corpus text with a
topic label) and ``questions`` (quiz items per topic).
"""

import json
import logging
from typing import List

from pydantic import BaseModel

from quizrag.models import QuizQuestion, RawDocument

logger = logging.getLogger(__name__)


class KnowledgeBase(BaseModel):
    """Corpus documents and quiz questions."""

    documents: List[RawDocument]
    questions: List[QuizQuestion] = []

    @property
    def topics(self) -> List[str]:
        return list(dict.fromkeys(d.topic for d in self.documents))

    def questions_for(self, topic: str) -> List[QuizQuestion]:
        return [q for q in self.questions if q.topic == topic]


def load_knowledge_base(path: str) -> KnowledgeBase:
    """Load and validate a knowledge base JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        Validated knowledge base.

    Raises:
        OSError: If the file cannot be read.
        pydantic.ValidationError: If the content does not match the schema.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    kb = KnowledgeBase.model_validate(data)
    logger.info(
        f"Loaded knowledge base from {path}: {len(kb.documents)} documents, "
        f"{len(kb.questions)} questions"
    )
    return kb
