"""Simulated word-by-word delivery of finished generations.

Generation itself is request/response; this only paces display of the
complete text.
"""

import time
from typing import Iterator


def iter_words(text: str, delay: float = 0.02) -> Iterator[str]:
    """Yield ``text`` one word at a time.

    Chunks after the first carry their leading space, so joining the
    chunks gives back the words of ``text`` separated by single spaces.

    Args:
        text: Complete generated text.
        delay: Seconds to sleep after each chunk.
    """
    first = True
    for word in text.split(" "):
        yield word if first else f" {word}"
        first = False
        if delay > 0:
            time.sleep(delay)
