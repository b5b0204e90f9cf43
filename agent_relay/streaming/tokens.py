"""Splitting resolved response text into stream tokens."""

from enum import Enum


class Granularity(str, Enum):
    """Unit of text carried by each token frame."""

    WORD = "word"
    CHARACTER = "character"


def tokenize(text: str, granularity: Granularity = Granularity.WORD) -> list[str]:
    """Split text into tokens whose concatenation is exactly ``text``.

    Word mode splits on single spaces and keeps each separator attached to
    the preceding token, so runs of spaces and leading/trailing spaces survive.

    Args:
        text: The fully resolved response.
        granularity: Word or character tokens.

    Returns:
        Ordered tokens; empty for empty text.
    """
    if not text:
        return []

    if granularity is Granularity.CHARACTER:
        return list(text)

    words = text.split(" ")
    last = len(words) - 1
    tokens = [word + " " if i < last else word for i, word in enumerate(words)]
    # A trailing space leaves an empty final word
    if tokens[-1] == "":
        tokens.pop()
    return tokens
