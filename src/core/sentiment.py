"""Coarse lexical sentiment used to bias the reply tone."""

from __future__ import annotations

NEGATIVE = "negative"
POSITIVE = "positive"
QUESTION = "question"
NEUTRAL = "neutral"

_NEGATIVE_WORDS = (
    "triste",
    "mal",
    "pleure",
    "déprimé",
    "énervé",
    "fâché",
    "sad",
    "upset",
    "angry",
)
_POSITIVE_WORDS = (
    "heureux",
    "content",
    "super",
    "génial",
    "love",
    "parfait",
    "happy",
    "great",
)


def classify(text: str) -> str:
    """Return negative, positive, question or neutral.

    Checked in that order, by substring, so "pas mal ?" is negative.
    """

    lowered = (text or "").lower()
    if any(word in lowered for word in _NEGATIVE_WORDS):
        return NEGATIVE
    if any(word in lowered for word in _POSITIVE_WORDS):
        return POSITIVE
    if "?" in lowered:
        return QUESTION
    return NEUTRAL
