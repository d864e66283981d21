"""Lexical filter for recognizer output that is not real speech."""

from __future__ import annotations

ARTIFACT_MARKERS = (
    "[blank_audio]",
    "[music]",
    "[noise]",
    "♪",
    "thank you.",
    "thanks for watching.",
    "bye.",
    "goodbye.",
)

FILLER_WORDS = frozenset({"you", "the", "and", "a", "to", "i", "it", "so", "oh", "uh", "um"})

MIN_TEXT_LENGTH = 3
MAX_FILLER_LENGTH = 3


def is_artifact(text: str) -> bool:
    """Return True when ``text`` is noise, filler or a rote closing phrase."""
    lowered = text.strip().lower()
    if len(lowered) < MIN_TEXT_LENGTH:
        return True

    tokens = lowered.split()
    if len(tokens) == 1:
        word = tokens[0]
        if len(word) <= MAX_FILLER_LENGTH and word in FILLER_WORDS:
            return True

    return any(marker in lowered for marker in ARTIFACT_MARKERS)
