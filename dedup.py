"""Duplicate and repetition detection over recently accepted transcripts.

Whisper-style recognizers tend to re-emit the previous phrase, or loop on a
short phrase, when fed silence or residual overlap audio. The engine keeps a
short history of accepted texts and classifies each new candidate as
accepted, a duplicate of recent output, or a degenerate repetitive pattern.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List

from models import DedupDecision, Verdict

logger = logging.getLogger(__name__)

COLD_START_ENTRIES = 2
DUPLICATE_CHECK_MIN_HISTORY = 3
EXACT_MATCH_WINDOW = 3
NEAR_DUPLICATE_SIMILARITY = 0.9
MAX_CONSECUTIVE_TOKEN = 3
REPEATING_BLOCK_MIN_TOKENS = 6
LOW_DIVERSITY_MIN_TOKENS = 8
LOW_DIVERSITY_RATIO = 0.7


def _tokens(text: str) -> List[str]:
    return text.lower().split()


def similarity(a: str, b: str) -> float:
    """Word-overlap coefficient of ``a`` against ``b``.

    Counts tokens of ``a`` that occur anywhere in ``b`` and divides by the
    larger token count (not the union size, so this is not Jaccard).
    """
    words_a = _tokens(a)
    words_b = _tokens(b)
    longest = max(len(words_a), len(words_b))
    if longest == 0:
        return 0.0
    vocabulary = set(words_b)
    common = sum(1 for word in words_a if word in vocabulary)
    return common / longest


def is_repetitive(text: str) -> bool:
    tokens = _tokens(text)
    if not tokens:
        return False

    run = 1
    for prev, word in zip(tokens, tokens[1:]):
        run = run + 1 if word == prev else 1
        if run > MAX_CONSECUTIVE_TOKEN:
            return True

    if len(tokens) >= REPEATING_BLOCK_MIN_TOKENS:
        first, second, third = tokens[0:2], tokens[2:4], tokens[4:6]
        if first == second == third:
            return True

    if len(tokens) > LOW_DIVERSITY_MIN_TOKENS:
        repetition = 1 - len(set(tokens)) / len(tokens)
        if repetition > LOW_DIVERSITY_RATIO:
            return True

    return False


class DeduplicationEngine:
    def __init__(
        self,
        history_size: int = 5,
        repetition_break_threshold: int = 2,
        repetition_streak: int = 0,
    ) -> None:
        self._history: Deque[str] = deque(maxlen=history_size)
        self._break_threshold = repetition_break_threshold
        self._streak = repetition_streak

    @property
    def history(self) -> List[str]:
        return list(self._history)

    @property
    def repetition_streak(self) -> int:
        return self._streak

    def evaluate(self, text: str) -> DedupDecision:
        """Classify ``text``; does not record it. Call ``accept`` on ACCEPT."""
        candidate = text.strip()
        if len(self._history) < COLD_START_ENTRIES:
            return DedupDecision(Verdict.ACCEPT, reason="cold start")

        if self._streak > 0 and is_repetitive(candidate):
            return self._repetition_signal(Verdict.REJECT_REPETITIVE, 0.0, "repetitive pattern")

        if len(self._history) > DUPLICATE_CHECK_MIN_HISTORY:
            score = similarity(candidate, self._history[-1])
            if score > NEAR_DUPLICATE_SIMILARITY:
                return self._repetition_signal(Verdict.REJECT_DUPLICATE, score, "near duplicate")
            normalized = candidate.lower()
            recent = list(self._history)[-EXACT_MATCH_WINDOW:]
            if any(normalized == entry.strip().lower() for entry in recent):
                return self._repetition_signal(Verdict.REJECT_DUPLICATE, score, "exact duplicate")

        return DedupDecision(Verdict.ACCEPT)

    def accept(self, text: str) -> None:
        self._history.append(text.strip())
        self._streak = 0

    def reset(self) -> None:
        self._history.clear()
        self._streak = 0

    def _repetition_signal(self, verdict: Verdict, score: float, reason: str) -> DedupDecision:
        self._streak += 1
        clear_buffer = False
        if self._streak > self._break_threshold:
            logger.info("repetition streak %d exceeded, requesting buffer reset", self._streak)
            self._streak = 0
            clear_buffer = True
        return DedupDecision(verdict, similarity=score, clear_buffer=clear_buffer, reason=reason)
