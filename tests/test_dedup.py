from __future__ import annotations

import pytest

from dedup import DeduplicationEngine, is_repetitive, similarity
from models import Verdict


def _engine_with(history: list[str], streak: int = 0) -> DeduplicationEngine:
    engine = DeduplicationEngine(repetition_streak=streak)
    engine._history.extend(history)
    return engine


# ---------------------------------------------------------------
# similarity
# ---------------------------------------------------------------

@pytest.mark.parametrize(
    "a, b",
    [
        ("hello there", "hello there"),
        ("hello there friend", "hello"),
        ("one two three", "four five six"),
        ("", "anything"),
        ("", ""),
        ("the the the", "the"),
    ],
)
def test_similarity_is_bounded(a: str, b: str) -> None:
    assert 0.0 <= similarity(a, b) <= 1.0


def test_similarity_of_text_with_itself_is_one() -> None:
    assert similarity("Hello There", "hello there") == 1.0


def test_similarity_uses_larger_token_count() -> None:
    # 2 shared tokens over max(2, 4), not over the union size
    assert similarity("nine ten", "nine ten eleven twelve") == pytest.approx(0.5)
    assert similarity("nine ten eleven twelve", "nine ten") == pytest.approx(0.5)


def test_similarity_counts_repeated_tokens_of_first_text() -> None:
    assert similarity("go go go", "go stop") == pytest.approx(1.0)
    assert similarity("go stop", "go go go") == pytest.approx(1 / 3)


# ---------------------------------------------------------------
# repetition patterns
# ---------------------------------------------------------------

def test_consecutive_token_run_over_three_is_repetitive() -> None:
    assert is_repetitive("four four four four") is True
    assert is_repetitive("four four four") is False


def test_alternating_blocks_are_repetitive() -> None:
    assert is_repetitive("three four three four three four") is True
    assert is_repetitive("three four three four five six") is False


def test_low_diversity_long_text_is_repetitive() -> None:
    assert is_repetitive("a b a b a b a b c a b a b") is True
    assert is_repetitive("one two three four five six seven eight nine") is False


# ---------------------------------------------------------------
# engine
# ---------------------------------------------------------------

def test_cold_start_accepts_identical_candidates() -> None:
    engine = DeduplicationEngine()

    first = engine.evaluate("same words")
    engine.accept("same words")
    second = engine.evaluate("same words")

    assert first.verdict == Verdict.ACCEPT
    assert second.verdict == Verdict.ACCEPT


def test_duplicate_check_inactive_with_short_history() -> None:
    engine = _engine_with(["hello there"])
    assert engine.evaluate("hello there").verdict == Verdict.ACCEPT

    engine = _engine_with(["one two", "hello there", "three four"])
    assert engine.evaluate("three four").verdict == Verdict.ACCEPT


def test_exact_duplicate_of_recent_entry_is_rejected() -> None:
    engine = _engine_with(["three four", "five six", "seven eight", "nine ten"])

    decision = engine.evaluate("nine ten")

    assert decision.verdict == Verdict.REJECT_DUPLICATE
    assert engine.history == ["three four", "five six", "seven eight", "nine ten"]


def test_exact_match_against_third_most_recent_entry() -> None:
    engine = _engine_with(["alpha beta", "five six seven", "gamma delta", "epsilon zeta"])

    decision = engine.evaluate("Five Six Seven ")

    assert decision.verdict == Verdict.REJECT_DUPLICATE
    assert decision.reason == "exact duplicate"


def test_entries_older_than_three_are_not_exact_matched() -> None:
    engine = _engine_with(["alpha beta", "five six", "gamma delta", "epsilon zeta"])
    assert engine.evaluate("alpha beta").verdict == Verdict.ACCEPT


def test_near_duplicate_of_last_entry_is_rejected() -> None:
    engine = _engine_with(
        ["a one", "b two", "c three", "the quick brown fox jumps over the lazy dog again"]
    )

    decision = engine.evaluate("the quick brown fox jumps over the lazy dog again")

    assert decision.verdict == Verdict.REJECT_DUPLICATE
    assert decision.similarity > 0.9


def test_repetition_check_needs_an_armed_streak() -> None:
    engine = _engine_with(["one two", "three four"])
    assert engine.evaluate("four four four four").verdict == Verdict.ACCEPT


def test_repetitive_candidate_with_streak_is_rejected() -> None:
    engine = _engine_with(["one two", "three four"], streak=1)

    decision = engine.evaluate("four four four four")

    assert decision.verdict == Verdict.REJECT_REPETITIVE
    assert engine.repetition_streak == 2
    assert decision.clear_buffer is False


def test_third_repetition_signal_requests_buffer_clear() -> None:
    engine = _engine_with(["three four", "five six", "seven eight", "nine ten"])

    first = engine.evaluate("nine ten")
    second = engine.evaluate("ten ten ten ten")
    third = engine.evaluate("ten ten ten ten ten")

    assert first.verdict == Verdict.REJECT_DUPLICATE
    assert second.verdict == Verdict.REJECT_REPETITIVE
    assert third.verdict == Verdict.REJECT_REPETITIVE
    assert [first.clear_buffer, second.clear_buffer, third.clear_buffer] == [False, False, True]
    assert engine.repetition_streak == 0


def test_accept_resets_streak() -> None:
    engine = _engine_with(["one two", "three four"], streak=2)
    engine.accept("something new")
    assert engine.repetition_streak == 0


def test_history_keeps_five_most_recent_in_order() -> None:
    engine = DeduplicationEngine()
    texts = [f"entry number {i}" for i in range(8)]
    for text in texts:
        engine.accept(text)
        assert len(engine.history) <= 5

    assert engine.history == texts[-5:]


def test_reset_returns_to_cold_start() -> None:
    engine = _engine_with(["three four", "five six", "seven eight", "nine ten"], streak=1)
    engine.reset()

    assert engine.history == []
    assert engine.repetition_streak == 0
    assert engine.evaluate("nine ten").verdict == Verdict.ACCEPT
