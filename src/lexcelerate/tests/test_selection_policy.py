"""Tests for word selection policies."""
import random
from collections import Counter

import pytest

from lexcelerate.errors import PreconditionError
from lexcelerate.models.word_models import DAY_MS, WordRecord
from lexcelerate.services.selection_policy import (
    CombinedSelectionPolicy,
    DueDateSelectionPolicy,
    RankingSelectionPolicy,
    get_selection_policy,
    weighted_choice,
)

NOW = 1_700_000_000_000


class FixedRandom(random.Random):
    """Random source that always draws the same value."""

    def __init__(self, value: float):
        super().__init__()
        self.value = value

    def random(self) -> float:
        return self.value


def test_empty_catalogue_is_rejected() -> None:
    """Test that selecting from nothing is a caller error."""
    with pytest.raises(PreconditionError):
        RankingSelectionPolicy().select_next([])


def test_single_word_is_always_selected() -> None:
    """Test the trivial catalogue."""
    record = WordRecord(word="cat", score=100)
    policy = RankingSelectionPolicy(rng=random.Random(1))
    assert all(policy.select_next([record]) is record for _ in range(20))


def test_ranking_weights_follow_score() -> None:
    """Test the roulette boundaries for scores 0 and 100 (weights 101 and 1)."""
    weak = WordRecord(word="weak", score=0)
    strong = WordRecord(word="strong", score=100)

    assert RankingSelectionPolicy(rng=FixedRandom(0.0)).select_next([weak, strong]) is weak
    assert RankingSelectionPolicy(rng=FixedRandom(100.5 / 102)).select_next([weak, strong]) is weak
    assert RankingSelectionPolicy(rng=FixedRandom(101.5 / 102)).select_next([weak, strong]) is strong


def test_ranking_favours_low_scores() -> None:
    """Test that selection frequency decreases as score increases."""
    catalogue = [
        WordRecord(word="new", score=0),
        WordRecord(word="known", score=50),
        WordRecord(word="mastered", score=100),
    ]
    policy = RankingSelectionPolicy(rng=random.Random(42))
    counts = Counter(policy.select_next(catalogue).word for _ in range(5000))

    assert counts["new"] > counts["known"] > counts["mastered"]
    assert counts["mastered"] > 0


def test_weighted_choice_falls_back_to_first() -> None:
    """Test the fallback when the draw lands past the last bucket."""
    records = [WordRecord(word="a"), WordRecord(word="b")]
    assert weighted_choice(records, [1, 1], FixedRandom(1.0)) is records[0]


def test_due_date_only_draws_due_words() -> None:
    """Test that words scheduled for later are skipped."""
    due = WordRecord(word="due", next_review=NOW - DAY_MS)
    later = WordRecord(word="later", next_review=NOW + DAY_MS)
    policy = DueDateSelectionPolicy(rng=random.Random(3))

    assert all(policy.select_next([later, due], now=NOW) is due for _ in range(50))


def test_due_date_uses_earliest_when_nothing_is_due() -> None:
    """Test the fallback to the soonest review."""
    soon = WordRecord(word="soon", next_review=NOW + DAY_MS)
    later = WordRecord(word="later", next_review=NOW + 5 * DAY_MS)
    policy = DueDateSelectionPolicy(rng=random.Random(3))

    assert policy.select_next([later, soon], now=NOW) is soon


def test_due_date_weights_follow_missed_first_tries() -> None:
    """Test weight 1 + (total attempts - first-try successes)."""
    easy = WordRecord(word="easy", total_attempts=5, correct_first_try_count=5, next_review=NOW)
    hard = WordRecord(word="hard", total_attempts=5, correct_first_try_count=1, next_review=NOW)
    # weights 1 and 5, total 6
    assert DueDateSelectionPolicy(rng=FixedRandom(0.1)).select_next([easy, hard], now=NOW) is easy
    assert DueDateSelectionPolicy(rng=FixedRandom(0.5)).select_next([easy, hard], now=NOW) is hard


def test_combined_ranks_due_words_by_score() -> None:
    """Test due-date filtering with score weights."""
    mastered = WordRecord(word="mastered", score=100, next_review=NOW)
    fresh = WordRecord(word="fresh", score=0, next_review=NOW)
    not_due = WordRecord(word="not due", score=0, next_review=NOW + DAY_MS)
    policy = CombinedSelectionPolicy(rng=FixedRandom(0.5))

    assert policy.select_next([not_due, mastered, fresh], now=NOW) is fresh


@pytest.mark.parametrize(
    "name, policy_class",
    [
        ("ranking", RankingSelectionPolicy),
        ("due_date", DueDateSelectionPolicy),
        ("combined", CombinedSelectionPolicy),
    ],
)
def test_get_selection_policy(name: str, policy_class: type) -> None:
    """Test looking policies up by configured name."""
    assert type(get_selection_policy(name)) is policy_class


def test_get_selection_policy_unknown_name() -> None:
    """Test that unknown names are rejected."""
    with pytest.raises(ValueError):
        get_selection_policy("alphabetical")


def test_review_schedule_flag() -> None:
    """Test which policies need review dates maintained."""
    assert RankingSelectionPolicy.uses_review_schedule is False
    assert DueDateSelectionPolicy.uses_review_schedule is True
    assert CombinedSelectionPolicy.uses_review_schedule is True
