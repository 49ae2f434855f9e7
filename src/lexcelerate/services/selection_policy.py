"""Policies choosing the next word to practice."""
import logging
import random
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional, Sequence, Type

from lexcelerate.config import MAX_SCORE
from lexcelerate.errors import PreconditionError
from lexcelerate.models.word_models import WordRecord, now_ms

logger = logging.getLogger(__name__)


class SelectionMethod(Enum):
    """Available selection policies."""
    RANKING = "ranking"  # Weighted by mastery score
    DUE_DATE = "due_date"  # Due words first, weighted by mistakes
    COMBINED = "combined"  # Due words first, weighted by mastery score


def weighted_choice(records: Sequence[WordRecord], weights: Sequence[int], rng: random.Random) -> WordRecord:
    """Roulette-wheel selection; ties resolve in catalogue order."""
    total_weight = sum(weights)
    draw = rng.random() * total_weight
    cumulative = 0
    for record, weight in zip(records, weights):
        cumulative += weight
        if draw < cumulative:
            return record
    return records[0]


class BaseSelectionPolicy(ABC):
    """Base class for all selection policies."""

    type: SelectionMethod
    uses_review_schedule: bool = False

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def select_next(self, catalogue: Sequence[WordRecord], now: Optional[int] = None) -> WordRecord:
        """Choose the word for the next round from a non-empty catalogue."""
        if not catalogue:
            raise PreconditionError("Cannot select a word from an empty catalogue")
        if now is None:
            now = now_ms()
        candidates = self._candidates(catalogue, now)
        weights = [self._weight(record) for record in candidates]
        record = weighted_choice(candidates, weights, self.rng)
        logger.debug(f"{self.type.value}: selected {record.word!r} from {len(candidates)} candidates")
        return record

    def _candidates(self, catalogue: Sequence[WordRecord], now: int) -> List[WordRecord]:
        return list(catalogue)

    @abstractmethod
    def _weight(self, record: WordRecord) -> int:
        """Relative chance of drawing record; must be positive."""
        raise NotImplementedError("Subclasses must implement this method")


class RankingSelectionPolicy(BaseSelectionPolicy):
    """Lower-scoring words come up more often."""
    type = SelectionMethod.RANKING

    def _weight(self, record: WordRecord) -> int:
        # score 0 -> 101, score 100 -> 1
        return (MAX_SCORE + 1) - record.score


class DueDateSelectionPolicy(BaseSelectionPolicy):
    """Only words due for review, favouring those missed on the first try."""
    type = SelectionMethod.DUE_DATE
    uses_review_schedule = True

    def _candidates(self, catalogue: Sequence[WordRecord], now: int) -> List[WordRecord]:
        due = [record for record in catalogue if not record.next_review or record.next_review <= now]
        if not due:
            earliest = min(catalogue, key=lambda record: record.next_review)
            due = [earliest]
        return due

    def _weight(self, record: WordRecord) -> int:
        return 1 + (record.total_attempts - record.correct_first_try_count)


class CombinedSelectionPolicy(DueDateSelectionPolicy):
    """Due words only, weighted by mastery score."""
    type = SelectionMethod.COMBINED

    def _weight(self, record: WordRecord) -> int:
        return (MAX_SCORE + 1) - record.score


POLICIES: Dict[SelectionMethod, Type[BaseSelectionPolicy]] = {
    SelectionMethod.RANKING: RankingSelectionPolicy,
    SelectionMethod.DUE_DATE: DueDateSelectionPolicy,
    SelectionMethod.COMBINED: CombinedSelectionPolicy,
}


def get_selection_policy(name: str, rng: Optional[random.Random] = None) -> BaseSelectionPolicy:
    """Build the selection policy configured under name."""
    try:
        method = SelectionMethod(name)
    except ValueError:
        raise ValueError(f"Unknown selection policy: {name}") from None
    return POLICIES[method](rng=rng)
