"""Score, streak and mistake bookkeeping after each submission."""
import logging
from typing import Optional

from lexcelerate.config import MAX_SCORE
from lexcelerate.errors import PreconditionError
from lexcelerate.models.word_models import DAY_MS, AttemptResult, PracticeRound, WordRecord, now_ms

logger = logging.getLogger(__name__)

# Streak thresholds and the score gained on a correct round
STREAK_BONUSES = [(10, 5), (5, 2), (0, 1)]
# Above this score a mistake costs more
HIGH_SCORE_THRESHOLD = 60
HIGH_SCORE_PENALTY = 2
PENALTY = 1


def correct_bonus(streak: int) -> int:
    """Points awarded for a correct round given the streak after it."""
    for threshold, bonus in STREAK_BONUSES:
        if streak >= threshold:
            return bonus
    return 1


def mistake_penalty(score: int) -> int:
    """Points lost for a wrong submission given the score before it."""
    return HIGH_SCORE_PENALTY if score > HIGH_SCORE_THRESHOLD else PENALTY


class ScoringPolicy:
    """Updates a word record in place after a submission.

    With ``schedule_reviews`` set, a correct round also moves the
    record's review date the way the due-date policy expects: a first
    try doubles the interval, anything else resets it to one day.
    """

    def __init__(self, schedule_reviews: bool = False):
        self.schedule_reviews = schedule_reviews

    def apply_attempt(
        self,
        record: WordRecord,
        practice_round: PracticeRound,
        submission: str,
        now: Optional[int] = None,
    ) -> AttemptResult:
        """Score one submission against the round's word."""
        if record is None or practice_round is None:
            raise PreconditionError("No word is being practiced")

        attempt = submission.strip().lower()
        if record.matches(attempt):
            return self._apply_correct(record, practice_round, now)
        return self._apply_incorrect(record, practice_round, attempt)

    def _apply_correct(self, record: WordRecord, practice_round: PracticeRound, now: Optional[int]) -> AttemptResult:
        first_try = practice_round.attempt_count == 0
        record.total_attempts += 1
        if first_try:
            record.correct_first_try_count += 1

        record.streak += 1
        old_score = record.score
        record.score = min(record.score + correct_bonus(record.streak), MAX_SCORE)

        if self.schedule_reviews:
            self._schedule_review(record, first_try, now)

        logger.info(
            f"Correct: {record.word!r} (first try: {first_try}, streak: {record.streak}, "
            f"score: {old_score} -> {record.score})"
        )
        return AttemptResult(correct=True, first_try=first_try, score_delta=record.score - old_score)

    def _apply_incorrect(self, record: WordRecord, practice_round: PracticeRound, attempt: str) -> AttemptResult:
        practice_round.attempt_count += 1
        record.mistakes[attempt] = record.mistakes.get(attempt, 0) + 1

        record.streak = 0
        old_score = record.score
        record.score = max(record.score - mistake_penalty(record.score), 0)

        logger.info(
            f"Incorrect: {record.word!r} spelled {attempt!r} "
            f"(attempt {practice_round.attempt_count}, score: {old_score} -> {record.score})"
        )
        return AttemptResult(correct=False, score_delta=record.score - old_score)

    @staticmethod
    def _schedule_review(record: WordRecord, first_try: bool, now: Optional[int]) -> None:
        if now is None:
            now = now_ms()
        if first_try:
            record.interval = record.interval * 2 if record.interval else 1
        else:
            record.interval = 1
        record.next_review = now + record.interval * DAY_MS
