"""Models for word records and practice rounds."""
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from lexcelerate.config import MAX_SCORE

DAY_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass
class WordRecord:
    """Learning statistics and mastery state of one word in a catalogue."""
    word: str
    total_attempts: int = 0
    correct_first_try_count: int = 0
    mistakes: Dict[str, int] = field(default_factory=dict)
    score: int = 0
    streak: int = 0
    next_review: int = field(default_factory=now_ms)  # ms since epoch
    interval: int = 1  # days

    def matches(self, text: str) -> bool:
        """Check if text spells this word (case-insensitive)."""
        return text.lower() == self.word.lower()

    def to_data(self) -> Dict[str, Any]:
        """Convert to the serialized catalogue entry."""
        return {
            "word": self.word,
            "totalAttempts": self.total_attempts,
            "correctFirstTryCount": self.correct_first_try_count,
            "mistakes": dict(self.mistakes),
            "nextReview": self.next_review,
            "interval": self.interval,
            "score": self.score,
            "streak": self.streak,
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any], now: Optional[int] = None) -> "WordRecord":
        """Create a record from a serialized entry, filling in missing fields."""
        if not isinstance(data, dict) or not isinstance(data.get("word"), str):
            raise ValueError(f"Not a word record: {data!r}")
        if now is None:
            now = now_ms()
        score = data.get("score")
        streak = data.get("streak")
        return cls(
            word=data["word"],
            total_attempts=data.get("totalAttempts") or 0,
            correct_first_try_count=data.get("correctFirstTryCount") or 0,
            mistakes=dict(data.get("mistakes") or {}),
            score=min(max(score, 0), MAX_SCORE) if _is_number(score) else 0,
            streak=streak if _is_number(streak) else 0,
            next_review=data.get("nextReview") or now,
            interval=data.get("interval") or 1,
        )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class PracticeRound:
    """One attempt-cycle for a single word; not persisted."""
    record: WordRecord
    round_id: int
    attempt_count: int = 0  # wrong submissions so far
    revealed: bool = False
    resolved: bool = False


@dataclass
class AttemptResult:
    """Outcome of scoring one submission."""
    correct: bool
    first_try: bool = False
    score_delta: int = 0


@dataclass
class PracticePrompt:
    """What the presentation layer should show after a core operation."""
    prompt_text: str
    feedback_text: str = ""
    correct: Optional[bool] = None
    round_id: Optional[int] = None
