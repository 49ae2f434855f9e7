"""Service running practice sessions: one round after another."""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from lexcelerate import monitoring
from lexcelerate.config import settings
from lexcelerate.errors import PreconditionError, ValidationError
from lexcelerate.models.word_models import PracticePrompt, PracticeRound, WordRecord
from lexcelerate.services.catalogue_service import CatalogueService
from lexcelerate.services.hint_service import covered_form, prompt_for
from lexcelerate.services.scoring_policy import ScoringPolicy
from lexcelerate.services.selection_policy import BaseSelectionPolicy, get_selection_policy
from lexcelerate.services import stats_service

logger = logging.getLogger(__name__)

MSG_CORRECT = "Correct!"
MSG_INCORRECT = "Incorrect. Try again!"
MSG_NO_WORDS = "Please add at least one word first!"
MSG_EMPTY_SUBMISSION = "Please type the word you heard."
MSG_NO_WORD_TO_SPEAK = "No word available to speak. Please start a practice session."
MSG_WORD_REVEALED = "Wait until the word is hidden again."
MSG_ROUND_RESOLVED = "Already correct! The next word is on its way."
SOUND_ON = "Sound: ON"
SOUND_OFF = "Sound: OFF"


class AudioPlayer(ABC):
    """Speaks text to the learner; nothing is returned to the caller."""

    @abstractmethod
    def speak(self, text: str) -> None:
        raise NotImplementedError("Subclasses must implement this method")


@dataclass
class PracticeSession:
    """Everything one learner's session needs; owned by the caller."""
    user_id: str
    catalogue: List[WordRecord] = field(default_factory=list)
    sound_enabled: bool = True
    current_round: Optional[PracticeRound] = None
    rounds_started: int = 0

    def is_current(self, round_id: int) -> bool:
        """Check if round_id is still the round being practiced."""
        return self.current_round is not None and self.current_round.round_id == round_id


class SessionController:
    """Drives practice rounds: pick a word, score submissions, move on."""

    def __init__(
        self,
        catalogue_service: CatalogueService,
        selection_policy: Optional[BaseSelectionPolicy] = None,
        scoring_policy: Optional[ScoringPolicy] = None,
        audio: Optional[AudioPlayer] = None,
    ):
        """Initialize the controller with its collaborators."""
        self.catalogue_service = catalogue_service
        self.selection_policy = selection_policy or get_selection_policy(settings.practice.selection_policy)
        self.scoring_policy = scoring_policy or ScoringPolicy(
            schedule_reviews=self.selection_policy.uses_review_schedule
        )
        self.audio = audio

    def open_session(self, user_id: str, sound_enabled: Optional[bool] = None) -> PracticeSession:
        """Load the user's catalogue into a new session."""
        if sound_enabled is None:
            sound_enabled = settings.practice.sound_enabled
        catalogue = self.catalogue_service.load(user_id)
        logger.info(f"Session opened for user {user_id} with {len(catalogue)} words")
        return PracticeSession(user_id=user_id, catalogue=catalogue, sound_enabled=sound_enabled)

    def end_round(self, session: PracticeSession) -> None:
        """Drop the active round so pending callbacks find nothing to act on."""
        session.current_round = None

    def close_session(self, session: PracticeSession) -> None:
        self.end_round(session)
        logger.info(f"Session closed for user {session.user_id}")

    def add_word(self, session: PracticeSession, text: str) -> str:
        """Add a word to the session's catalogue and return the notification."""
        record = self.catalogue_service.add_word(session.user_id, session.catalogue, text)
        return f'"{record.word}" added'

    def start_practice(self, session: PracticeSession) -> PracticePrompt:
        """Begin practicing; the catalogue must not be empty."""
        if not session.catalogue:
            raise ValidationError(MSG_NO_WORDS)
        return self.next_round(session)

    def next_round(self, session: PracticeSession) -> PracticePrompt:
        """Select a word and start a fresh round for it."""
        record = self.selection_policy.select_next(session.catalogue)
        session.rounds_started += 1
        session.current_round = PracticeRound(record=record, round_id=session.rounds_started)
        monitoring.rounds_started.inc()
        logger.info(f"Round {session.rounds_started} for user {session.user_id}: {record.word!r}")

        if session.sound_enabled and self.audio:
            self.audio.speak(record.word)
        return PracticePrompt(
            prompt_text=covered_form(record.word),
            round_id=session.current_round.round_id,
        )

    def advance(self, session: PracticeSession, round_id: int) -> Optional[PracticePrompt]:
        """Start the next round if round_id is still current, else do nothing."""
        if not session.is_current(round_id):
            logger.debug(f"Ignoring stale advance for round {round_id} of user {session.user_id}")
            return None
        return self.next_round(session)

    def submit(self, session: PracticeSession, submission: Optional[str]) -> PracticePrompt:
        """Score a spelling attempt for the current round."""
        practice_round = session.current_round
        if practice_round is None:
            raise PreconditionError("No practice round is active")
        if practice_round.resolved:
            raise ValidationError(MSG_ROUND_RESOLVED)
        if practice_round.revealed:
            raise ValidationError(MSG_WORD_REVEALED)
        attempt = (submission or "").strip()
        if not attempt:
            raise ValidationError(MSG_EMPTY_SUBMISSION)

        record = practice_round.record
        result = self.scoring_policy.apply_attempt(record, practice_round, attempt)
        # Closed before saving so a failed save cannot score the round twice
        practice_round.resolved = result.correct
        self.catalogue_service.save(session.user_id, session.catalogue)

        if result.correct:
            monitoring.submissions.labels(result="correct").inc()
            monitoring.rounds_completed.labels(first_try=str(result.first_try).lower()).inc()
            feedback = MSG_CORRECT
        else:
            monitoring.submissions.labels(result="incorrect").inc()
            feedback = MSG_INCORRECT

        return PracticePrompt(
            prompt_text=prompt_for(record.word, practice_round.attempt_count),
            feedback_text=feedback,
            correct=result.correct,
            round_id=practice_round.round_id,
        )

    def talk(self, session: PracticeSession) -> None:
        """Speak the current word, whatever the sound setting."""
        if session.current_round is None:
            raise ValidationError(MSG_NO_WORD_TO_SPEAK)
        if self.audio:
            self.audio.speak(session.current_round.record.word)

    def toggle_sound(self, session: PracticeSession) -> str:
        """Flip automatic speaking and return the new button label."""
        session.sound_enabled = not session.sound_enabled
        return sound_label(session.sound_enabled)

    def reveal(self, session: PracticeSession) -> Optional[PracticePrompt]:
        """Show the word itself; only possible while sound is off."""
        practice_round = session.current_round
        if session.sound_enabled or practice_round is None:
            return None
        practice_round.revealed = True
        return PracticePrompt(prompt_text=practice_round.record.word, round_id=practice_round.round_id)

    def hide(self, session: PracticeSession, round_id: int) -> Optional[PracticePrompt]:
        """Cover a revealed word again if round_id is still current."""
        if not session.is_current(round_id):
            return None
        practice_round = session.current_round
        practice_round.revealed = False
        return PracticePrompt(
            prompt_text=prompt_for(practice_round.record.word, practice_round.attempt_count),
            round_id=round_id,
        )

    def progress_summary(self, session: PracticeSession) -> str:
        return stats_service.progress_summary(session.catalogue)

    def statistics(self, session: PracticeSession) -> str:
        return stats_service.format_word_stats(session.catalogue)


def sound_label(sound_enabled: bool) -> str:
    """Label of the sound toggle button."""
    return SOUND_ON if sound_enabled else SOUND_OFF
