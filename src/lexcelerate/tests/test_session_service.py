"""Tests for the practice session controller."""
import random
from unittest.mock import Mock, patch

import pytest

from lexcelerate.errors import PersistenceError, PreconditionError, ValidationError
from lexcelerate.services.catalogue_service import CatalogueService
from lexcelerate.services.scoring_policy import ScoringPolicy
from lexcelerate.services.selection_policy import DueDateSelectionPolicy, RankingSelectionPolicy
from lexcelerate.services.session_service import (
    AudioPlayer,
    PracticeSession,
    SessionController,
)


@pytest.fixture
def audio() -> Mock:
    return Mock(spec=AudioPlayer)


@pytest.fixture
def controller(catalogue_service: CatalogueService, audio: Mock) -> SessionController:
    """Create a controller with a seeded ranking policy."""
    return SessionController(
        catalogue_service,
        selection_policy=RankingSelectionPolicy(rng=random.Random(0)),
        audio=audio,
    )


@pytest.fixture
def session(controller: SessionController) -> PracticeSession:
    """A session whose catalogue holds only 'banana'."""
    session = controller.open_session("alice", sound_enabled=True)
    controller.add_word(session, "banana")
    return session


def test_open_session_loads_catalogue(controller: SessionController, catalogue_service: CatalogueService) -> None:
    """Test that a session starts with the stored words."""
    catalogue_service.add_word("alice", [], "cat")
    session = controller.open_session("alice", sound_enabled=False)

    assert session.user_id == "alice"
    assert [record.word for record in session.catalogue] == ["cat"]
    assert session.sound_enabled is False
    assert session.current_round is None


def test_add_word_notification(controller: SessionController) -> None:
    """Test the message shown after adding a word."""
    session = controller.open_session("alice")
    assert controller.add_word(session, " cat ") == '"cat" added'
    with pytest.raises(ValidationError):
        controller.add_word(session, " ")
    assert len(session.catalogue) == 1


def test_practice_needs_words(controller: SessionController) -> None:
    """Test that practice on an empty catalogue is refused."""
    session = controller.open_session("alice")
    with pytest.raises(ValidationError) as excinfo:
        controller.start_practice(session)
    assert excinfo.value.message == "Please add at least one word first!"


def test_start_practice_presents_covered_word(controller: SessionController, session: PracticeSession, audio: Mock) -> None:
    """Test the first prompt of a round."""
    prompt = controller.start_practice(session)

    assert prompt.prompt_text == "______"
    assert prompt.feedback_text == ""
    assert session.current_round.record.word == "banana"
    assert session.current_round.attempt_count == 0
    audio.speak.assert_called_once_with("banana")


def test_silent_session_does_not_speak(controller: SessionController, session: PracticeSession, audio: Mock) -> None:
    """Test that rounds start quietly with sound off."""
    session.sound_enabled = False
    controller.start_practice(session)
    audio.speak.assert_not_called()


def test_correct_submission(controller: SessionController, session: PracticeSession, catalogue_service: CatalogueService) -> None:
    """Test a first-try success and its persistence."""
    controller.start_practice(session)
    prompt = controller.submit(session, "Banana")

    assert prompt.correct is True
    assert prompt.feedback_text == "Correct!"
    assert session.current_round.resolved is True

    stored = catalogue_service.load("alice")[0]
    assert stored.total_attempts == 1
    assert stored.correct_first_try_count == 1
    assert stored.score == 1


def test_incorrect_submissions_lead_to_hints(controller: SessionController, session: PracticeSession, catalogue_service: CatalogueService) -> None:
    """Test re-prompting after wrong submissions."""
    controller.start_practice(session)

    prompts = [controller.submit(session, "bananna") for _ in range(3)]

    assert [prompt.correct for prompt in prompts] == [False, False, False]
    assert prompts[0].feedback_text == "Incorrect. Try again!"
    assert prompts[0].prompt_text == "______"
    assert prompts[1].prompt_text == "______"
    assert prompts[2].prompt_text == "ban-__-_"
    assert catalogue_service.load("alice")[0].mistakes == {"bananna": 3}


def test_submit_without_round(controller: SessionController, session: PracticeSession) -> None:
    """Test that submitting outside a round is a caller bug."""
    with pytest.raises(PreconditionError):
        controller.submit(session, "banana")


def test_empty_submission_changes_nothing(controller: SessionController, session: PracticeSession) -> None:
    """Test that blank submissions are not scored."""
    controller.start_practice(session)
    with pytest.raises(ValidationError):
        controller.submit(session, "   ")

    record = session.current_round.record
    assert session.current_round.attempt_count == 0
    assert record.mistakes == {}
    assert record.score == 0


def test_resolved_round_refuses_submissions(controller: SessionController, session: PracticeSession) -> None:
    """Test that a solved round is not scored twice."""
    controller.start_practice(session)
    controller.submit(session, "banana")
    with pytest.raises(ValidationError):
        controller.submit(session, "banana")
    assert session.current_round.record.total_attempts == 1


def test_failed_save_does_not_reopen_round(controller: SessionController, session: PracticeSession) -> None:
    """Test that a correct answer counts once even if saving it failed."""
    controller.start_practice(session)
    store = controller.catalogue_service.store
    with patch.object(store, "set", side_effect=PersistenceError("database is down")):
        with pytest.raises(PersistenceError):
            controller.submit(session, "banana")

    with pytest.raises(ValidationError):
        controller.submit(session, "banana")

    record = session.current_round.record
    assert record.total_attempts == 1
    assert record.correct_first_try_count == 1
    assert record.streak == 1
    assert record.score == 1


def test_advance_starts_next_round(controller: SessionController, session: PracticeSession) -> None:
    """Test moving on after a correct answer."""
    first = controller.start_practice(session)
    controller.submit(session, "banana")

    second = controller.advance(session, first.round_id)

    assert second is not None
    assert second.round_id != first.round_id
    assert session.current_round.attempt_count == 0
    assert session.current_round.resolved is False


def test_stale_advance_is_ignored(controller: SessionController, session: PracticeSession) -> None:
    """Test that a late timer cannot act on an ended or replaced round."""
    first = controller.start_practice(session)
    controller.submit(session, "banana")
    controller.end_round(session)
    assert controller.advance(session, first.round_id) is None
    assert session.current_round is None

    second = controller.start_practice(session)
    assert controller.advance(session, first.round_id) is None
    assert session.current_round.round_id == second.round_id


def test_talk(controller: SessionController, session: PracticeSession, audio: Mock) -> None:
    """Test speaking on demand."""
    with pytest.raises(ValidationError):
        controller.talk(session)

    session.sound_enabled = False
    controller.start_practice(session)
    controller.talk(session)
    audio.speak.assert_called_once_with("banana")


def test_toggle_sound(controller: SessionController, session: PracticeSession) -> None:
    """Test the sound switch labels."""
    assert controller.toggle_sound(session) == "Sound: OFF"
    assert session.sound_enabled is False
    assert controller.toggle_sound(session) == "Sound: ON"


def test_reveal_only_when_sound_is_off(controller: SessionController, session: PracticeSession) -> None:
    """Test that the word is shown only in silent mode."""
    controller.start_practice(session)
    assert controller.reveal(session) is None

    session.sound_enabled = False
    prompt = controller.reveal(session)
    assert prompt.prompt_text == "banana"
    with pytest.raises(ValidationError):
        controller.submit(session, "banana")

    hidden = controller.hide(session, prompt.round_id)
    assert hidden.prompt_text == "______"
    assert controller.submit(session, "banana").correct is True


def test_hide_ignores_old_rounds(controller: SessionController, session: PracticeSession) -> None:
    """Test that a late hide does nothing after the round changed."""
    session.sound_enabled = False
    first = controller.start_practice(session)
    controller.reveal(session)
    controller.next_round(session)
    assert controller.hide(session, first.round_id) is None


def test_due_date_policy_schedules_reviews(catalogue_service: CatalogueService) -> None:
    """Test that the scoring follows the selection policy's needs."""
    controller = SessionController(catalogue_service, selection_policy=DueDateSelectionPolicy())
    assert controller.scoring_policy.schedule_reviews is True

    controller = SessionController(catalogue_service, selection_policy=RankingSelectionPolicy())
    assert controller.scoring_policy.schedule_reviews is False

    custom = ScoringPolicy(schedule_reviews=True)
    assert SessionController(catalogue_service, scoring_policy=custom).scoring_policy is custom


def test_summaries(controller: SessionController, session: PracticeSession) -> None:
    """Test progress and statistics texts."""
    controller.start_practice(session)
    controller.submit(session, "banana")
    assert controller.progress_summary(session) == "Overall First-Attempt Accuracy: 100.0%"
    assert "<b>banana</b>" in controller.statistics(session)
