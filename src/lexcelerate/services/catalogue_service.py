"""Service for loading, saving and extending word catalogues."""
import json
import logging
from typing import List, Optional

from lexcelerate import monitoring
from lexcelerate.errors import PersistenceError, ValidationError
from lexcelerate.models.word_models import WordRecord, now_ms
from lexcelerate.services.storage_service import KeyValueStore

logger = logging.getLogger(__name__)

CATALOGUE_KEY_PREFIX = "catalogue_"
MSG_INVALID_WORD = "Please enter a valid word."


def catalogue_key(user_id: str) -> str:
    """Get the storage key of a user's catalogue."""
    return f"{CATALOGUE_KEY_PREFIX}{user_id}"


class CatalogueService:
    """Keeps a user's ordered word catalogue in sync with the key-value store."""

    def __init__(self, store: KeyValueStore):
        """Initialize the service with a key-value store."""
        self.store = store

    def load(self, user_id: str, now: Optional[int] = None) -> List[WordRecord]:
        """Load a user's catalogue, repairing records saved by older versions.

        Plain strings become fresh records and missing fields get their
        defaults. The repaired catalogue is written back straight away.
        """
        if now is None:
            now = now_ms()
        raw = self.store.get(catalogue_key(user_id))
        if raw is None:
            entries = []
        else:
            try:
                entries = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.error(f"Catalogue of user {user_id} is not valid JSON: {e}")
                raise PersistenceError(f"Catalogue of user {user_id} is corrupt") from e
        if not isinstance(entries, list):
            raise PersistenceError(f"Catalogue of user {user_id} is corrupt")

        catalogue = []
        for entry in entries:
            if isinstance(entry, str):
                catalogue.append(WordRecord(word=entry, next_review=now))
            else:
                try:
                    catalogue.append(WordRecord.from_data(entry, now=now))
                except (TypeError, ValueError) as e:
                    logger.error(f"Catalogue of user {user_id} has a bad entry: {e}")
                    raise PersistenceError(f"Catalogue of user {user_id} is corrupt") from e
        logger.info(f"Loaded {len(catalogue)} words for user {user_id}")

        self.save(user_id, catalogue)
        return catalogue

    def save(self, user_id: str, catalogue: List[WordRecord]) -> None:
        """Write the whole catalogue under the user's key."""
        data = json.dumps([record.to_data() for record in catalogue])
        self.store.set(catalogue_key(user_id), data)
        logger.debug(f"Saved {len(catalogue)} words for user {user_id}")

    def add_word(self, user_id: str, catalogue: List[WordRecord], text: str) -> WordRecord:
        """Append a new word to the catalogue and persist it."""
        word = (text or "").strip()
        if not word:
            raise ValidationError(MSG_INVALID_WORD)

        if any(record.matches(word) for record in catalogue):
            logger.warning(f"User {user_id} added duplicate word: {word}")

        record = WordRecord(word=word)
        catalogue.append(record)
        self.save(user_id, catalogue)
        monitoring.words_added.inc()
        logger.info(f"Word added for user {user_id}: {word}")
        return record
