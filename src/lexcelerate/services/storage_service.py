"""Key-value persistence backed by the database."""
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lexcelerate.errors import PersistenceError
from lexcelerate.models.base import SessionLocal
from lexcelerate.models.models import KeyValue

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String storage keyed by string."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        raise NotImplementedError("Subclasses must implement this method")

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key; a missing key is not an error."""
        raise NotImplementedError("Subclasses must implement this method")


class SqlKeyValueStore(KeyValueStore):
    """Key-value store on top of the ``key_values`` table.

    Every call opens its own session and commits before returning.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        db = self.session_factory()
        try:
            entry = db.query(KeyValue).filter(KeyValue.key == key).first()
            return entry.value if entry else None
        except SQLAlchemyError as e:
            logger.error(f"Error reading key {key}: {e}")
            raise PersistenceError(f"Could not read {key}") from e
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        db = self.session_factory()
        try:
            entry = db.query(KeyValue).filter(KeyValue.key == key).first()
            if entry:
                entry.value = value
            else:
                db.add(KeyValue(key=key, value=value))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error writing key {key}: {e}")
            raise PersistenceError(f"Could not write {key}") from e
        finally:
            db.close()

    def remove(self, key: str) -> None:
        db = self.session_factory()
        try:
            db.query(KeyValue).filter(KeyValue.key == key).delete()
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error removing key {key}: {e}")
            raise PersistenceError(f"Could not remove {key}") from e
        finally:
            db.close()
