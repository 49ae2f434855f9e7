"""User service for tracking who is logged in on a chat."""
import logging
from typing import Optional

from lexcelerate.errors import ValidationError
from lexcelerate.services.storage_service import KeyValueStore

# Configure logging
logger = logging.getLogger(__name__)

CURRENT_USER_KEY_PREFIX = "currentUser_"
MSG_MISSING_CREDENTIALS = "Please enter both a username and password."


class UserService:
    """Remembers the logged-in user of each chat.

    Any non-empty username and password pair is accepted; this is an
    identity switch, not authentication.
    """

    def __init__(self, store: KeyValueStore):
        """Initialize the service with a key-value store."""
        self.store = store

    @staticmethod
    def _key(chat_key: str) -> str:
        return f"{CURRENT_USER_KEY_PREFIX}{chat_key}"

    def login(self, chat_key: str, username: Optional[str], password: Optional[str]) -> str:
        """Log username in on chat_key and return the trimmed username."""
        username = (username or "").strip()
        password = (password or "").strip()
        if not username or not password:
            raise ValidationError(MSG_MISSING_CREDENTIALS)
        self.store.set(self._key(chat_key), username)
        logger.info(f"User {username} logged in on chat {chat_key}")
        return username

    def current_user(self, chat_key: str) -> Optional[str]:
        """Get the user logged in on chat_key, if any."""
        return self.store.get(self._key(chat_key))

    def logout(self, chat_key: str) -> None:
        """Forget the user logged in on chat_key."""
        self.store.remove(self._key(chat_key))
        logger.info(f"Logged out on chat {chat_key}")
