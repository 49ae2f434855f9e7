"""Text-to-speech for the words being practiced."""
import logging
import re
from pathlib import Path
from typing import Optional

from gtts import gTTS, gTTSError

from lexcelerate.config import settings

logger = logging.getLogger(__name__)


class PronunciationService:
    """Generates and caches mp3 pronunciations with gTTS."""

    def __init__(self, directory: Optional[Path] = None, language: Optional[str] = None):
        self.directory = Path(directory or settings.paths.pronunciations_dir)
        self.language = language or settings.practice.speech_language

    def pronunciation_file(self, text: str) -> Path:
        """Path where the pronunciation of text is cached."""
        return self.directory / f"{self._sanitize_filename(text)}.mp3"

    def synthesize(self, text: str) -> Optional[Path]:
        """Return an mp3 of text, generating it on first use; None on failure."""
        path = self.pronunciation_file(text)
        if path.exists():
            return path
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            gTTS(text=text, lang=self.language).save(str(path))
            logger.info(f"Pronunciation generated for word: {text}, file: {path.name}")
            return path
        except (gTTSError, OSError) as e:
            logger.error(f"Error generating pronunciation for word: {text}, error: {e}")
            return None

    @staticmethod
    def _sanitize_filename(word: str) -> str:
        """Sanitize word for use in filename."""
        # Replace any non-alphanumeric characters with underscore
        return re.sub(r"[^a-zA-Z0-9]", "_", word.lower())
