"""Prompt masks and syllable hints for the word being practiced."""
import re
from typing import List

# Zero or more non-vowels, one or more vowels, then non-vowels or the end
SYLLABLE_PATTERN = re.compile(r"[^aeiouy]*[aeiouy]+(?:[^aeiouy]+|$)", re.IGNORECASE)

MASK_CHAR = "_"
SEPARATOR = "-"

# Number of wrong submissions before syllables start to be revealed
HINT_THRESHOLD = 2


def split_into_syllables(word: str) -> List[str]:
    """Naively split a word into syllable-like chunks.

    This is a heuristic, not a real syllabifier: "banana" gives
    ["ban", "an", "a"]. A word without vowels is one chunk.
    """
    syllables = SYLLABLE_PATTERN.findall(word)
    return syllables if syllables else [word]


def covered_form(word: str) -> str:
    """One underscore per character of the word."""
    return MASK_CHAR * len(word)


def hint(word: str, attempt_count: int) -> str:
    """Reveal one more leading syllable per wrong submission past the second."""
    syllables = split_into_syllables(word)
    to_reveal = max(0, min(attempt_count - HINT_THRESHOLD, len(syllables)))
    return SEPARATOR.join(
        syllable if index < to_reveal else covered_form(syllable)
        for index, syllable in enumerate(syllables)
    )


def prompt_for(word: str, attempt_count: int) -> str:
    """Prompt text to show after attempt_count wrong submissions."""
    if attempt_count <= HINT_THRESHOLD:
        return covered_form(word)
    return hint(word, attempt_count)
