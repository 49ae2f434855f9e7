"""Progress summary and per-word statistics."""
from html import escape
from typing import Any, Dict, List, Sequence

from lexcelerate.models.word_models import WordRecord

MSG_NO_WORDS = "No words added."
MSG_NO_MISTAKES = "No mistakes recorded."


def first_attempt_accuracy(catalogue: Sequence[WordRecord]) -> float:
    """Share of completed rounds answered right on the first try, in percent."""
    total_attempts = sum(record.total_attempts for record in catalogue)
    total_first_try = sum(record.correct_first_try_count for record in catalogue)
    if total_attempts == 0:
        return 0.0
    return round(total_first_try / total_attempts * 100, 1)


def progress_summary(catalogue: Sequence[WordRecord]) -> str:
    """One-line accuracy summary for the home screen."""
    if not any(record.total_attempts for record in catalogue):
        return "Overall First-Attempt Accuracy: 0%"
    progress = f"{first_attempt_accuracy(catalogue):.1f}"
    return f"Overall First-Attempt Accuracy: {progress}%"


def word_stats(catalogue: Sequence[WordRecord]) -> List[Dict[str, Any]]:
    """Statistics of every word, in catalogue order."""
    return [
        {
            "word": record.word,
            "total_attempts": record.total_attempts,
            "correct_first_try": record.correct_first_try_count,
            "score": record.score,
            "mistakes": dict(record.mistakes),
        }
        for record in catalogue
    ]


def format_word_stats(catalogue: Sequence[WordRecord]) -> str:
    """Render per-word statistics as HTML for a Telegram message."""
    if not catalogue:
        return MSG_NO_WORDS

    blocks = []
    for stats in word_stats(catalogue):
        lines = [
            f"<b>{escape(stats['word'])}</b>",
            f"Total Attempts: {stats['total_attempts']}",
            f"Correct on First Try: {stats['correct_first_try']}",
            f"Score: {stats['score']}",
        ]
        if stats["mistakes"]:
            lines.append("Mistakes:")
            lines.extend(f"  • {escape(mistake)} : {count} time(s)" for mistake, count in stats["mistakes"].items())
        else:
            lines.append(MSG_NO_MISTAKES)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
