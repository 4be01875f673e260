"""Text statistics captured in writing snapshots."""

import re
from datetime import datetime

# Sentence terminators, including full-width CJK punctuation
SENTENCE_SPLIT = re.compile(r"[。！？!?]")


def count_words(text: str) -> int:
    return len(text.split())


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in SENTENCE_SPLIT.split(text) if s.strip()]


def count_sentences(text: str) -> int:
    return len(split_sentences(text))


def last_sentence(text: str) -> str:
    sentences = split_sentences(text)
    return sentences[-1] if sentences else ""


def typing_speed(
    previous_length: int | None,
    current_length: int,
    previous_at: datetime | None,
    current_at: datetime,
) -> float:
    """
    Characters per minute between two snapshots.

    Deletions and the first snapshot of a session count as zero.
    """
    if previous_length is None or previous_at is None:
        return 0.0
    elapsed = (current_at - previous_at).total_seconds()
    if elapsed <= 0:
        return 0.0
    delta = current_length - previous_length
    if delta <= 0:
        return 0.0
    return round(delta * 60.0 / elapsed, 2)


def build_snapshot_row(
    user_id: int,
    session_id: str,
    text: str,
    captured_at: datetime,
    speed: float,
) -> dict:
    """Assemble a writing_snapshots row."""
    return {
        "user_id": user_id,
        "session_id": session_id,
        "timestamp": captured_at.isoformat(),
        "text_length": len(text),
        "word_count": count_words(text),
        "sentence_count": count_sentences(text),
        "last_sentence": last_sentence(text),
        "typing_speed": speed,
        "full_text": text,
    }
