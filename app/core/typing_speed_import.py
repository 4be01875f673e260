"""Import and summary of typing-speed CSV logs for offline analysis.

Expected header: ``timestamp,speed[,action_type,suggestion_id]``. Action
types are ``A`` (append suggestion shown) and ``F`` (feedback shown).
"""

import csv
import io
from dataclasses import dataclass

from dateutil import parser as dateutil_parser

MAX_CHART_POINTS = 120
REQUIRED_COLUMNS = ("timestamp", "speed")


class TypingSpeedImportError(ValueError):
    """Raised when an uploaded CSV cannot be used."""


@dataclass(frozen=True)
class SpeedRecord:
    timestamp: str
    speed: int
    action_type: str = ""
    suggestion_id: str = ""


@dataclass(frozen=True)
class SpeedStats:
    total_points: int
    avg_speed: int
    max_speed: int
    add_count: int
    feedback_count: int
    duration_minutes: int


def parse_speed_csv(text: str) -> list[SpeedRecord]:
    """
    Parse a typing-speed CSV.

    Raises:
        TypingSpeedImportError: If required columns are missing or a row is malformed
    """
    text = text.lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(text))
    headers = [h.strip() for h in (reader.fieldnames or [])]
    if not all(column in headers for column in REQUIRED_COLUMNS):
        raise TypingSpeedImportError("CSV must contain timestamp and speed columns")
    reader.fieldnames = headers

    records = []
    for line_number, row in enumerate(reader, start=2):
        timestamp = (row.get("timestamp") or "").strip()
        if not timestamp:
            continue
        try:
            speed = int(float((row.get("speed") or "").strip()))
        except (ValueError, OverflowError) as e:
            raise TypingSpeedImportError(f"Invalid speed on line {line_number}") from e
        records.append(
            SpeedRecord(
                timestamp=timestamp,
                speed=speed,
                action_type=(row.get("action_type") or "").strip(),
                suggestion_id=(row.get("suggestion_id") or "").strip(),
            )
        )
    return records


def _minutes_between(first: str, last: str) -> int:
    try:
        start = dateutil_parser.parse(first)
        end = dateutil_parser.parse(last)
        # Mixed naive and offset-aware timestamps cannot be subtracted
        elapsed = (end - start).total_seconds()
    except (ValueError, OverflowError, TypeError):
        return 0
    return round(elapsed / 60)


def summarize(records: list[SpeedRecord]) -> SpeedStats:
    if not records:
        return SpeedStats(0, 0, 0, 0, 0, 0)
    speeds = [r.speed for r in records]
    return SpeedStats(
        total_points=len(records),
        avg_speed=round(sum(speeds) / len(speeds)),
        max_speed=max(speeds),
        add_count=sum(1 for r in records if r.action_type == "A"),
        feedback_count=sum(1 for r in records if r.action_type == "F"),
        duration_minutes=_minutes_between(records[0].timestamp, records[-1].timestamp),
    )


def sample_for_chart(records: list[SpeedRecord], max_points: int = MAX_CHART_POINTS) -> list[SpeedRecord]:
    """
    Downsample to roughly ``max_points`` while keeping every action record.

    Result is ordered by timestamp.
    """
    if len(records) <= max_points:
        return list(records)

    rate = -(-len(records) // max_points)
    sampled = {i for i in range(0, len(records), rate)}
    sampled.update(i for i, r in enumerate(records) if r.action_type)

    def sort_key(index: int):
        try:
            return (dateutil_parser.parse(records[index].timestamp), index)
        except (ValueError, OverflowError):
            return (None, index)

    try:
        ordered = sorted(sampled, key=sort_key)
    except TypeError:
        # Unparseable timestamps mixed with parseable ones: keep file order
        ordered = sorted(sampled)
    return [records[i] for i in ordered]
