"""CSV and ZIP export of writer activity.

Format: UTF-8 with a BOM, every field double-quoted, quotes doubled, embedded
CR/LF written as the literal two-character sequences ``\\r`` / ``\\n``, rows
joined by ``\\n`` with no trailing newline.
"""

import csv
import io
import re
import zipfile
from datetime import date
from typing import Any, Iterable

from app.core.activity_report import UserActivity, edit_duration_minutes

BOM = "\ufeff"

USER_DETAIL_COLUMNS = [
    "user_id", "user_name", "session_id", "user_created_at",
    "document_id", "document_content_length", "document_content", "document_created_at",
    "document_updated_at", "document_edit_duration_minutes",
    "suggestion_id", "suggestion_type", "suggestion_content_length", "suggestion_content",
    "suggestion_is_accepted", "suggestion_reaction", "suggestion_created_at", "wizard_session_id",
    "suggestion_position", "suggestion_end_position", "selected_text",
    "user_suggestion_count", "user_acceptance_rate", "user_document_count",
]

SUMMARY_COLUMNS = [
    "user_id", "user_name", "session_id", "user_created_at",
    "document_count", "suggestion_count", "accepted_suggestions", "rejected_suggestions",
    "pending_suggestions", "acceptance_rate", "rejection_rate", "append_suggestions",
    "comment_suggestions", "total_document_length", "average_document_length",
    "latest_document_content_length", "latest_document_updated_at",
    "first_suggestion_date", "last_suggestion_date", "activity_span_days",
    "suggestions_with_reaction", "liked_suggestions", "applied_suggestions",
]

SNAPSHOT_COLUMNS = [
    "timestamp", "session_id", "text_length", "word_count", "sentence_count",
    "typing_speed", "last_sentence", "full_text",
]

_DOCUMENT_WIDTH = 6
_SUGGESTION_WIDTH = 11


# =============================================================================
# Field encoding
# =============================================================================


def format_field(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def format_tristate(value: bool | None) -> str:
    """is_accepted as written by the export: true, false or null."""
    if value is None:
        return "null"
    return "true" if value else "false"


def parse_tristate(value: str) -> bool | None:
    if value == "true":
        return True
    if value == "false":
        return False
    return None


def escape_newlines(value: str) -> str:
    return value.replace("\n", "\\n").replace("\r", "\\r")


_ESCAPED_NEWLINE = re.compile(r"\\([nr])")


def unescape_newlines(value: str) -> str:
    return _ESCAPED_NEWLINE.sub(lambda m: "\n" if m.group(1) == "n" else "\r", value)


def render_csv(rows: Iterable[list[Any]]) -> str:
    """Render rows in the export format (BOM included)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow([escape_newlines(format_field(value)) for value in row])
    return BOM + buffer.getvalue().rstrip("\n")


def read_csv_rows(text: str) -> list[dict[str, str]]:
    """Parse an exported CSV back into dicts of unescaped field values."""
    if text.startswith(BOM):
        text = text[len(BOM):]
    reader = csv.DictReader(io.StringIO(text))
    return [{key: unescape_newlines(value or "") for key, value in row.items()} for row in reader]


# =============================================================================
# Row builders
# =============================================================================


def _user_cells(activity: UserActivity) -> list[Any]:
    user = activity.user
    return [user.get("id"), user.get("name"), user.get("session_id"), user.get("created_at")]


def _summary_cells(activity: UserActivity) -> list[Any]:
    return [activity.suggestion_count, activity.acceptance_rate, activity.document_count]


def _document_cells(document: dict[str, Any]) -> list[Any]:
    content = document.get("content") or ""
    return [
        document.get("id"),
        len(content),
        content,
        document.get("created_at"),
        document.get("updated_at"),
        edit_duration_minutes(document),
    ]


def _suggestion_cells(suggestion: dict[str, Any]) -> list[Any]:
    content = suggestion.get("content") or ""
    return [
        suggestion.get("id"),
        suggestion.get("type"),
        len(content),
        content,
        format_tristate(suggestion.get("is_accepted")),
        suggestion.get("reaction"),
        suggestion.get("created_at"),
        suggestion.get("wizard_session_id"),
        suggestion.get("position"),
        suggestion.get("end_position"),
        suggestion.get("selected_text"),
    ]


def user_detail_rows(activity: UserActivity) -> list[list[Any]]:
    """
    Detail rows for one writer.

    Documents × suggestions when both exist, one-sided rows when only one
    side exists, and a single user-only row otherwise.
    """
    rows: list[list[Any]] = [list(USER_DETAIL_COLUMNS)]
    user_cells = _user_cells(activity)
    summary_cells = _summary_cells(activity)
    no_document = [""] * _DOCUMENT_WIDTH
    no_suggestion = [""] * _SUGGESTION_WIDTH

    if activity.documents and activity.suggestions:
        for document in activity.documents:
            for suggestion in activity.suggestions:
                rows.append(
                    user_cells + _document_cells(document) + _suggestion_cells(suggestion) + summary_cells
                )
    elif activity.documents:
        for document in activity.documents:
            rows.append(user_cells + _document_cells(document) + no_suggestion + summary_cells)
    elif activity.suggestions:
        for suggestion in activity.suggestions:
            rows.append(user_cells + no_document + _suggestion_cells(suggestion) + summary_cells)
    else:
        rows.append(user_cells + no_document + no_suggestion + summary_cells)
    return rows


def summary_row(activity: UserActivity) -> list[Any]:
    latest = activity.latest_document or {}
    dates = activity.suggestion_dates()
    return _user_cells(activity) + [
        activity.document_count,
        activity.suggestion_count,
        activity.accepted_count,
        activity.rejected_count,
        activity.pending_count,
        activity.acceptance_rate,
        activity.rejection_rate,
        activity.count_type("append"),
        activity.count_type("comment"),
        activity.total_document_length,
        activity.average_document_length,
        len(latest.get("content") or ""),
        latest.get("updated_at"),
        dates[0].date().isoformat() if dates else "",
        dates[-1].date().isoformat() if dates else "",
        activity.activity_span_days,
        activity.count_reaction(),
        activity.count_reaction("like"),
        activity.count_reaction("apply"),
    ]


def snapshot_rows(snapshots: list[dict[str, Any]]) -> list[list[Any]]:
    rows: list[list[Any]] = [list(SNAPSHOT_COLUMNS)]
    for snapshot in snapshots:
        rows.append([snapshot.get(column) for column in SNAPSHOT_COLUMNS])
    return rows


# =============================================================================
# Files
# =============================================================================


def build_user_csv(activity: UserActivity) -> str:
    return render_csv(user_detail_rows(activity))


def build_summary_csv(activities: list[UserActivity]) -> str:
    return render_csv([list(SUMMARY_COLUMNS)] + [summary_row(a) for a in activities])


def build_snapshots_csv(snapshots: list[dict[str, Any]]) -> str:
    return render_csv(snapshot_rows(snapshots))


def safe_filename_part(value: Any) -> str:
    return re.sub(r"[\\/:*?\"<>|\s]+", "_", str(value)).strip("_") or "user"


def user_csv_filename(activity: UserActivity) -> str:
    return f"{safe_filename_part(activity.user.get('name'))}-detail-{activity.user_id}.csv"


def build_users_zip(activities: list[UserActivity]) -> bytes:
    """ZIP archive with one detail CSV per writer."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for activity in activities:
            archive.writestr(user_csv_filename(activity), build_user_csv(activity).encode("utf-8"))
    return buffer.getvalue()


def dated_filename(stem: str, extension: str, on: date | None = None) -> str:
    on = on or date.today()
    return f"{safe_filename_part(stem)}-{on.isoformat()}.{extension}"
