"""Per-writer activity aggregation for offline analysis exports."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from dateutil import parser as dateutil_parser

from app.core.logging import get_logger
from app.db import documents as documents_db
from app.db import suggestions as suggestions_db
from app.db import users as users_db

logger = get_logger(__name__)


def _parse_dt(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return dateutil_parser.isoparse(str(value))
    except (ValueError, TypeError):
        return None


def format_rate(part: int, total: int) -> str:
    """Percentage with two decimals, e.g. ``"66.67%"``."""
    if total <= 0:
        return "0.00%"
    return f"{part / total * 100:.2f}%"


def edit_duration_minutes(document: dict[str, Any]) -> int:
    created = _parse_dt(document.get("created_at"))
    updated = _parse_dt(document.get("updated_at"))
    if created is None or updated is None:
        return 0
    return round((updated - created).total_seconds() / 60)


@dataclass
class UserActivity:
    """A writer with their documents and suggestions (rows as stored)."""

    user: dict[str, Any]
    documents: list[dict[str, Any]] = field(default_factory=list)
    suggestions: list[dict[str, Any]] = field(default_factory=list)

    @property
    def user_id(self) -> Any:
        return self.user.get("id")

    @property
    def document_count(self) -> int:
        return len(self.documents)

    @property
    def suggestion_count(self) -> int:
        return len(self.suggestions)

    @property
    def accepted_count(self) -> int:
        return sum(1 for s in self.suggestions if s.get("is_accepted") is True)

    @property
    def rejected_count(self) -> int:
        return sum(1 for s in self.suggestions if s.get("is_accepted") is False)

    @property
    def pending_count(self) -> int:
        return self.suggestion_count - self.accepted_count - self.rejected_count

    @property
    def acceptance_rate(self) -> str:
        return format_rate(self.accepted_count, self.suggestion_count)

    @property
    def rejection_rate(self) -> str:
        return format_rate(self.rejected_count, self.suggestion_count)

    def count_type(self, suggestion_type: str) -> int:
        return sum(1 for s in self.suggestions if s.get("type") == suggestion_type)

    def count_reaction(self, reaction: str | None = None) -> int:
        """Count suggestions with a given reaction, or with any reaction."""
        if reaction is None:
            return sum(1 for s in self.suggestions if s.get("reaction"))
        return sum(1 for s in self.suggestions if s.get("reaction") == reaction)

    @property
    def total_document_length(self) -> int:
        return sum(len(d.get("content") or "") for d in self.documents)

    @property
    def average_document_length(self) -> int:
        if not self.documents:
            return 0
        return round(self.total_document_length / self.document_count)

    @property
    def latest_document(self) -> dict[str, Any] | None:
        # Documents are loaded most recently updated first
        return self.documents[0] if self.documents else None

    def suggestion_dates(self) -> list[datetime]:
        dates = [_parse_dt(s.get("created_at")) for s in self.suggestions]
        return sorted(d for d in dates if d is not None)

    @property
    def activity_span_days(self) -> int:
        dates = self.suggestion_dates()
        if len(dates) < 2:
            return 0
        return math.ceil((dates[-1] - dates[0]).total_seconds() / 86400)


def load_user_activity(user_ids: list[int] | None = None) -> list[UserActivity]:
    """
    Load every writer (or the given ones) with their documents and suggestions.

    A failed per-user read is logged and leaves that side empty.
    """
    users = users_db.list_users()
    if user_ids is not None:
        wanted = set(user_ids)
        users = [u for u in users if u.get("id") in wanted]

    activities = []
    for user in users:
        activity = UserActivity(user=user)
        try:
            activity.documents = documents_db.list_documents(user["id"])
        except Exception as e:
            logger.error(f"Error fetching docs for user {user['id']}: {e}", extra={"user_id": user["id"]})
        try:
            activity.suggestions = suggestions_db.list_suggestions(user["id"])
        except Exception as e:
            logger.error(
                f"Error fetching suggestions for user {user['id']}: {e}", extra={"user_id": user["id"]}
            )
        activities.append(activity)
    return activities
