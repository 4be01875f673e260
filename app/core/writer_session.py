"""Writer surface — the live document and the suggestions sent to its author.

The session is a cache over storage, not a source of truth. Every writer
action and every realtime notification ends in the same place:
``refresh_suggestions`` rereads the full list and recomputes the active
suggestion. Storage failures are logged and otherwise ignored; local text
changes are never rolled back.
"""

import asyncio
from contextlib import suppress
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from app.core import suggestion_lifecycle as lifecycle
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.realtime import ChangeEvent, ChangeFeed, Subscription
from app.core.schemas_suggestions import Suggestion
from app.core.schemas_writers import User
from app.core.writing_metrics import build_snapshot_row, typing_speed
from app.db import documents as documents_db
from app.db import suggestions as suggestions_db
from app.db import users as users_db
from app.db import writing_snapshots as snapshots_db

logger = get_logger(__name__)


def new_session_id(prefix: str) -> str:
    """Short random session tag, e.g. ``user-3f9a2c1``."""
    return f"{prefix}-{uuid4().hex[:7]}"


def resolve_writer(name: str, session_id: str, user_id: int | None = None) -> tuple[dict[str, Any], bool]:
    """
    Find the writer to log in as, registering a new one when nothing matches.

    An explicit ``user_id`` (picked from the list) wins over a name match. On
    re-login the stored session token is refreshed.

    Returns:
        (user row, created)
    """
    if user_id is not None:
        existing = users_db.get_user(user_id)
    else:
        existing = users_db.find_user_by_name(name)

    if existing:
        users_db.update_session_id(existing["id"], session_id)
        return {**existing, "session_id": session_id}, False
    return users_db.create_user(name, session_id), True


def ensure_document(user_id: int) -> dict[str, Any]:
    """The writer's latest document, created empty on first use."""
    row = documents_db.get_latest_document(user_id)
    if row is None:
        row = documents_db.create_document(user_id)
    return row


class WriterSession:
    """State and actions of one writer's editing surface."""

    def __init__(
        self,
        feed: ChangeFeed,
        session_id: str | None = None,
        snapshot_interval: float | None = None,
    ):
        self.feed = feed
        self.session_id = session_id or new_session_id("user")
        if snapshot_interval is None:
            snapshot_interval = get_settings().SNAPSHOT_INTERVAL_SECONDS
        self.snapshot_interval = snapshot_interval

        self.user: User | None = None
        self.document_id: int | None = None
        self.text = ""
        self.suggestions: list[Suggestion] = []
        self.active_suggestion: Suggestion | None = None
        self.existing_users: list[User] = []
        self.alerts: list[str] = []

        self._subscription: Subscription | None = None
        self._snapshot_task: asyncio.Task | None = None
        self._last_snapshot: tuple[int, datetime] | None = None

    @property
    def user_id(self) -> int | None:
        return self.user.id if self.user else None

    @property
    def pending_suggestions(self) -> list[Suggestion]:
        return [s for s in self.suggestions if s.is_pending]

    # ------------------------------------------------------------------
    # Login / logout
    # ------------------------------------------------------------------

    async def fetch_existing_users(self) -> list[User]:
        """Load the users offered on the login form."""
        try:
            self.existing_users = [User(**row) for row in users_db.list_users()]
        except Exception as e:
            logger.error(f"Error fetching existing users: {e}")
            self.alerts.append("Could not load the existing user list")
        return self.existing_users

    async def login(self, name: str, user_id: int | None = None) -> User | None:
        """
        Log in as an existing writer or register a new one.

        An explicit ``user_id`` (picked from the list) wins over a name match.
        Returns None when the login could not be completed.
        """
        name = name.strip()
        if not name:
            self.alerts.append("Enter or pick a name")
            return None

        try:
            row, created = resolve_writer(name, self.session_id, user_id)
            user = User(**row)
            if not created:
                logger.info(f"User {user.name} logged in", extra={"user_id": user.id})
        except Exception as e:
            logger.error(f"Error logging in or registering user: {e}")
            self.alerts.append("Login or registration failed, please retry")
            return None

        self.user = user
        await self.load_document()
        await self.start()
        return user

    async def logout(self) -> None:
        await self.stop()
        self.user = None
        self.document_id = None
        self.text = ""
        self.suggestions = []
        self.active_suggestion = None
        self._last_snapshot = None

    # ------------------------------------------------------------------
    # Realtime and timers
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to this writer's suggestions and start the snapshot timer."""
        if self.user is None:
            return
        if self._subscription is None:
            self._subscription = await self.feed.subscribe(
                "suggestions", self._on_suggestions_changed, column="user_id", value=self.user.id
            )
        await self.refresh_suggestions()

        if self.snapshot_interval > 0 and self._snapshot_task is None:
            self._snapshot_task = asyncio.create_task(self._snapshot_loop())

    async def stop(self) -> None:
        if self._snapshot_task is not None:
            self._snapshot_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._snapshot_task
            self._snapshot_task = None
        if self._subscription is not None:
            await self._subscription.unsubscribe()
            self._subscription = None

    async def _on_suggestions_changed(self, event: ChangeEvent) -> None:
        logger.debug(f"Suggestion {event.event_type} received", extra={"user_id": self.user_id})
        await self.refresh_suggestions()

    async def _snapshot_loop(self) -> None:
        while True:
            await asyncio.sleep(self.snapshot_interval)
            await self.record_snapshot()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_document(self) -> None:
        """Load the writer's latest document, creating an empty one if none exists."""
        if self.user is None:
            return
        try:
            row = ensure_document(self.user.id)
            self.document_id = row["id"]
            self.text = row.get("content") or ""
        except Exception as e:
            logger.error(f"Error loading document: {e}", extra={"user_id": self.user.id})

    async def refresh_suggestions(self) -> None:
        """Reread every suggestion for this writer and recompute the active one."""
        if self.user is None:
            return
        try:
            rows = suggestions_db.list_suggestions(self.user.id)
        except Exception as e:
            logger.error(f"Error fetching suggestions: {e}", extra={"user_id": self.user.id})
            return
        self.suggestions = lifecycle.newest_first(Suggestion(**row) for row in rows)
        self.active_suggestion = lifecycle.select_active_suggestion(self.suggestions)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def edit(self, text: str) -> None:
        """Replace the local text and save it."""
        self.text = text
        await self._save_document(text)

    async def _save_document(self, text: str) -> bool:
        if self.document_id is None:
            return False
        try:
            documents_db.update_document_content(self.document_id, text)
            return True
        except Exception as e:
            logger.error(f"Error updating document: {e}", extra={"user_id": self.user_id})
            return False

    async def _record_outcome(self, suggestion_id: int, patch: dict[str, Any]) -> bool:
        try:
            suggestions_db.update_suggestion_outcome(suggestion_id, patch)
            return True
        except Exception as e:
            logger.error(
                f"Error updating suggestion {suggestion_id}: {e}", extra={"user_id": self.user_id}
            )
            return False

    async def _run_transition(self, result: lifecycle.TransitionResult) -> lifecycle.TransitionResult:
        # Local text changes first and stays changed even if a write fails
        if result.text_changed:
            self.text = result.new_text
            await self._save_document(result.new_text)
        await self._record_outcome(result.suggestion_id, result.patch)
        await self.refresh_suggestions()
        return result

    async def accept(self, suggestion_id: int) -> lifecycle.TransitionResult:
        suggestion = lifecycle.find_suggestion(self.suggestions, suggestion_id)
        return await self._run_transition(lifecycle.accept(suggestion, self.text))

    async def partial_accept(self, suggestion_id: int, accepted_text: str) -> lifecycle.TransitionResult:
        suggestion = lifecycle.find_suggestion(self.suggestions, suggestion_id)
        return await self._run_transition(
            lifecycle.partial_accept(suggestion, self.text, accepted_text)
        )

    async def reject(self, suggestion_id: int) -> lifecycle.TransitionResult:
        suggestion = lifecycle.find_suggestion(self.suggestions, suggestion_id)
        return await self._run_transition(lifecycle.reject(suggestion, self.text))

    async def like(self, suggestion_id: int) -> lifecycle.TransitionResult:
        suggestion = lifecycle.find_suggestion(self.suggestions, suggestion_id)
        return await self._run_transition(lifecycle.like(suggestion, self.text))

    async def apply(self, suggestion_id: int) -> lifecycle.TransitionResult:
        suggestion = lifecycle.find_suggestion(self.suggestions, suggestion_id)
        return await self._run_transition(lifecycle.apply(suggestion, self.text))

    async def record_snapshot(self, now: datetime | None = None) -> dict[str, Any] | None:
        """Capture the current text into the writing_snapshots audit trail."""
        if self.user is None:
            return None
        now = now or datetime.now(timezone.utc)
        previous_length, previous_at = self._last_snapshot or (None, None)
        speed = typing_speed(previous_length, len(self.text), previous_at, now)
        row = build_snapshot_row(self.user.id, self.session_id, self.text, now, speed)

        try:
            snapshots_db.insert_writing_snapshot(row)
        except Exception as e:
            logger.error(f"Failed to save writing snapshot: {e}", extra={"user_id": self.user.id})
            return None

        self._last_snapshot = (len(self.text), now)
        logger.debug(
            f"Snapshot saved: {row['text_length']} chars, {row['word_count']} words, "
            f"{row['sentence_count']} sentences",
            extra={"user_id": self.user.id, "session_id": self.session_id},
        )
        return row
