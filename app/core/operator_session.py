"""Operator ("wizard") surface — watches a writer and sends suggestions.

The operator only reads the writer's document; its sole write is inserting
suggestion rows. Like the writer surface, every change notification is
answered by rereading the affected list or row.
"""

import asyncio
from dataclasses import dataclass

from app.chains.generate_continuation import generate_continuation
from app.chains.generate_reader_reaction import generate_reader_reaction
from app.core.completion_variants import CompletionError
from app.core.logging import get_logger
from app.core.realtime import ChangeEvent, ChangeFeed, Subscription
from app.core.schemas_completions import CompletionVariant
from app.core.schemas_suggestions import Suggestion, SuggestionCreate, SuggestionType
from app.core.schemas_writers import User
from app.core.writer_session import new_session_id
from app.db import documents as documents_db
from app.db import suggestions as suggestions_db
from app.db import users as users_db

logger = get_logger(__name__)


@dataclass(frozen=True)
class SpanSelection:
    """A span of the writer's document picked by the operator."""

    position: int
    end_position: int
    selected_text: str


class OperatorSession:
    """State and actions of one operator's control panel."""

    def __init__(self, feed: ChangeFeed, session_id: str | None = None):
        self.feed = feed
        self.wizard_session_id = session_id or new_session_id("wizard")

        self.users: list[User] = []
        self.selected_user: User | None = None
        self.document_text: str | None = None
        self.sent_suggestions: list[Suggestion] = []
        self.alerts: list[str] = []

        self.draft = ""
        self.suggestion_type: SuggestionType = "append"
        self.selection: SpanSelection | None = None
        self.is_sending = False

        self._users_subscription: Subscription | None = None
        self._writer_subscriptions: list[Subscription] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load the writer list and follow changes to it."""
        if self._users_subscription is None:
            self._users_subscription = await self.feed.subscribe("users", self._on_users_changed)
        await self.refresh_users()

    async def stop(self) -> None:
        await self._drop_writer_subscriptions()
        if self._users_subscription is not None:
            await self._users_subscription.unsubscribe()
            self._users_subscription = None

    async def _drop_writer_subscriptions(self) -> None:
        for subscription in self._writer_subscriptions:
            await subscription.unsubscribe()
        self._writer_subscriptions = []

    async def _on_users_changed(self, event: ChangeEvent) -> None:
        await self.refresh_users()

    async def _on_document_changed(self, event: ChangeEvent) -> None:
        await self.refresh_document()

    async def _on_suggestions_changed(self, event: ChangeEvent) -> None:
        await self.refresh_sent_suggestions()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def refresh_users(self) -> None:
        try:
            self.users = [User(**row) for row in users_db.list_users()]
        except Exception as e:
            logger.error(f"Error fetching users: {e}")
            self.alerts.append("Could not load the writer list")

    async def refresh_document(self) -> None:
        """Reread the selected writer's latest document (None when there is none)."""
        if self.selected_user is None:
            return
        try:
            row = documents_db.get_latest_document(self.selected_user.id)
        except Exception as e:
            logger.error(f"Error fetching user document: {e}", extra={"user_id": self.selected_user.id})
            return
        self.document_text = (row.get("content") or "") if row else None

    async def refresh_sent_suggestions(self) -> None:
        if self.selected_user is None:
            return
        try:
            rows = suggestions_db.list_suggestions(self.selected_user.id)
        except Exception as e:
            logger.error(f"Error fetching suggestions: {e}", extra={"user_id": self.selected_user.id})
            return
        self.sent_suggestions = [Suggestion(**row) for row in rows]

    async def select_user(self, user_id: int) -> User | None:
        """Switch the panel to a writer and follow their document and suggestions."""
        user = next((u for u in self.users if u.id == user_id), None)
        if user is None:
            try:
                row = users_db.get_user(user_id)
            except Exception as e:
                logger.error(f"Error fetching user {user_id}: {e}")
                return None
            if row is None:
                return None
            user = User(**row)

        await self._drop_writer_subscriptions()
        self.selected_user = user
        self.document_text = None
        self.sent_suggestions = []
        self.clear_selection()

        await self.refresh_document()
        await self.refresh_sent_suggestions()

        self._writer_subscriptions = [
            await self.feed.subscribe(
                "documents", self._on_document_changed, column="user_id", value=user.id
            ),
            await self.feed.subscribe(
                "suggestions", self._on_suggestions_changed, column="user_id", value=user.id
            ),
        ]
        return user

    # ------------------------------------------------------------------
    # Span selection
    # ------------------------------------------------------------------

    def select_span(self, position: int, end_position: int, selected_text: str) -> None:
        """Pick a span of the document; a non-empty span switches to comment mode."""
        if position == end_position:
            self.clear_selection()
            return
        start, end = sorted((position, end_position))
        self.selection = SpanSelection(start, end, selected_text)
        self.suggestion_type = "comment"

    def clear_selection(self) -> None:
        self.selection = None
        self.suggestion_type = "append"

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def _build_request(self, content: str, suggestion_type: SuggestionType) -> SuggestionCreate:
        selection = self.selection if suggestion_type == "comment" else None
        return SuggestionCreate(
            user_id=self.selected_user.id,
            content=content,
            type=suggestion_type,
            wizard_session_id=self.wizard_session_id,
            position=selection.position if selection else None,
            end_position=selection.end_position if selection else None,
            selected_text=selection.selected_text if selection else None,
        )

    async def send_suggestion(
        self,
        content: str | None = None,
        suggestion_type: SuggestionType | None = None,
        reset: bool = True,
    ) -> Suggestion | None:
        """
        Insert a suggestion for the selected writer.

        Defaults to the current draft and mode. Does nothing without a writer,
        with blank content, or while another send is in flight.
        """
        content = self.draft if content is None else content
        suggestion_type = suggestion_type or self.suggestion_type
        if self.selected_user is None or not content.strip() or self.is_sending:
            return None

        self.is_sending = True
        try:
            row = await asyncio.to_thread(
                suggestions_db.create_suggestion,
                self._build_request(content, suggestion_type).to_row(),
            )
        except Exception as e:
            logger.error(f"Error sending suggestion: {e}", extra={"session_id": self.wizard_session_id})
            return None
        finally:
            self.is_sending = False

        await self.refresh_sent_suggestions()
        if reset:
            self.draft = ""
            self.clear_selection()
        return Suggestion(**row)

    # ------------------------------------------------------------------
    # LLM-assisted drafting
    # ------------------------------------------------------------------

    async def draft_continuations(self) -> list[CompletionVariant]:
        """Ask the LLM for continuation variants of the writer's current text."""
        if not self.document_text or not self.document_text.strip():
            return []
        try:
            output = await asyncio.to_thread(generate_continuation, self.document_text)
        except CompletionError as e:
            logger.error(f"Failed to fetch suggestion: {e}")
            return []
        return output.variants

    async def draft_reader_reactions(self) -> list[CompletionVariant]:
        """Ask the LLM for reader feedback on the selected span."""
        if self.selection is None or not self.document_text:
            return []
        try:
            output = await asyncio.to_thread(
                generate_reader_reaction,
                content=self.document_text,
                selected_text=self.selection.selected_text,
            )
        except CompletionError as e:
            logger.error(f"Failed to fetch reader reaction: {e}")
            return []
        return output.variants

    async def send_variant(self, variant: CompletionVariant, as_comment: bool = False) -> Suggestion | None:
        """
        Send a drafted variant directly.

        Continuations go out as append suggestions; reactions go out as comment
        suggestions anchored to the current selection, which is kept so that
        further variants can target the same span.
        """
        if as_comment:
            if self.selection is None:
                return None
            return await self.send_suggestion(variant.text, "comment", reset=False)
        return await self.send_suggestion(variant.text, "append", reset=False)
