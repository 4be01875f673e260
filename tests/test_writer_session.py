"""End-to-end tests for the writer surface against the fake store and in-process feed."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.operator_session import OperatorSession
from app.core.suggestion_lifecycle import SuggestionNotFoundError, SuggestionTransitionError
from app.core.writer_session import WriterSession, ensure_document, new_session_id, resolve_writer

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


async def _writer(feed, name: str = "Ada", text: str = "") -> WriterSession:
    writer = WriterSession(feed, snapshot_interval=0)
    await writer.login(name)
    if text:
        await writer.edit(text)
    return writer


async def _operator_for(feed, writer: WriterSession) -> OperatorSession:
    operator = OperatorSession(feed)
    await operator.start()
    await operator.select_user(writer.user_id)
    return operator


# =============================================================================
# Login
# =============================================================================


class TestLogin:
    def test_new_session_id(self):
        session_id = new_session_id("user")

        assert session_id.startswith("user-")
        assert len(session_id) == len("user-") + 7

    @pytest.mark.asyncio
    async def test_registers_new_writer_with_empty_document(self, fake_supabase, feed):
        writer = await _writer(feed)

        assert writer.user.name == "Ada"
        assert writer.text == ""
        assert writer.document_id is not None
        assert len(fake_supabase.rows("users")) == 1
        assert fake_supabase.rows("documents")[0]["user_id"] == writer.user_id

    @pytest.mark.asyncio
    async def test_existing_name_logs_in_and_refreshes_session(self, fake_supabase, feed):
        existing = fake_supabase.seed("users", {"name": "Ada", "session_id": "user-old0000"})
        fake_supabase.seed("documents", {"user_id": existing["id"], "content": "Saved draft"})
        writer = WriterSession(feed, session_id="user-new0000", snapshot_interval=0)

        user = await writer.login("  Ada ")

        assert user.id == existing["id"]
        assert writer.text == "Saved draft"
        assert fake_supabase.get("users", existing["id"])["session_id"] == "user-new0000"
        assert len(fake_supabase.rows("users")) == 1

    @pytest.mark.asyncio
    async def test_pick_by_id_wins_over_name(self, fake_supabase, feed):
        picked = fake_supabase.seed("users", {"name": "Ada", "session_id": "s1"})
        fake_supabase.seed("users", {"name": "Grace", "session_id": "s2"})
        writer = WriterSession(feed, snapshot_interval=0)

        user = await writer.login("Grace", user_id=picked["id"])

        assert user.id == picked["id"]

    @pytest.mark.asyncio
    async def test_blank_name_is_refused(self, fake_supabase, feed):
        writer = WriterSession(feed, snapshot_interval=0)

        assert await writer.login("   ") is None
        assert writer.alerts == ["Enter or pick a name"]

    @pytest.mark.asyncio
    async def test_storage_failure_alerts(self, fake_supabase, feed):
        fake_supabase.failing_tables.add("users")
        writer = WriterSession(feed, snapshot_interval=0)

        assert await writer.login("Ada") is None
        assert writer.user is None
        assert writer.alerts == ["Login or registration failed, please retry"]

    @pytest.mark.asyncio
    async def test_fetch_existing_users(self, fake_supabase, feed):
        fake_supabase.seed("users", {"name": "Ada", "session_id": "s1"})
        writer = WriterSession(feed, snapshot_interval=0)

        users = await writer.fetch_existing_users()

        assert [u.name for u in users] == ["Ada"]

    def test_resolve_writer_and_ensure_document(self, fake_supabase):
        row, created = resolve_writer("Ada", "user-aaaaaaa")
        again, created_again = resolve_writer("Ada", "user-bbbbbbb")

        assert created is True
        assert created_again is False
        assert again["id"] == row["id"]
        assert again["session_id"] == "user-bbbbbbb"

        document = ensure_document(row["id"])
        assert ensure_document(row["id"])["id"] == document["id"]

    @pytest.mark.asyncio
    async def test_logout_drops_subscription(self, fake_supabase, feed):
        writer = await _writer(feed)
        assert feed.subscriber_count == 1

        await writer.logout()

        assert feed.subscriber_count == 0
        assert writer.user is None
        assert writer.text == ""


# =============================================================================
# Suggestion round trips
# =============================================================================


class TestSuggestionFlow:
    @pytest.mark.asyncio
    async def test_accept_append_end_to_end(self, fake_supabase, feed):
        writer = await _writer(feed, text="Once upon a time")
        operator = await _operator_for(feed, writer)

        operator.draft = " there was a king."
        sent = await operator.send_suggestion()
        await feed.drain()

        assert writer.active_suggestion.id == sent.id

        await writer.accept(sent.id)
        await feed.drain()

        assert writer.text == "Once upon a time there was a king."
        assert fake_supabase.rows("documents")[0]["content"] == "Once upon a time there was a king."
        row = fake_supabase.get("suggestions", sent.id)
        assert row["is_accepted"] is True
        assert row["reaction"] == "apply"
        assert writer.active_suggestion is None
        assert operator.document_text == "Once upon a time there was a king."

    @pytest.mark.asyncio
    async def test_apply_comment_span_end_to_end(self, fake_supabase, feed):
        text = "The sky was blue."
        writer = await _writer(feed, text=text)
        operator = await _operator_for(feed, writer)

        operator.select_span(8, 12, text[8:12])
        operator.draft = "ocean "
        sent = await operator.send_suggestion()
        await feed.drain()

        assert sent.type == "comment"
        assert writer.active_suggestion is None
        assert [s.id for s in writer.pending_suggestions] == [sent.id]

        await writer.apply(sent.id)

        assert writer.text == text[:8] + "ocean " + text[12:]
        assert fake_supabase.get("suggestions", sent.id)["reaction"] == "apply"

    @pytest.mark.asyncio
    async def test_partial_accept(self, fake_supabase, feed):
        writer = await _writer(feed, text="Once")
        operator = await _operator_for(feed, writer)
        sent = await operator.send_suggestion(" upon a time there was")
        await feed.drain()

        await writer.partial_accept(sent.id, " upon a time")

        assert writer.text == "Once upon a time"
        assert fake_supabase.get("suggestions", sent.id)["is_accepted"] is True

    @pytest.mark.asyncio
    async def test_reject_and_like_leave_text(self, fake_supabase, feed):
        writer = await _writer(feed, text="Draft")
        operator = await _operator_for(feed, writer)
        first = await operator.send_suggestion(" one")
        second = await operator.send_suggestion(" two")
        await feed.drain()

        assert writer.active_suggestion.id == second.id

        await writer.reject(second.id)
        assert writer.active_suggestion.id == first.id

        await writer.like(first.id)

        assert writer.text == "Draft"
        assert fake_supabase.get("suggestions", second.id)["is_accepted"] is False
        liked = fake_supabase.get("suggestions", first.id)
        assert liked["reaction"] == "like"
        assert liked.get("is_accepted") is None
        assert writer.active_suggestion is None

    @pytest.mark.asyncio
    async def test_terminal_suggestion_refuses_second_action(self, fake_supabase, feed):
        writer = await _writer(feed, text="Draft")
        operator = await _operator_for(feed, writer)
        sent = await operator.send_suggestion(" more")
        await feed.drain()
        await writer.reject(sent.id)

        with pytest.raises(SuggestionTransitionError):
            await writer.accept(sent.id)

    @pytest.mark.asyncio
    async def test_unknown_suggestion(self, fake_supabase, feed):
        writer = await _writer(feed)

        with pytest.raises(SuggestionNotFoundError):
            await writer.accept(404)

    @pytest.mark.asyncio
    async def test_failed_document_write_keeps_local_text(self, fake_supabase, feed):
        writer = await _writer(feed, text="Once")
        operator = await _operator_for(feed, writer)
        sent = await operator.send_suggestion(" more")
        await feed.drain()
        fake_supabase.failing_tables.add("documents")

        await writer.accept(sent.id)

        assert writer.text == "Once more"
        assert fake_supabase.rows("documents")[0]["content"] == "Once"
        assert fake_supabase.get("suggestions", sent.id)["is_accepted"] is True

    @pytest.mark.asyncio
    async def test_failed_refresh_keeps_previous_list(self, fake_supabase, feed):
        writer = await _writer(feed)
        operator = await _operator_for(feed, writer)
        sent = await operator.send_suggestion(" more")
        await feed.drain()
        fake_supabase.failing_tables.add("suggestions")

        await writer.refresh_suggestions()

        assert writer.active_suggestion.id == sent.id


# =============================================================================
# Snapshots
# =============================================================================


class TestSnapshots:
    @pytest.mark.asyncio
    async def test_typing_speed_between_snapshots(self, fake_supabase, feed):
        writer = await _writer(feed, text="Hello")

        first = await writer.record_snapshot(now=T0)
        await writer.edit("Hello world, again!")
        second = await writer.record_snapshot(now=T0 + timedelta(seconds=10))

        assert first["typing_speed"] == 0.0
        assert second["typing_speed"] == 84.0
        assert second["word_count"] == 3
        assert len(fake_supabase.rows("writing_snapshots")) == 2

    @pytest.mark.asyncio
    async def test_failed_insert_is_logged(self, fake_supabase, feed):
        writer = await _writer(feed, text="Hello")
        fake_supabase.failing_tables.add("writing_snapshots")

        assert await writer.record_snapshot(now=T0) is None

    @pytest.mark.asyncio
    async def test_no_snapshot_before_login(self, fake_supabase, feed):
        writer = WriterSession(feed, snapshot_interval=0)

        assert await writer.record_snapshot() is None

    @pytest.mark.asyncio
    async def test_snapshot_timer(self, fake_supabase, feed):
        writer = WriterSession(feed, snapshot_interval=0.01)
        await writer.login("Ada")

        await asyncio.sleep(0.1)
        await writer.stop()

        assert len(fake_supabase.rows("writing_snapshots")) >= 1
