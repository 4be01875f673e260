"""API endpoints for writers: login, live document, snapshots and change events."""

import asyncio
import json
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Path
from fastapi.responses import StreamingResponse

from app.core import suggestion_lifecycle as lifecycle
from app.core.logging import get_logger
from app.core.realtime import ChangeEvent, get_change_feed, notify_change
from app.core.schemas_suggestions import Suggestion, SuggestionListResponse
from app.core.schemas_writers import (
    Document,
    DocumentUpdate,
    LoginRequest,
    LoginResponse,
    SnapshotCreate,
    User,
    WritingSnapshot,
)
from app.core.writer_session import ensure_document, new_session_id, resolve_writer
from app.core.writing_metrics import build_snapshot_row, typing_speed
from app.db import documents as documents_db
from app.db import suggestions as suggestions_db
from app.db import users as users_db
from app.db import writing_snapshots as snapshots_db

logger = get_logger(__name__)

router = APIRouter(prefix="/writers")


@router.get("", response_model=list[User])
async def list_writers() -> list[User]:
    """List all writers, newest first."""
    try:
        return [User(**row) for row in users_db.list_users()]
    except Exception as e:
        error_msg = f"Failed to list writers: {str(e)}"
        logger.error(error_msg)
        raise HTTPException(status_code=500, detail=error_msg) from e


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest) -> LoginResponse:
    """
    Log in as an existing writer (by id or exact name) or register a new one.

    The writer's latest document is returned, created empty if none exists.
    """
    try:
        session_id = request.session_id or new_session_id("user")
        row, created = resolve_writer(request.name.strip(), session_id, request.user_id)
        if created:
            notify_change("users", "INSERT", row)

        document = ensure_document(row["id"])
        return LoginResponse(user=User(**row), document=Document(**document), created=created)

    except Exception as e:
        error_msg = f"Failed to log in: {str(e)}"
        logger.error(error_msg, extra={"user_id": request.user_id})
        raise HTTPException(status_code=500, detail=error_msg) from e


@router.get("/{user_id}/document", response_model=Document)
async def get_document(user_id: int = Path(..., description="Writer ID")) -> Document:
    """Get the writer's current document."""
    try:
        row = documents_db.get_latest_document(user_id)
        if not row:
            raise HTTPException(status_code=404, detail=f"No document for writer {user_id}")
        return Document(**row)

    except HTTPException:
        raise
    except Exception as e:
        error_msg = f"Failed to get document: {str(e)}"
        logger.error(error_msg, extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail=error_msg) from e


@router.put("/{user_id}/document", response_model=Document)
async def save_document(
    user_id: int = Path(..., description="Writer ID"),
    request: DocumentUpdate = ...,
) -> Document:
    """Overwrite the writer's current document (last write wins)."""
    try:
        current = documents_db.get_latest_document(user_id)
        if not current:
            raise HTTPException(status_code=404, detail=f"No document for writer {user_id}")

        updated = documents_db.update_document_content(current["id"], request.content)
        row = updated or {**current, "content": request.content}
        notify_change("documents", "UPDATE", row)
        return Document(**row)

    except HTTPException:
        raise
    except Exception as e:
        error_msg = f"Failed to save document: {str(e)}"
        logger.error(error_msg, extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail=error_msg) from e


@router.get("/{user_id}/suggestions", response_model=SuggestionListResponse)
async def list_writer_suggestions(
    user_id: int = Path(..., description="Writer ID"),
) -> SuggestionListResponse:
    """All suggestions for a writer, newest first, with the active one selected."""
    try:
        suggestions = lifecycle.newest_first(
            Suggestion(**row) for row in suggestions_db.list_suggestions(user_id)
        )
        return SuggestionListResponse(
            suggestions=suggestions,
            active_suggestion=lifecycle.select_active_suggestion(suggestions),
            total=len(suggestions),
        )

    except Exception as e:
        error_msg = f"Failed to list suggestions: {str(e)}"
        logger.error(error_msg, extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail=error_msg) from e


@router.post("/{user_id}/snapshots", response_model=WritingSnapshot)
async def record_snapshot(
    user_id: int = Path(..., description="Writer ID"),
    request: SnapshotCreate = ...,
) -> WritingSnapshot:
    """
    Append a writing snapshot.

    When the client sends no typing speed it is derived from the previous
    snapshot of the same session.
    """
    try:
        now = datetime.now(timezone.utc)
        speed = request.typing_speed
        if speed is None:
            previous = [
                s for s in snapshots_db.list_writing_snapshots(user_id)
                if s.get("session_id") == request.session_id
            ]
            if previous:
                last = previous[-1]
                last_at = WritingSnapshot(**last).timestamp
                speed = typing_speed(last.get("text_length"), len(request.full_text), last_at, now)
            else:
                speed = 0.0

        row = build_snapshot_row(user_id, request.session_id, request.full_text, now, speed)
        snapshots_db.insert_writing_snapshot(row)
        return WritingSnapshot(**row)

    except Exception as e:
        error_msg = f"Failed to save writing snapshot: {str(e)}"
        logger.error(error_msg, extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail=error_msg) from e


async def _change_event_stream(user_id: int):
    """
    Forward document/suggestion change notifications for one writer as SSE.

    Only the table and event type are sent; clients refetch on each event.
    """
    queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
    feed = get_change_feed()
    subscriptions = [
        await feed.subscribe("suggestions", queue.put_nowait, column="user_id", value=user_id),
        await feed.subscribe("documents", queue.put_nowait, column="user_id", value=user_id),
    ]
    try:
        yield f"data: {json.dumps({'type': 'subscribed', 'user_id': user_id})}\n\n"
        while True:
            event = await queue.get()
            yield f"data: {json.dumps({'table': event.table, 'type': event.event_type})}\n\n"
    finally:
        for subscription in subscriptions:
            await subscription.unsubscribe()


@router.get("/{user_id}/events")
async def stream_changes(user_id: int = Path(..., description="Writer ID")):
    """Server-Sent Events stream of "table changed" notifications for a writer."""
    return StreamingResponse(
        _change_event_stream(user_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
