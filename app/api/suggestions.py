"""API endpoints for sending suggestions and recording writer outcomes."""

import logging

from fastapi import APIRouter, HTTPException, Path

from app.core import suggestion_lifecycle as lifecycle
from app.core.logging import get_logger, log_with_context
from app.core.realtime import notify_change
from app.core.schemas_suggestions import (
    PartialAcceptRequest,
    Suggestion,
    SuggestionCreate,
    TransitionResponse,
)
from app.core.writer_session import ensure_document
from app.db import documents as documents_db
from app.db import suggestions as suggestions_db

logger = get_logger(__name__)

router = APIRouter(prefix="/suggestions")


@router.post("", response_model=Suggestion, status_code=201)
async def create_suggestion(request: SuggestionCreate) -> Suggestion:
    """Operator sends a suggestion to a writer."""
    try:
        row = suggestions_db.create_suggestion(request.to_row())
        notify_change("suggestions", "INSERT", row)
        return Suggestion(**row)

    except Exception as e:
        error_msg = f"Failed to send suggestion: {str(e)}"
        logger.error(error_msg, extra={"user_id": request.user_id})
        raise HTTPException(status_code=500, detail=error_msg) from e


def _run_transition(suggestion_id: int, action: str, accepted_text: str | None = None) -> TransitionResponse:
    """
    Apply a writer action against the stored suggestion and document.

    The suggestion outcome is written before the document, so a retried
    request after a failed document write is refused instead of applying
    the text twice. The active suggestion is recomputed from a fresh read
    of the full list.
    """
    row = suggestions_db.get_suggestion(suggestion_id)
    if not row:
        raise lifecycle.SuggestionNotFoundError(f"Suggestion {suggestion_id} not found")
    suggestion = Suggestion(**row)

    document = documents_db.get_latest_document(suggestion.user_id)
    text = (document or {}).get("content") or ""

    if action == "partial_accept":
        result = lifecycle.partial_accept(suggestion, text, accepted_text or "")
    else:
        result = lifecycle.TRANSITIONS[action](suggestion, text)

    updated = suggestions_db.update_suggestion_outcome(suggestion_id, result.patch)
    updated_row = updated or {**row, **result.patch}
    notify_change("suggestions", "UPDATE", updated_row)

    document_text = text
    if result.text_changed:
        document = document or ensure_document(suggestion.user_id)
        saved = documents_db.update_document_content(document["id"], result.new_text)
        notify_change("documents", "UPDATE", saved or {**document, "content": result.new_text})
        document_text = result.new_text

    remaining = [Suggestion(**r) for r in suggestions_db.list_suggestions(suggestion.user_id)]
    log_with_context(
        logger,
        logging.INFO,
        f"Suggestion {suggestion_id} {result.state.value}",
        user_id=suggestion.user_id,
        suggestion_id=suggestion_id,
    )
    return TransitionResponse(
        suggestion=Suggestion(**updated_row),
        state=result.state.value,
        text_changed=result.text_changed,
        document_text=document_text,
        active_suggestion=lifecycle.select_active_suggestion(remaining),
    )


def _handle(suggestion_id: int, action: str, accepted_text: str | None = None) -> TransitionResponse:
    try:
        return _run_transition(suggestion_id, action, accepted_text)

    except lifecycle.SuggestionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except lifecycle.SuggestionTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        error_msg = f"Failed to {action.replace('_', ' ')} suggestion: {str(e)}"
        logger.error(error_msg, extra={"extra_data": {"suggestion_id": suggestion_id}})
        raise HTTPException(status_code=500, detail=error_msg) from e


@router.post("/{suggestion_id}/accept", response_model=TransitionResponse)
async def accept_suggestion(suggestion_id: int = Path(..., description="Suggestion ID")):
    """Accept an append suggestion in full."""
    return _handle(suggestion_id, "accept")


@router.post("/{suggestion_id}/partial-accept", response_model=TransitionResponse)
async def partial_accept_suggestion(
    suggestion_id: int = Path(..., description="Suggestion ID"),
    request: PartialAcceptRequest = ...,
):
    """Accept a writer-edited portion of an append suggestion."""
    return _handle(suggestion_id, "partial_accept", request.text)


@router.post("/{suggestion_id}/reject", response_model=TransitionResponse)
async def reject_suggestion(suggestion_id: int = Path(..., description="Suggestion ID")):
    return _handle(suggestion_id, "reject")


@router.post("/{suggestion_id}/like", response_model=TransitionResponse)
async def like_suggestion(suggestion_id: int = Path(..., description="Suggestion ID")):
    return _handle(suggestion_id, "like")


@router.post("/{suggestion_id}/apply", response_model=TransitionResponse)
async def apply_suggestion(suggestion_id: int = Path(..., description="Suggestion ID")):
    """Apply a suggestion: replace/insert at the comment span, or append."""
    return _handle(suggestion_id, "apply")
