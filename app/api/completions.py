"""Completion proxy endpoints — one LLM call per request, errors as {error}."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.chains.generate_continuation import generate_continuation
from app.chains.generate_reader_reaction import generate_reader_reaction
from app.core.logging import get_logger
from app.core.schemas_completions import (
    CommentSuggestionRequest,
    SuggestionRequest,
    SuggestionResponse,
)

logger = get_logger(__name__)

router = APIRouter()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=status_code)


@router.post("/suggestion", response_model=SuggestionResponse)
async def suggestion(request: SuggestionRequest):
    """
    Continue the writer's text.

    Returns the raw completion (``||``-delimited), the fragment it continues
    from, and up to three labelled variants.
    """
    if not request.prompt:
        return _error("Prompt is required", 400)

    try:
        output = generate_continuation(request.prompt)
    except Exception as e:
        logger.error(f"Suggestion API error: {e}")
        return _error("Failed to get suggestion", 500)

    return SuggestionResponse(
        suggestion=output.raw,
        original_context=output.original_context,
        variants=output.variants,
    )


@router.post(
    "/comment-suggestion", response_model=SuggestionResponse, response_model_exclude_none=True
)
async def comment_suggestion(request: CommentSuggestionRequest):
    """React to a selected excerpt as an ordinary reader would."""
    if not ((request.content and request.selected_text) or request.prompt):
        return _error("Content and selectedText are required", 400)

    try:
        output = generate_reader_reaction(
            content=request.content,
            selected_text=request.selected_text,
            prompt=request.prompt,
        )
    except Exception as e:
        logger.error(f"Comment suggestion API error: {e}")
        return _error("Failed to get comment suggestion", 500)

    return SuggestionResponse(suggestion=output.raw, variants=output.variants)
