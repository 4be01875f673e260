"""Suggestion lifecycle — how a suggestion moves from delivery to a writer outcome.

States:  pending → accepted | partially_accepted | applied | rejected | liked

Every non-pending state is terminal. Transitions are pure functions over
``(suggestion, text)``: they validate the precondition, compute the storage
patch and the new document text, and leave persisting both to the caller.
The writer surface never patches a local state machine; after each
transition it refetches the full suggestion list and reruns
``select_active_suggestion``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from app.core.schemas_suggestions import Suggestion


class SuggestionState(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PARTIALLY_ACCEPTED = "partially_accepted"
    APPLIED = "applied"
    REJECTED = "rejected"
    LIKED = "liked"


class SuggestionTransitionError(Exception):
    """Raised when an action is not allowed on a suggestion."""


class SuggestionNotFoundError(LookupError):
    """Raised when a suggestion id is not in the current list."""


# =============================================================================
# Storage patches
# =============================================================================

ACCEPT_PATCH: dict[str, Any] = {"is_accepted": True, "reaction": "apply"}
REJECT_PATCH: dict[str, Any] = {"is_accepted": False, "reaction": "reject"}
# is_accepted is left untouched (stays null)
LIKE_PATCH: dict[str, Any] = {"reaction": "like"}


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a writer action: what to store and what the text becomes."""

    suggestion_id: int
    state: SuggestionState
    patch: dict[str, Any] = field(default_factory=dict)
    new_text: str = ""
    text_changed: bool = False


def state_of(suggestion: Suggestion) -> SuggestionState:
    """
    Derive the coarse state of a stored suggestion.

    The stored fields do not distinguish a full accept from a partial accept
    or an apply; all three read back as ACCEPTED.
    """
    if suggestion.is_pending:
        return SuggestionState.PENDING
    if suggestion.reaction == "like" and suggestion.is_accepted is None:
        return SuggestionState.LIKED
    if suggestion.is_accepted is False or suggestion.reaction == "reject":
        return SuggestionState.REJECTED
    return SuggestionState.ACCEPTED


def _require_pending(suggestion: Suggestion) -> None:
    if not suggestion.is_pending:
        raise SuggestionTransitionError(
            f"Suggestion {suggestion.id} is already {state_of(suggestion).value}"
        )


def _require_append(suggestion: Suggestion, action: str) -> None:
    if suggestion.type != "append":
        raise SuggestionTransitionError(
            f"Cannot {action} a {suggestion.type} suggestion; only append suggestions"
        )


# =============================================================================
# Text effects
# =============================================================================


def splice_span(text: str, content: str, position: int, end_position: int | None = None) -> str:
    """
    Replace ``text[position:end_position]`` with ``content``.

    Without an end position the content is inserted at ``position``.
    """
    if end_position is None:
        end_position = position
    if end_position < position:
        raise SuggestionTransitionError(
            f"Span end {end_position} precedes span start {position}"
        )
    return text[:position] + content + text[end_position:]


# =============================================================================
# Transitions
# =============================================================================


def accept(suggestion: Suggestion, text: str) -> TransitionResult:
    """Accept an append suggestion in full: the text gains its content."""
    _require_pending(suggestion)
    _require_append(suggestion, "accept")
    new_text = text + suggestion.content
    return TransitionResult(
        suggestion_id=suggestion.id,
        state=SuggestionState.ACCEPTED,
        patch=dict(ACCEPT_PATCH),
        new_text=new_text,
        text_changed=new_text != text,
    )


def partial_accept(suggestion: Suggestion, text: str, accepted_text: str) -> TransitionResult:
    """Accept a writer-edited portion of an append suggestion."""
    _require_pending(suggestion)
    _require_append(suggestion, "partially accept")
    new_text = text + accepted_text
    return TransitionResult(
        suggestion_id=suggestion.id,
        state=SuggestionState.PARTIALLY_ACCEPTED,
        patch=dict(ACCEPT_PATCH),
        new_text=new_text,
        text_changed=new_text != text,
    )


def reject(suggestion: Suggestion, text: str) -> TransitionResult:
    _require_pending(suggestion)
    return TransitionResult(
        suggestion_id=suggestion.id,
        state=SuggestionState.REJECTED,
        patch=dict(REJECT_PATCH),
        new_text=text,
    )


def like(suggestion: Suggestion, text: str) -> TransitionResult:
    _require_pending(suggestion)
    return TransitionResult(
        suggestion_id=suggestion.id,
        state=SuggestionState.LIKED,
        patch=dict(LIKE_PATCH),
        new_text=text,
    )


def apply(suggestion: Suggestion, text: str) -> TransitionResult:
    """
    Apply a suggestion to the text.

    Append suggestions are added at the end. Comment suggestions replace their
    recorded span, or are inserted at ``position`` when no end was recorded.
    A comment without a position has nowhere to go and is refused.
    """
    _require_pending(suggestion)

    if suggestion.type == "append":
        new_text = text + suggestion.content
    else:
        if suggestion.position is None:
            raise SuggestionTransitionError(
                f"Comment suggestion {suggestion.id} has no recorded position to apply at"
            )
        new_text = splice_span(
            text, suggestion.content, suggestion.position, suggestion.end_position
        )

    return TransitionResult(
        suggestion_id=suggestion.id,
        state=SuggestionState.APPLIED,
        patch=dict(ACCEPT_PATCH),
        new_text=new_text,
        text_changed=new_text != text,
    )


# =============================================================================
# Selection
# =============================================================================

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _created_key(suggestion: Suggestion) -> datetime:
    created = suggestion.created_at
    if created is None:
        return _OLDEST
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


def newest_first(suggestions: Iterable[Suggestion]) -> list[Suggestion]:
    return sorted(suggestions, key=_created_key, reverse=True)


def select_active_suggestion(suggestions: Iterable[Suggestion]) -> Suggestion | None:
    """
    Pick the suggestion shown in the writer's primary action slot.

    The most recently created pending append suggestion wins; older pending
    ones wait until it reaches a terminal state and the list is refetched.
    """
    for suggestion in newest_first(suggestions):
        if suggestion.type == "append" and suggestion.is_pending:
            return suggestion
    return None


def find_suggestion(suggestions: Iterable[Suggestion], suggestion_id: int) -> Suggestion:
    """Look up a suggestion in the current list."""
    for suggestion in suggestions:
        if suggestion.id == suggestion_id:
            return suggestion
    raise SuggestionNotFoundError(f"Suggestion {suggestion_id} not found")


TRANSITIONS = {
    "accept": accept,
    "reject": reject,
    "like": like,
    "apply": apply,
}
