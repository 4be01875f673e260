"""Database operations for the suggestions table."""

from typing import Any

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_suggestions(user_id: int) -> list[dict[str, Any]]:
    """List all suggestions sent to a writer, newest first."""
    supabase = get_supabase()
    result = (
        supabase.table("suggestions")
        .select("*")
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .execute()
    )
    return result.data or []


def get_suggestion(suggestion_id: int) -> dict[str, Any] | None:
    """Get a suggestion by ID."""
    supabase = get_supabase()
    result = supabase.table("suggestions").select("*").eq("id", suggestion_id).execute()
    if result.data:
        return result.data[0]
    return None


def create_suggestion(row: dict[str, Any]) -> dict[str, Any]:
    """
    Insert a suggestion row.

    Args:
        row: Column values (content, user_id, wizard_session_id, type and,
            for comment suggestions, position, end_position, selected_text)

    Returns:
        Inserted suggestion dict

    Raises:
        ValueError: If the insert returned no row
    """
    supabase = get_supabase()
    result = supabase.table("suggestions").insert(row).execute()
    if not result.data:
        raise ValueError("No data returned from suggestion insert")

    suggestion = result.data[0]
    logger.info(
        f"Sent {suggestion.get('type')} suggestion {suggestion['id']}",
        extra={"user_id": row.get("user_id"), "session_id": row.get("wizard_session_id")},
    )
    return suggestion


def update_suggestion_outcome(suggestion_id: int, patch: dict[str, Any]) -> dict[str, Any] | None:
    """
    Record the writer's outcome on a suggestion.

    Args:
        suggestion_id: Suggestion ID
        patch: Subset of {"is_accepted", "reaction"}

    Returns:
        Updated suggestion dict, or None if no row matched
    """
    supabase = get_supabase()
    result = supabase.table("suggestions").update(patch).eq("id", suggestion_id).execute()
    if result.data:
        return result.data[0]
    return None
