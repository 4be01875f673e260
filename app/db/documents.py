"""Database operations for the documents table."""

from datetime import datetime, timezone
from typing import Any

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def get_latest_document(user_id: int) -> dict[str, Any] | None:
    """Get the most recently updated document of a writer."""
    supabase = get_supabase()
    result = (
        supabase.table("documents")
        .select("*")
        .eq("user_id", user_id)
        .order("updated_at", desc=True)
        .limit(1)
        .execute()
    )
    if result.data:
        return result.data[0]
    return None


def list_documents(user_id: int) -> list[dict[str, Any]]:
    """List all documents of a writer, most recently updated first."""
    supabase = get_supabase()
    result = (
        supabase.table("documents")
        .select("*")
        .eq("user_id", user_id)
        .order("updated_at", desc=True)
        .execute()
    )
    return result.data or []


def create_document(user_id: int, content: str = "") -> dict[str, Any]:
    """
    Create a document for a writer.

    Raises:
        ValueError: If the insert returned no row
    """
    supabase = get_supabase()
    result = (
        supabase.table("documents")
        .insert({"user_id": user_id, "content": content})
        .execute()
    )
    if not result.data:
        raise ValueError("No data returned from document insert")

    document = result.data[0]
    logger.info(
        f"Created document {document['id']}",
        extra={"user_id": user_id},
    )
    return document


def update_document_content(document_id: int, content: str) -> dict[str, Any] | None:
    """Overwrite a document's content in place and bump updated_at."""
    supabase = get_supabase()
    result = (
        supabase.table("documents")
        .update(
            {
                "content": content,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        .eq("id", document_id)
        .execute()
    )
    if result.data:
        return result.data[0]
    return None
