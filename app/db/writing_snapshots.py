"""Database operations for the writing_snapshots audit trail."""

from typing import Any

from app.db.supabase_client import get_supabase


def insert_writing_snapshot(row: dict[str, Any]) -> None:
    """Append a snapshot row. Snapshots are never updated or deleted."""
    supabase = get_supabase()
    supabase.table("writing_snapshots").insert(row).execute()


def list_writing_snapshots(user_id: int) -> list[dict[str, Any]]:
    """List a writer's snapshots in capture order (export only)."""
    supabase = get_supabase()
    result = (
        supabase.table("writing_snapshots")
        .select("*")
        .eq("user_id", user_id)
        .order("timestamp")
        .execute()
    )
    return result.data or []
