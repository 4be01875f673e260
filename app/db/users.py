"""Database operations for the users table."""

from typing import Any

from app.core.logging import get_logger
from app.db.supabase_client import get_supabase

logger = get_logger(__name__)


def list_users() -> list[dict[str, Any]]:
    """List all writers, newest first."""
    supabase = get_supabase()
    result = supabase.table("users").select("*").order("created_at", desc=True).execute()
    return result.data or []


def get_user(user_id: int) -> dict[str, Any] | None:
    """Get a user by ID."""
    supabase = get_supabase()
    result = supabase.table("users").select("*").eq("id", user_id).execute()
    if result.data:
        return result.data[0]
    return None


def find_user_by_name(name: str) -> dict[str, Any] | None:
    """Find the first user whose name matches exactly."""
    supabase = get_supabase()
    result = supabase.table("users").select("*").eq("name", name).limit(1).execute()
    if result.data:
        return result.data[0]
    return None


def create_user(name: str, session_id: str) -> dict[str, Any]:
    """
    Register a new writer.

    Raises:
        ValueError: If the insert returned no row
    """
    supabase = get_supabase()
    result = (
        supabase.table("users")
        .insert({"name": name, "session_id": session_id})
        .execute()
    )
    if not result.data:
        raise ValueError("No data returned from user insert")

    user = result.data[0]
    logger.info(f"Registered user {user['id']}", extra={"user_id": user["id"]})
    return user


def update_session_id(user_id: int, session_id: str) -> dict[str, Any] | None:
    """Refresh a user's session token on re-login."""
    supabase = get_supabase()
    result = (
        supabase.table("users")
        .update({"session_id": session_id})
        .eq("id", user_id)
        .execute()
    )
    if result.data:
        return result.data[0]
    return None
