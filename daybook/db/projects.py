"""Database operations for projects."""

from typing import Any
from uuid import UUID

from daybook.db.supabase_client import get_supabase


def create_project(user_id: str | UUID, fields: dict[str, Any]) -> dict:
    """Insert a project owned by ``user_id`` and return the stored row."""
    row = {**fields, "user_id": str(user_id)}
    result = get_supabase().table("projects").insert(row).execute()
    if not result.data:
        raise ValueError("No data returned from project insert")
    return result.data[0]


def list_project_refs(user_id: str | UUID) -> list[dict]:
    """Minimal id + title projection of the user's projects, newest first."""
    result = (
        get_supabase()
        .table("projects")
        .select("id, title")
        .eq("user_id", str(user_id))
        .order("created_at", desc=True)
        .execute()
    )
    return result.data or []
