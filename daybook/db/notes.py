"""Database operations for notes."""

from typing import Any
from uuid import UUID

from daybook.db.supabase_client import get_supabase


def create_note(user_id: str | UUID, fields: dict[str, Any]) -> dict:
    """Insert a note owned by ``user_id`` and return the stored row."""
    row = {**fields, "user_id": str(user_id)}
    result = get_supabase().table("notes").insert(row).execute()
    if not result.data:
        raise ValueError("No data returned from note insert")
    return result.data[0]


def update_note(user_id: str | UUID, note_id: str | UUID, fields: dict[str, Any]) -> dict:
    """Update one of the user's notes. Raises LookupError if it isn't theirs."""
    result = (
        get_supabase()
        .table("notes")
        .update(fields)
        .eq("id", str(note_id))
        .eq("user_id", str(user_id))
        .execute()
    )
    if not result.data:
        raise LookupError(f"Note {note_id} not found")
    return result.data[0]
