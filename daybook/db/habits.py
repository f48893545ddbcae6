"""Database operations for habits."""

from typing import Any
from uuid import UUID

from daybook.db.supabase_client import get_supabase


def create_habit(user_id: str | UUID, fields: dict[str, Any]) -> dict:
    """Insert a habit owned by ``user_id`` and return the stored row."""
    row = {**fields, "user_id": str(user_id)}
    result = get_supabase().table("habits").insert(row).execute()
    if not result.data:
        raise ValueError("No data returned from habit insert")
    return result.data[0]


def update_habit(user_id: str | UUID, habit_id: str | UUID, fields: dict[str, Any]) -> dict:
    """Update one of the user's habits. Raises LookupError if it isn't theirs."""
    result = (
        get_supabase()
        .table("habits")
        .update(fields)
        .eq("id", str(habit_id))
        .eq("user_id", str(user_id))
        .execute()
    )
    if not result.data:
        raise LookupError(f"Habit {habit_id} not found")
    return result.data[0]
