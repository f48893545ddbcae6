"""Database operations for tasks."""

from typing import Any
from uuid import UUID

from daybook.db.supabase_client import get_supabase


def create_task(user_id: str | UUID, fields: dict[str, Any]) -> dict:
    """Insert a task owned by ``user_id`` and return the stored row."""
    row = {**fields, "user_id": str(user_id)}
    result = get_supabase().table("tasks").insert(row).execute()
    if not result.data:
        raise ValueError("No data returned from task insert")
    return result.data[0]


def update_task(user_id: str | UUID, task_id: str | UUID, fields: dict[str, Any]) -> dict:
    """Update one of the user's tasks. Raises LookupError if it isn't theirs."""
    result = (
        get_supabase()
        .table("tasks")
        .update(fields)
        .eq("id", str(task_id))
        .eq("user_id", str(user_id))
        .execute()
    )
    if not result.data:
        raise LookupError(f"Task {task_id} not found")
    return result.data[0]
