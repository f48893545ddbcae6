"""Reference-data stage: ids the model may use as foreign keys."""

import asyncio
import json
from uuid import UUID

from daybook.core.logging import get_logger
from daybook.core.schemas_assistant import AssistantMode
from daybook.db.projects import list_project_refs

logger = get_logger(__name__)

_ACTIVE_MODES = {AssistantMode.ACTION, AssistantMode.AUTO}


async def load_reference_data(user_id: str | UUID, mode: AssistantMode) -> str:
    """
    Render the user's projects as a prompt fragment.

    Returns an empty string in memory mode, when the user has no projects,
    or when the read fails. Unknown ids the model still emits are rejected
    by the database at execution time.
    """
    if mode not in _ACTIVE_MODES:
        return ""

    try:
        projects = await asyncio.to_thread(list_project_refs, user_id)
    except Exception as e:
        logger.warning(f"Could not load project references: {e}")
        return ""

    refs = [
        {"id": str(p["id"]), "title": p.get("title") or ""}
        for p in projects
        if p.get("id")
    ]
    if not refs:
        return ""
    return f"Available Projects (use these IDs): {json.dumps(refs, ensure_ascii=False)}"
