"""Execute validated action intents against the domain repositories.

Actions run sequentially in the order the model emitted them. A failure in
one action is logged and skipped; it never affects its siblings. Chat
intents have no side effect and produce no result.
"""

import asyncio
import logging
from typing import Any, assert_never
from uuid import UUID

from daybook.core.dates import NO_DUE_DATE, parse_due_date
from daybook.core.indexing import IndexingQueue
from daybook.core.logging import get_logger, log_with_context
from daybook.core.schemas_assistant import ActionResult, EntityType, Operation
from daybook.core.schemas_intents import (
    ActionIntent,
    ChatIntent,
    CreateHabitIntent,
    CreateNoteIntent,
    CreateProjectIntent,
    CreateTaskIntent,
    HabitFrequency,
    HabitParams,
    NoteParams,
    Priority,
    ProjectParams,
    TaskParams,
    UpdateHabitIntent,
    UpdateNoteIntent,
    UpdateTaskIntent,
)
from daybook.db import habits as habits_db
from daybook.db import notes as notes_db
from daybook.db import projects as projects_db
from daybook.db import tasks as tasks_db
from daybook.db.entity_embeddings import EMBEDDED_FIELDS, build_embedding_text

logger = get_logger(__name__)

DEFAULT_TASK_TITLE = "New task"
DEFAULT_NOTE_TITLE = "New note"
DEFAULT_PROJECT_TITLE = "New project"
DEFAULT_HABIT_NAME = "New habit"
DEFAULT_PROJECT_COLOR = "sky"
NOTE_TITLE_CHARS = 20


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


# ============================================================================
# Field builders (defaults for anything the model left out)
# ============================================================================


def task_fields(params: TaskParams) -> dict[str, Any]:
    return {
        "title": _clean(params.title) or DEFAULT_TASK_TITLE,
        "description": _clean(params.description),
        "project_id": _clean(params.project_id),
        "priority": (params.priority or Priority.MEDIUM).value,
        "tags": params.tags or [],
        **parse_due_date(params.due_date).to_columns(),
    }


def note_fields(params: NoteParams) -> dict[str, Any]:
    content = _clean(params.content) or _clean(params.description) or ""
    title = _clean(params.title)
    if not title:
        title = f"{content[:NOTE_TITLE_CHARS]}..." if len(content) > NOTE_TITLE_CHARS else content
    return {
        "title": title or DEFAULT_NOTE_TITLE,
        "content": content or None,
        "project_id": _clean(params.project_id),
        "tags": params.tags or [],
    }


def project_fields(params: ProjectParams) -> dict[str, Any]:
    return {
        "title": _clean(params.title) or DEFAULT_PROJECT_TITLE,
        "description": _clean(params.description),
        "color": _clean(params.color) or DEFAULT_PROJECT_COLOR,
        "priority": (params.priority or Priority.MEDIUM).value,
    }


def habit_fields(params: HabitParams) -> dict[str, Any]:
    return {
        "name": _clean(params.name) or _clean(params.title) or DEFAULT_HABIT_NAME,
        "description": _clean(params.description),
        "frequency": (params.frequency or HabitFrequency.DAILY).value,
        "target_count": params.target_count or 1,
    }


def _due_date_update(raw: str) -> dict[str, Any]:
    """Columns for a due-date change. Blank clears; unparseable leaves it alone."""
    if not raw.strip():
        return NO_DUE_DATE.to_columns()
    due = parse_due_date(raw)
    if due is NO_DUE_DATE:
        logger.warning(f"Ignoring unparseable due date update {raw!r}")
        return {}
    return due.to_columns()


def task_updates(params: TaskParams) -> dict[str, Any]:
    """Only the fields the model supplied."""
    updates: dict[str, Any] = {}
    for key in ("title", "description", "project_id"):
        value = _clean(getattr(params, key))
        if value is not None:
            updates[key] = value
    if params.priority is not None:
        updates["priority"] = params.priority.value
    if params.tags is not None:
        updates["tags"] = params.tags
    if params.due_date is not None:
        updates.update(_due_date_update(params.due_date))
    return updates


def note_updates(params: NoteParams) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    title = _clean(params.title)
    if title is not None:
        updates["title"] = title
    content = _clean(params.content) or _clean(params.description)
    if content is not None:
        updates["content"] = content
    project_id = _clean(params.project_id)
    if project_id is not None:
        updates["project_id"] = project_id
    if params.tags is not None:
        updates["tags"] = params.tags
    return updates


def habit_updates(params: HabitParams) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    name = _clean(params.name) or _clean(params.title)
    if name is not None:
        updates["name"] = name
    description = _clean(params.description)
    if description is not None:
        updates["description"] = description
    if params.frequency is not None:
        updates["frequency"] = params.frequency.value
    if params.target_count is not None:
        updates["target_count"] = params.target_count
    return updates


def _require_update(target_id: str | None, updates: dict[str, Any], kind: str) -> str:
    target = _clean(target_id)
    if not target:
        raise ValueError(f"{kind} is missing target_id")
    if not updates:
        raise ValueError(f"{kind} has no fields to update")
    return target


# ============================================================================
# Dispatch
# ============================================================================


async def _execute_one(intent: ActionIntent, user_id: UUID) -> ActionResult:
    match intent:
        case CreateTaskIntent(params=params):
            row = await asyncio.to_thread(tasks_db.create_task, user_id, task_fields(params))
            return ActionResult(entity_type=EntityType.TASK, operation=Operation.CREATE, data=row)

        case CreateNoteIntent(params=params):
            row = await asyncio.to_thread(notes_db.create_note, user_id, note_fields(params))
            return ActionResult(entity_type=EntityType.NOTE, operation=Operation.CREATE, data=row)

        case CreateProjectIntent(params=params):
            row = await asyncio.to_thread(projects_db.create_project, user_id, project_fields(params))
            return ActionResult(entity_type=EntityType.PROJECT, operation=Operation.CREATE, data=row)

        case CreateHabitIntent(params=params):
            row = await asyncio.to_thread(habits_db.create_habit, user_id, habit_fields(params))
            return ActionResult(entity_type=EntityType.HABIT, operation=Operation.CREATE, data=row)

        case UpdateTaskIntent(params=params):
            updates = task_updates(params)
            target = _require_update(params.target_id, updates, intent.kind)
            row = await asyncio.to_thread(tasks_db.update_task, user_id, target, updates)
            return ActionResult(entity_type=EntityType.TASK, operation=Operation.UPDATE, data=row)

        case UpdateNoteIntent(params=params):
            updates = note_updates(params)
            target = _require_update(params.target_id, updates, intent.kind)
            row = await asyncio.to_thread(notes_db.update_note, user_id, target, updates)
            return ActionResult(entity_type=EntityType.NOTE, operation=Operation.UPDATE, data=row)

        case UpdateHabitIntent(params=params):
            updates = habit_updates(params)
            target = _require_update(params.target_id, updates, intent.kind)
            row = await asyncio.to_thread(habits_db.update_habit, user_id, target, updates)
            return ActionResult(entity_type=EntityType.HABIT, operation=Operation.UPDATE, data=row)

        case ChatIntent():
            raise ValueError("chat intents have no side effect")

        case _:
            assert_never(intent)


def _needs_indexing(intent: ActionIntent, result: ActionResult) -> bool:
    if result.entity_type not in (EntityType.TASK, EntityType.NOTE):
        return False
    if result.operation == Operation.CREATE:
        return True
    supplied = intent.params.model_dump(exclude_none=True)
    return bool(EMBEDDED_FIELDS & supplied.keys())


def _enqueue_indexing(indexer: IndexingQueue, intent: ActionIntent, result: ActionResult) -> None:
    if not _needs_indexing(intent, result):
        return
    entity_id = result.data.get("id")
    text = build_embedding_text(result.entity_type.value, result.data)
    if entity_id and text:
        indexer.enqueue(result.entity_type.value, entity_id, text)


async def execute_actions(
    intents: list[ActionIntent],
    user_id: UUID,
    indexer: IndexingQueue | None = None,
    *,
    request_id: str | None = None,
) -> list[ActionResult]:
    """
    Execute intents in order, isolating failures.

    Args:
        intents: Validated intents, in model order
        user_id: Owner of every written row
        indexer: Queue for embedding write-backs (skipped when None)
        request_id: Correlation id for logs

    Returns:
        One ActionResult per non-chat intent that succeeded, in order
    """
    results: list[ActionResult] = []

    for index, intent in enumerate(intents):
        if isinstance(intent, ChatIntent):
            continue

        try:
            result = await _execute_one(intent, user_id)
        except Exception as e:
            log_with_context(
                logger,
                logging.WARNING,
                f"Action {intent.kind} failed: {e}",
                request_id=request_id,
                action_index=index,
                action_kind=intent.kind,
            )
            continue

        results.append(result)
        if indexer is not None:
            _enqueue_indexing(indexer, intent, result)

    return results
