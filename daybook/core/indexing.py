"""Detached embedding write-back for newly written tasks and notes.

Request handlers only ``enqueue``; they never await indexing, and an
indexing failure never reaches them. Pending writes are tracked so the
application can drain them on shutdown.
"""

import asyncio
from collections.abc import Callable
from functools import lru_cache
from uuid import UUID

from daybook.core.logging import get_logger
from daybook.db.entity_embeddings import upsert_embedding

logger = get_logger(__name__)

EmbeddingWriter = Callable[[str, str, str], object]


class IndexingQueue:
    """Fire-and-forget queue of embedding upserts keyed by entity id."""

    def __init__(self, writer: EmbeddingWriter = upsert_embedding):
        self._writer = writer
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def enqueue(self, entity_type: str, entity_id: str | UUID, text: str) -> asyncio.Task | None:
        """Schedule an upsert on the running loop. Blank text is skipped."""
        if not text or not text.strip():
            return None

        entity_id = str(entity_id)
        task = asyncio.create_task(
            self._run(entity_type, entity_id, text),
            name=f"index:{entity_type}:{entity_id}",
        )
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, entity_type: str, entity_id: str, text: str) -> None:
        try:
            await asyncio.to_thread(self._writer, entity_type, entity_id, text)
        except Exception as e:
            logger.warning(f"Indexing write-back failed for {entity_type} {entity_id}: {e}")

    async def drain(self) -> None:
        """Wait for every pending upsert to finish."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)


@lru_cache(maxsize=1)
def get_indexing_queue() -> IndexingQueue:
    """Process-wide queue used by the API layer."""
    return IndexingQueue()
