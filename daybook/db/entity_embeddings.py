"""Entity embedding generation and storage.

When tasks or notes are created or their text changes, this module embeds
their text fields and stores the vector in the row's ``embedding`` column.
These embeddings power the match_documents() RPC used by retrieval.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from daybook.core.embeddings import embed_texts
from daybook.db.supabase_client import get_supabase

logger = logging.getLogger(__name__)


def _tags(entity: dict) -> str:
    return " ".join(str(t) for t in entity.get("tags") or [])


def _join(*parts: str | None) -> str:
    """Join non-empty parts with single spaces."""
    return " ".join(p.strip() for p in parts if p and p.strip())


# Maps entity_type → builder for the text to embed from a stored row.
EMBED_TEXT_BUILDERS: dict[str, Any] = {
    "task": lambda e: _join(e.get("title"), e.get("description"), _tags(e)),
    "note": lambda e: _join(e.get("title"), e.get("content"), _tags(e)),
}

ENTITY_TABLE_MAP = {
    "task": "tasks",
    "note": "notes",
}

# Fields whose change makes a stored embedding stale
EMBEDDED_FIELDS = frozenset({"title", "description", "content", "tags"})


def build_embedding_text(entity_type: str, entity_data: dict) -> str | None:
    """Text to embed for a row, or None if the type isn't indexed."""
    builder = EMBED_TEXT_BUILDERS.get(entity_type)
    if not builder:
        return None
    return builder(entity_data)


def upsert_embedding(entity_type: str, entity_id: str | UUID, text: str) -> bool:
    """Embed ``text`` and store it on the entity row.

    Idempotent per entity id. Logs errors but never raises; returns whether
    the write happened.
    """
    table = ENTITY_TABLE_MAP.get(entity_type)
    if not table:
        return False

    text = (text or "").strip()
    if not text:
        return False

    try:
        embeddings = embed_texts([text])
        if not embeddings:
            return False

        get_supabase().table(table).update(
            {"embedding": embeddings[0]}
        ).eq("id", str(entity_id)).execute()

        logger.debug(f"Embedded {entity_type} {entity_id}")
        return True

    except Exception as e:
        logger.warning(f"Entity embedding failed for {entity_type} {entity_id}: {e}")
        return False
