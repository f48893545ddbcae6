"""Retrieval stage: ground a turn in the user's own tasks and notes.

embed query → match_documents RPC → citations + context block.

Best-effort throughout: an embedding or search failure yields an empty
result, never an error for the turn.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from uuid import UUID

from daybook.core.config import get_settings
from daybook.core.embeddings import embed_query_async
from daybook.core.logging import get_logger
from daybook.core.schemas_assistant import Citation, CitedEntityType
from daybook.db.documents import match_documents

logger = get_logger(__name__)

SNIPPET_WORDS = 5
CONTEXT_HEADING = "Relevant Info Found in Database:"
NO_MEMORY_CONTEXT = "No relevant memory found in database."

_CITABLE_TYPES = {t.value for t in CitedEntityType}


@dataclass
class RetrievalResult:
    """Ranked citations plus the advisory context block for the prompt."""

    citations: list[Citation] = field(default_factory=list)
    context_block: str = ""


def make_snippet(content: str, words: int = SNIPPET_WORDS) -> str:
    """First few words of the content, with an ellipsis when truncated."""
    parts = (content or "").split()
    snippet = " ".join(parts[:words])
    return f"{snippet}..." if len(parts) > words else snippet


def format_context_block(matches: list[dict]) -> str:
    """One line per match: ``- [TYPE] content (ID: id)``."""
    if not matches:
        return ""
    lines = [CONTEXT_HEADING]
    for match in matches:
        lines.append(f"- [{match['type'].upper()}] {match.get('content') or ''} (ID: {match['id']})")
    return "\n".join(lines)


def _rank(matches: list[dict], threshold: float, top_k: int) -> list[dict]:
    """Keep citable matches above threshold, best first, at most top_k."""
    kept = []
    for match in matches:
        if not match.get("id") or match.get("type") not in _CITABLE_TYPES:
            continue
        similarity = float(match.get("similarity") or 0.0)
        if similarity < threshold:
            continue
        kept.append({**match, "similarity": min(1.0, max(0.0, similarity))})
    kept.sort(key=lambda m: m["similarity"], reverse=True)
    return kept[:top_k]


async def retrieve(
    query_text: str,
    user_id: str | UUID,
    *,
    threshold: float | None = None,
    top_k: int | None = None,
) -> RetrievalResult:
    """
    Similarity-search the user's indexed content for ``query_text``.

    Args:
        query_text: The turn's transcript
        user_id: Owner whose content is searched
        threshold: Minimum similarity (defaults to MATCH_THRESHOLD)
        top_k: Maximum citations (defaults to MATCH_COUNT)

    Returns:
        RetrievalResult ordered by descending similarity
    """
    if not query_text or not query_text.strip():
        return RetrievalResult()

    settings = get_settings()
    threshold = settings.MATCH_THRESHOLD if threshold is None else threshold
    top_k = settings.MATCH_COUNT if top_k is None else top_k

    try:
        embedding = await embed_query_async(query_text)
    except Exception as e:
        logger.warning(f"Query embedding failed, continuing without memory: {e}")
        return RetrievalResult()

    try:
        matches = await asyncio.to_thread(match_documents, user_id, embedding, threshold, top_k)
        ranked = _rank(matches, threshold, top_k)
        citations = [
            Citation(
                entity_id=str(match["id"]),
                entity_type=CitedEntityType(match["type"]),
                snippet=make_snippet(str(match.get("content") or "")),
                similarity=match["similarity"],
            )
            for match in ranked
        ]
    except Exception as e:
        logger.warning(f"Similarity search failed, continuing without memory: {e}")
        return RetrievalResult()

    logger.debug(f"Retrieval returned {len(citations)} of {len(matches)} matches")
    return RetrievalResult(citations=citations, context_block=format_context_block(ranked))
