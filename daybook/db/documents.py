"""Similarity search over indexed tasks and notes."""

from uuid import UUID

from daybook.db.supabase_client import get_supabase


def match_documents(
    user_id: str | UUID,
    query_embedding: list[float],
    match_threshold: float,
    match_count: int,
) -> list[dict]:
    """
    Call the ``match_documents`` RPC.

    Returns:
        Rows with ``id``, ``type`` ('task' | 'note'), ``content`` and
        ``similarity``, as ranked by the database
    """
    result = get_supabase().rpc(
        "match_documents",
        {
            "query_embedding": query_embedding,
            "match_threshold": match_threshold,
            "match_count": match_count,
            "filter_user_id": str(user_id),
        },
    ).execute()
    return result.data or []
