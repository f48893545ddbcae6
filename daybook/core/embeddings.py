"""Text embeddings for the retrieval index (OpenAI)."""

import asyncio

from openai import OpenAI

from daybook.core.config import get_settings
from daybook.core.logging import get_logger

logger = get_logger(__name__)


def _get_client() -> OpenAI:
    return OpenAI(api_key=get_settings().OPENAI_API_KEY)


def _checked(vector: list[float], expected_dim: int, index: int) -> list[float]:
    """Raise if the vector width differs from the configured dimension."""
    if len(vector) != expected_dim:
        raise ValueError(
            f"Embedding dimension mismatch for text {index}: "
            f"expected {expected_dim}, got {len(vector)}"
        )
    return vector


def embed_texts(texts: list[str]) -> list[list[float]]:
    """
    Embed a batch of texts, one vector per input in input order.

    Raises:
        ValueError: A vector's width differs from EMBEDDING_DIM
        openai.APIError: The embeddings call failed
    """
    if not texts:
        return []

    settings = get_settings()
    response = _get_client().embeddings.create(model=settings.EMBEDDING_MODEL, input=texts)
    vectors = [
        _checked(item.embedding, settings.EMBEDDING_DIM, index)
        for index, item in enumerate(response.data)
    ]
    logger.debug(f"Embedded {len(vectors)} texts with {settings.EMBEDDING_MODEL}")
    return vectors


def embed_query(text: str) -> list[float]:
    """Embed a single search query."""
    vectors = embed_texts([text])
    if not vectors:
        raise ValueError("No embedding returned for query")
    return vectors[0]


async def embed_query_async(text: str) -> list[float]:
    """``embed_query`` off the event loop."""
    return await asyncio.to_thread(embed_query, text)
