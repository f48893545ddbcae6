"""Conversational action pipeline: one assistant turn end to end.

transcribe → (retrieve ‖ reference data) → infer → validate → execute → assemble

Stage-local failures with a safe default degrade in place. Malformed model
output and an inference deadline produce the fail-closed fallback. Only
upstream failures the retry policy gives up on, and unexpected errors,
escape to the caller.
"""

import asyncio
import logging
from collections.abc import Awaitable
from datetime import date
from typing import TypeVar
from uuid import uuid4

from daybook.chains.infer_intent import infer_intent
from daybook.chains.transcribe_input import transcribe_input
from daybook.core.action_executor import execute_actions
from daybook.core.assistant_response import (
    EMPTY_INPUT_REPLY,
    NO_MEMORY_REPLY,
    assemble_response,
    fallback_response,
)
from daybook.core.config import get_settings
from daybook.core.dates import today_in
from daybook.core.indexing import IndexingQueue
from daybook.core.logging import get_logger, log_with_context
from daybook.core.output_validation import validate_model_output
from daybook.core.reference_data import load_reference_data
from daybook.core.retrieval import NO_MEMORY_CONTEXT, RetrievalResult, retrieve
from daybook.core.schemas_assistant import (
    AssistantMode,
    AssistantResponse,
    InboundMessage,
    Transcript,
)

logger = get_logger(__name__)

T = TypeVar("T")

_RETRIEVAL_MODES = {AssistantMode.MEMORY, AssistantMode.AUTO}


async def _within_deadline(awaitable: Awaitable[T], timeout: float, default: T, stage: str) -> T:
    """Await a best-effort stage, returning ``default`` past its deadline."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{stage} exceeded {timeout}s deadline, continuing without it")
        return default


async def _no_retrieval() -> RetrievalResult:
    return RetrievalResult()


def should_retrieve(message: InboundMessage, transcript: Transcript) -> bool:
    """Memory grounding runs only for text-only turns outside action mode."""
    return (
        message.mode in _RETRIEVAL_MODES
        and not message.has_media
        and bool(transcript.text.strip())
    )


async def run_assistant_turn(
    message: InboundMessage,
    *,
    indexer: IndexingQueue | None = None,
    today: date | None = None,
    request_id: str | None = None,
) -> AssistantResponse:
    """
    Run one turn of the assistant.

    Args:
        message: Authenticated inbound message
        indexer: Queue for embedding write-backs of created items
        today: Reference date for relative dates (defaults to today in
            ASSISTANT_TIMEZONE)
        request_id: Correlation id for logs

    Returns:
        AssistantResponse

    Raises:
        UpstreamError: Inference failed for good (non-retryable, or overload
            after all attempts)
    """
    settings = get_settings()
    request_id = request_id or uuid4().hex[:12]
    timeout = settings.STAGE_TIMEOUT_SECONDS
    today = today or today_in(settings.ASSISTANT_TIMEZONE)
    recent_history = message.history[-settings.HISTORY_TURNS:] if settings.HISTORY_TURNS > 0 else ()

    # 1. Transcription
    typed = Transcript(text=message.text or "")
    transcript = await _within_deadline(
        transcribe_input(message.text, message.audio, message.image, recent_history),
        timeout,
        typed,
        "transcription",
    )
    if not transcript.text.strip():
        log_with_context(logger, logging.INFO, "Empty transcript, nothing to do", request_id=request_id)
        return fallback_response(transcript.text, reply=EMPTY_INPUT_REPLY)

    # 2. Retrieval and reference data (independent)
    grounded = should_retrieve(message, transcript)
    retrieval_call = retrieve(transcript.text, message.user_id) if grounded else _no_retrieval()
    retrieval, reference_data = await asyncio.gather(
        _within_deadline(retrieval_call, timeout, RetrievalResult(), "retrieval"),
        _within_deadline(
            load_reference_data(message.user_id, message.mode), timeout, "", "reference data"
        ),
    )

    context_block = retrieval.context_block
    memory_miss = grounded and message.mode == AssistantMode.MEMORY and not retrieval.citations
    if memory_miss:
        context_block = NO_MEMORY_CONTEXT

    # 3. Inference
    try:
        raw_output = await asyncio.wait_for(
            infer_intent(
                transcript.text,
                context_block,
                reference_data,
                message.history,
                message.mode,
                today,
            ),
            timeout,
        )
    except asyncio.TimeoutError:
        log_with_context(
            logger, logging.WARNING, "Inference exceeded deadline, returning fallback",
            request_id=request_id, timeout=timeout,
        )
        return fallback_response(transcript.text)

    # 4. Validation (fail closed)
    outcome = validate_model_output(raw_output, max_actions=settings.MAX_ACTIONS)
    if not outcome.ok:
        log_with_context(
            logger, logging.WARNING, "Model output failed validation, returning fallback",
            request_id=request_id, errors=outcome.errors[:5],
        )
        return fallback_response(transcript.text)

    # 5. Execution
    intents = outcome.output.actions
    action_results = await execute_actions(
        intents, message.user_id, indexer, request_id=request_id
    )

    log_with_context(
        logger, logging.INFO, "Assistant turn complete",
        request_id=request_id,
        mode=message.mode.value,
        actions=len(intents),
        succeeded=len(action_results),
        citations=len(retrieval.citations),
    )

    # 6. Assembly
    reply = outcome.output.reply
    # A memory miss with nothing written always gets the fixed reply
    if memory_miss and not action_results:
        reply = NO_MEMORY_REPLY
    return assemble_response(reply, retrieval.citations, transcript.text, action_results)
