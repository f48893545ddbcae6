"""Assistant API endpoint."""

from uuid import uuid4

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from daybook.core.assistant_pipeline import run_assistant_turn
from daybook.core.auth_middleware import AuthContext, require_auth
from daybook.core.errors import UpstreamError
from daybook.core.indexing import IndexingQueue, get_indexing_queue
from daybook.core.logging import get_logger
from daybook.core.schemas_assistant import AssistantRequest, AssistantResponse, InboundMessage

logger = get_logger(__name__)

router = APIRouter()


@router.post("/assistant", response_model=AssistantResponse)
async def assistant_turn(
    request: AssistantRequest,
    auth: AuthContext = Depends(require_auth),
    indexer: IndexingQueue = Depends(get_indexing_queue),
):
    """
    Run one assistant turn.

    This endpoint:
    1. Transcribes voice/image input (text passes through)
    2. Grounds the turn in the user's notes and tasks when appropriate
    3. Infers a reply plus typed actions and validates them
    4. Executes each action, skipping the ones that fail
    5. Returns reply, citations, transcript and action results

    Returns:
        AssistantResponse, or 500 ``{"error": ...}`` on unrecoverable failure
    """
    request_id = uuid4().hex[:12]
    message = InboundMessage.from_request(request, auth.user_id)

    try:
        return await run_assistant_turn(message, indexer=indexer, request_id=request_id)

    except UpstreamError as e:
        logger.error(
            f"Assistant upstream failure: {e}",
            extra={"request_id": request_id},
        )
        return JSONResponse(
            status_code=500,
            content={"error": "The assistant service is temporarily unavailable. Please try again."},
        )
    except Exception as e:
        logger.exception(
            f"Assistant turn failed: {e}",
            extra={"request_id": request_id},
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to process the message."},
        )
