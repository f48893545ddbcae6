"""Assemble the outbound assistant response."""

from daybook.core.schemas_assistant import ActionResult, AssistantResponse, Citation

DEFAULT_REPLY = "Done."
FALLBACK_REPLY = "Sorry, I couldn't process that request. Could you rephrase it?"
NO_MEMORY_REPLY = "I couldn't find anything relevant in your saved tasks and notes."
EMPTY_INPUT_REPLY = "I couldn't make out any text in that message. Could you try again?"


def assemble_response(
    reply: str | None,
    citations: list[Citation],
    transcript: str,
    action_results: list[ActionResult],
) -> AssistantResponse:
    """Merge stage outputs; a blank reply becomes a generic acknowledgement."""
    return AssistantResponse(
        reply=reply if reply and reply.strip() else DEFAULT_REPLY,
        citations=list(citations),
        transcript=transcript,
        action_results=list(action_results),
    )


def fallback_response(transcript: str, reply: str = FALLBACK_REPLY) -> AssistantResponse:
    """Fail-closed response: no citations, no actions."""
    return AssistantResponse(reply=reply, citations=[], transcript=transcript, action_results=[])
