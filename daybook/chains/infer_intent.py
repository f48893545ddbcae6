"""LLM chain inferring a reply and typed actions from a transcript.

Uses Anthropic tool_use with a forced tool_choice so the model answers with
the fixed ``{transcript, reply, actions}`` shape. The result is returned
raw; the caller validates it before anything is executed.
"""

import json
from collections.abc import Sequence
from datetime import date
from typing import Any

from anthropic import APIError

from daybook.core.config import get_settings
from daybook.core.dates import describe_today
from daybook.core.errors import is_retryable, upstream_error_from
from daybook.core.llm import get_anthropic_client, parse_llm_json_dict
from daybook.core.logging import get_logger
from daybook.core.retry import exponential_backoff, with_retry
from daybook.core.schemas_assistant import AssistantMode, Sender, TurnRef
from daybook.core.schemas_intents import ACTION_KINDS

logger = get_logger(__name__)

INTENT_TOOL_NAME = "submit_assistant_turn"

# ruff: noqa: E501
SYSTEM_PROMPT = """You are the assistant inside a personal productivity app that manages the user's tasks, notes, projects and habits.

Current mode: {mode}
Today is {today}. Resolve every relative date ("tomorrow", "next Monday", "in two weeks") against this date, never against your own sense of time.

Rules:
1. {language_rule}
2. Always answer by calling the {tool_name} tool. Put your conversational answer in "reply" and echo the user's message verbatim in "transcript".
3. Split compound requests into separate atomic actions, one per item. "buy milk and call Ali tomorrow" is two create_task actions.
4. Once you have extracted a due date, remove the date and time wording from the title ("call Ali tomorrow" becomes "Call Ali").
5. Give due_date as YYYY-MM-DD. Add THH:MM only when the user named a time of day.
6. Only use project ids from the Available Projects list. Leave project_id empty if none fits.
7. Map priority wording to high, medium or low.
8. For habits infer name, frequency (daily or weekly, default daily) and target_count (default 1).
9. If a note has long text but no title, write a short summary title.
10. To change an existing item use update_task, update_note or update_habit with the item's id as target_id, and only the fields that change.
11. When the message needs no change to the user's data, return a single chat action.
12. {mode_rule}

Context:
{context}"""

MODE_RULES = {
    AssistantMode.ACTION: "Focus on creating or updating items.",
    AssistantMode.MEMORY: (
        "Answer from the Relevant Info in the context. If nothing relevant was found, "
        "say so plainly and do not invent details."
    ),
    AssistantMode.AUTO: "Decide from the message whether to act, answer from the Relevant Info, or just chat.",
}

MIRROR_LANGUAGE_RULE = "Reply in the same language the user writes in, and only in that language."


def build_intent_tool(max_actions: int) -> dict:
    """Tool definition whose input schema is the inference result shape."""
    return {
        "name": INTENT_TOOL_NAME,
        "description": "Submit the reply and the actions inferred from the user's message.",
        "input_schema": {
            "type": "object",
            "properties": {
                "transcript": {"type": "string", "description": "The user's message, verbatim."},
                "reply": {"type": "string", "description": "Short conversational reply to the user."},
                "actions": {
                    "type": "array",
                    "maxItems": max_actions,
                    "items": {
                        "type": "object",
                        "properties": {
                            "kind": {"type": "string", "enum": list(ACTION_KINDS)},
                            "params": {
                                "type": "object",
                                "properties": {
                                    "title": {"type": "string"},
                                    "name": {"type": "string", "description": "Habit name"},
                                    "description": {"type": "string"},
                                    "content": {"type": "string", "description": "Note body"},
                                    "tags": {"type": "array", "items": {"type": "string"}},
                                    "target_id": {"type": "string", "description": "Id of the item to update"},
                                    "project_id": {"type": "string"},
                                    "due_date": {"type": "string", "description": "YYYY-MM-DD or YYYY-MM-DDTHH:MM"},
                                    "priority": {"type": "string", "enum": ["low", "medium", "high"]},
                                    "color": {"type": "string"},
                                    "frequency": {"type": "string", "enum": ["daily", "weekly"]},
                                    "target_count": {"type": "integer", "minimum": 1},
                                },
                            },
                        },
                        "required": ["kind", "params"],
                    },
                },
            },
            "required": ["transcript", "reply", "actions"],
        },
    }


def build_system_prompt(
    mode: AssistantMode,
    today: date,
    context_block: str,
    reference_data: str,
    reply_language: str | None = None,
) -> str:
    """Render the system instruction for one turn."""
    language_rule = (
        f"Reply only in {reply_language}." if reply_language else MIRROR_LANGUAGE_RULE
    )
    context = "\n\n".join(part for part in (context_block, reference_data) if part) or "(none)"
    return SYSTEM_PROMPT.format(
        mode=mode.value.upper(),
        today=describe_today(today),
        language_rule=language_rule,
        tool_name=INTENT_TOOL_NAME,
        mode_rule=MODE_RULES[mode],
        context=context,
    )


def build_messages(transcript: str, history: Sequence[TurnRef], history_turns: int) -> list[dict]:
    """Recent turns plus the transcript as alternating user/assistant messages.

    Leading assistant turns are dropped and consecutive same-role turns are
    merged, since the conversation must open with the user.
    """
    recent = list(history)[-history_turns:] if history_turns > 0 else []
    turns = [
        ("user" if turn.sender == Sender.USER else "assistant", turn.text.strip())
        for turn in recent
        if turn.text and turn.text.strip()
    ]
    turns.append(("user", transcript))

    messages: list[dict] = []
    for role, text in turns:
        if not messages and role != "user":
            continue
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] = f"{messages[-1]['content']}\n\n{text}"
        else:
            messages.append({"role": role, "content": text})
    return messages


def extract_tool_input(response: Any) -> Any:
    """Pull the tool input out of a Messages response.

    Falls back to parsing text blocks as JSON; if that fails the raw text is
    returned so validation rejects it.
    """
    texts = []
    for block in response.content or []:
        if block.type == "tool_use" and block.name == INTENT_TOOL_NAME:
            return block.input
        if block.type == "text":
            texts.append(block.text)

    logger.warning("No tool_use block in inference response, falling back to text")
    raw_text = "\n".join(texts)
    try:
        return parse_llm_json_dict(raw_text)
    except json.JSONDecodeError:
        return raw_text


async def infer_intent(
    transcript: str,
    context_block: str,
    reference_data: str,
    history: Sequence[TurnRef],
    mode: AssistantMode,
    today: date,
) -> Any:
    """
    Run the inference call.

    Args:
        transcript: The turn's transcript (the only user content sent)
        context_block: Retrieval context, advisory
        reference_data: Project id fragment
        history: Prior turns, oldest first
        mode: Assistant mode
        today: Date relative expressions resolve against

    Returns:
        Raw model output (dict when well-formed, otherwise whatever came back)

    Raises:
        UpstreamError: Non-retryable failure, or overload after all attempts
    """
    settings = get_settings()
    client = get_anthropic_client()

    system_prompt = build_system_prompt(
        mode, today, context_block, reference_data, settings.ASSISTANT_REPLY_LANGUAGE
    )
    messages = build_messages(transcript, history, settings.HISTORY_TURNS)
    tool = build_intent_tool(settings.MAX_ACTIONS)

    async def _call():
        try:
            return await client.messages.create(
                model=settings.INTENT_MODEL,
                max_tokens=settings.INTENT_MAX_TOKENS,
                temperature=settings.INTENT_TEMPERATURE,
                system=system_prompt,
                messages=messages,
                tools=[tool],
                tool_choice={"type": "tool", "name": INTENT_TOOL_NAME},
            )
        except APIError as e:
            raise upstream_error_from("anthropic", e) from e

    response = await with_retry(
        _call,
        is_retryable,
        max_attempts=settings.RETRY_MAX_ATTEMPTS,
        backoff=exponential_backoff(settings.RETRY_INITIAL_DELAY),
        label="intent inference",
    )
    return extract_tool_input(response)
