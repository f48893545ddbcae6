"""Tests for intent inference (prompt building and the Anthropic call)."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from daybook.chains.infer_intent import (
    INTENT_TOOL_NAME,
    build_intent_tool,
    build_messages,
    build_system_prompt,
    extract_tool_input,
    infer_intent,
)
from daybook.core.errors import UpstreamError
from daybook.core.schemas_assistant import AssistantMode, Sender, TurnRef

TODAY = date(2024, 5, 1)

TOOL_INPUT = {
    "transcript": "buy milk tomorrow",
    "reply": "Added it.",
    "actions": [{"kind": "create_task", "params": {"title": "Buy milk", "due_date": "2024-05-02"}}],
}


def _tool_use(payload):
    return SimpleNamespace(type="tool_use", name=INTENT_TOOL_NAME, input=payload)


def _text(text):
    return SimpleNamespace(type="text", text=text)


def _response(*blocks):
    return SimpleNamespace(content=list(blocks))


def _status_error(status: int) -> anthropic.APIStatusError:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    return anthropic.APIStatusError(
        "upstream error",
        response=httpx.Response(status, request=request),
        body=None,
    )


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.messages.create = AsyncMock()
    with patch("daybook.chains.infer_intent.get_anthropic_client", return_value=client):
        yield client


# ============================================================================
# Prompt building
# ============================================================================


class TestSystemPrompt:
    def test_today_and_mode_are_rendered(self):
        prompt = build_system_prompt(AssistantMode.ACTION, TODAY, "", "")

        assert "Today is 2024-05-01 (Wednesday)" in prompt
        assert "Current mode: ACTION" in prompt
        assert "Focus on creating or updating items." in prompt
        assert "(none)" in prompt

    def test_context_and_references_are_included(self):
        prompt = build_system_prompt(
            AssistantMode.AUTO,
            TODAY,
            "Relevant Info Found in Database:\n- [NOTE] Gate code 4411 (ID: n1)",
            'Available Projects (use these IDs): [{"id": "p1", "title": "Home"}]',
        )

        assert "Gate code 4411" in prompt
        assert '"id": "p1"' in prompt
        assert "(none)" not in prompt

    def test_reply_language_override(self):
        mirrored = build_system_prompt(AssistantMode.AUTO, TODAY, "", "")
        fixed = build_system_prompt(AssistantMode.AUTO, TODAY, "", "", reply_language="Persian")

        assert "same language the user writes in" in mirrored
        assert "Reply only in Persian." in fixed


class TestMessages:
    def test_history_window_and_transcript_last(self):
        history = [
            TurnRef(sender=Sender.USER, text="one"),
            TurnRef(sender=Sender.AI, text="two"),
            TurnRef(sender=Sender.USER, text="three"),
            TurnRef(sender=Sender.AI, text="four"),
        ]

        messages = build_messages("five", history, history_turns=3)

        assert messages == [
            {"role": "user", "content": "three"},
            {"role": "assistant", "content": "four"},
            {"role": "user", "content": "five"},
        ]

    def test_leading_assistant_turn_is_dropped(self):
        history = [TurnRef(sender=Sender.AI, text="Hi! How can I help?")]

        messages = build_messages("add a note", history, history_turns=3)

        assert messages == [{"role": "user", "content": "add a note"}]

    def test_consecutive_user_turns_are_merged(self):
        history = [TurnRef(sender=Sender.USER, text="first")]

        messages = build_messages("second", history, history_turns=3)

        assert messages == [{"role": "user", "content": "first\n\nsecond"}]

    def test_zero_history_turns(self):
        history = [TurnRef(sender=Sender.USER, text="ignored")]
        assert build_messages("now", history, history_turns=0) == [{"role": "user", "content": "now"}]


def test_intent_tool_bounds_actions():
    tool = build_intent_tool(10)

    actions = tool["input_schema"]["properties"]["actions"]
    assert actions["maxItems"] == 10
    assert "update_habit" in actions["items"]["properties"]["kind"]["enum"]
    assert tool["input_schema"]["required"] == ["transcript", "reply", "actions"]


class TestExtractToolInput:
    def test_tool_use_block(self):
        assert extract_tool_input(_response(_text("thinking"), _tool_use(TOOL_INPUT))) == TOOL_INPUT

    def test_json_text_fallback(self):
        response = _response(_text('```json\n{"reply": "hi", "actions": []}\n```'))
        assert extract_tool_input(response) == {"reply": "hi", "actions": []}

    def test_unparseable_text_is_returned_raw(self):
        assert extract_tool_input(_response(_text("Sure! I added it."))) == "Sure! I added it."


# ============================================================================
# Model call
# ============================================================================


@pytest.mark.asyncio
async def test_infer_intent_forces_the_tool(mock_client):
    mock_client.messages.create.return_value = _response(_tool_use(TOOL_INPUT))

    result = await infer_intent("buy milk tomorrow", "", "", [], AssistantMode.ACTION, TODAY)

    assert result == TOOL_INPUT
    kwargs = mock_client.messages.create.call_args.kwargs
    assert kwargs["tool_choice"] == {"type": "tool", "name": INTENT_TOOL_NAME}
    assert kwargs["temperature"] == 0.0
    assert kwargs["messages"][-1] == {"role": "user", "content": "buy milk tomorrow"}
    assert "2024-05-01" in kwargs["system"]


@pytest.mark.asyncio
async def test_overload_twice_then_success(mock_client, no_backoff_sleep):
    mock_client.messages.create.side_effect = [
        _status_error(529),
        _status_error(529),
        _response(_tool_use(TOOL_INPUT)),
    ]

    result = await infer_intent("buy milk tomorrow", "", "", [], AssistantMode.ACTION, TODAY)

    assert result == TOOL_INPUT
    assert mock_client.messages.create.await_count == 3
    delays = [call.args[0] for call in no_backoff_sleep.await_args_list]
    assert delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_overload_exhausts_attempts(mock_client, no_backoff_sleep):
    mock_client.messages.create.side_effect = _status_error(529)

    with pytest.raises(UpstreamError) as exc_info:
        await infer_intent("hello", "", "", [], AssistantMode.AUTO, TODAY)

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code == 529
    assert mock_client.messages.create.await_count == 3


@pytest.mark.asyncio
async def test_non_transient_error_is_not_retried(mock_client, no_backoff_sleep):
    mock_client.messages.create.side_effect = _status_error(400)

    with pytest.raises(UpstreamError) as exc_info:
        await infer_intent("hello", "", "", [], AssistantMode.AUTO, TODAY)

    assert exc_info.value.retryable is False
    assert mock_client.messages.create.await_count == 1
    no_backoff_sleep.assert_not_called()
