"""Model provider clients and output parsing helpers."""

import json
import re
from typing import Any, TypeVar

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from pydantic import BaseModel

from daybook.core.config import get_settings

T = TypeVar("T", bound=BaseModel)


def get_anthropic_client() -> AsyncAnthropic:
    """Anthropic client for intent inference.

    SDK-level retries are disabled; the pipeline's retry policy owns them.
    """
    settings = get_settings()
    return AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY, max_retries=0)


def get_openai_client() -> AsyncOpenAI:
    """OpenAI client for multimodal transcription."""
    settings = get_settings()
    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY, max_retries=0)


def _strip_llm_fences(raw_output: str) -> str:
    """Strip markdown code fences from LLM output.

    Handles: ```json ... ```, ``` ... ```, leading/trailing whitespace.
    """
    cleaned = raw_output.strip()

    fence_match = re.search(r"```(?:json)?\s*\n?(.*?)```", cleaned, re.DOTALL)
    if fence_match:
        return fence_match.group(1).strip()

    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_llm_json(raw_output: str, model: type[T]) -> T:
    """
    Parse LLM output as JSON and validate against a Pydantic model.

    Args:
        raw_output: Raw string from LLM response
        model: Pydantic model class to validate against

    Returns:
        Validated Pydantic model instance

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
        pydantic.ValidationError: If parsed JSON doesn't match schema
    """
    cleaned = _strip_llm_fences(raw_output)
    parsed = json.loads(cleaned)
    return model.model_validate(parsed)


def parse_llm_json_dict(raw_output: str) -> Any:
    """
    Parse LLM output as JSON without schema validation.

    Raises:
        json.JSONDecodeError: If JSON parsing fails after cleanup
    """
    cleaned = _strip_llm_fences(raw_output)
    return json.loads(cleaned)
