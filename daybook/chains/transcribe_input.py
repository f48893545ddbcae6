"""LLM chain turning a voice or image attachment into plain text.

The call's only job is verbatim extraction. It never sees the mode, the
user's stored data, or project references, so the transcript cannot pick up
reasoning meant for the inference stage.
"""

import json
from collections.abc import Sequence

from openai import APIError
from pydantic import BaseModel, ValidationError

from daybook.core.config import get_settings
from daybook.core.errors import UpstreamError, is_retryable, upstream_error_from
from daybook.core.llm import get_openai_client, parse_llm_json
from daybook.core.logging import get_logger
from daybook.core.retry import exponential_backoff, with_retry
from daybook.core.schemas_assistant import AUDIO_FORMATS, MediaBlob, Sender, Transcript, TurnRef

logger = get_logger(__name__)

# ruff: noqa: E501
AUDIO_SYSTEM_PROMPT = """You are a transcription engine. Transcribe the attached audio exactly as spoken, in the language spoken.

Rules:
1. Output the spoken words verbatim. Do not summarize, translate, answer, or add commentary.
2. Keep names, numbers, dates and times exactly as said.
3. Output ONLY a JSON object: {"transcript": "<the words>"}"""

IMAGE_SYSTEM_PROMPT = """You are an OCR engine. Extract the text in the attached image exactly as written, in its original language.

Rules:
1. Copy all meaningful text verbatim, preserving line breaks where they matter (lists, checklists).
2. If the image is a screenshot, ignore device and app chrome: status bar, clock, battery and signal icons, navigation bars, tab bars, keyboard.
3. After the text, add at most one short sentence of visual context only if it is needed to understand the text (e.g. "Handwritten shopping list.").
4. Do not summarize, answer, or add commentary.
5. Output ONLY a JSON object: {"transcript": "<the text>"}"""

HISTORY_HINT = """Recent conversation, for resolving names and spellings only. Do not transcribe it:
{history}"""


class TranscriptOutput(BaseModel):
    transcript: str


def _history_hint(recent_history: Sequence[TurnRef]) -> str | None:
    lines = [
        f"{'User' if turn.sender == Sender.USER else 'Assistant'}: {turn.text.strip()}"
        for turn in recent_history
        if turn.text and turn.text.strip()
    ]
    if not lines:
        return None
    return HISTORY_HINT.format(history="\n".join(lines))


def _build_request(
    audio: MediaBlob | None,
    image: MediaBlob | None,
    recent_history: Sequence[TurnRef],
) -> dict | None:
    """Chat-completions kwargs for the attachment, or None if unsupported."""
    settings = get_settings()

    if audio is not None:
        audio_format = AUDIO_FORMATS.get(audio.mime_type)
        if audio_format is None:
            logger.warning(f"Unsupported audio type {audio.mime_type}, skipping transcription")
            return None
        system_prompt = AUDIO_SYSTEM_PROMPT
        part = {
            "type": "input_audio",
            "input_audio": {"data": audio.to_base64(), "format": audio_format},
        }
        extra = {"model": settings.TRANSCRIBE_AUDIO_MODEL, "modalities": ["text"]}
    else:
        system_prompt = IMAGE_SYSTEM_PROMPT
        part = {
            "type": "image_url",
            "image_url": {"url": f"data:{image.mime_type};base64,{image.to_base64()}"},
        }
        extra = {
            "model": settings.TRANSCRIBE_IMAGE_MODEL,
            "response_format": {"type": "json_object"},
        }

    hint = _history_hint(recent_history)
    if hint:
        system_prompt = f"{system_prompt}\n\n{hint}"

    return {
        **extra,
        "temperature": 0,
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": [part]},
        ],
    }


def _combine(typed_text: str, extracted: str) -> str:
    """Keep a typed caption in front of the extracted text."""
    if typed_text and extracted:
        return f"{typed_text}\n\n{extracted}"
    return typed_text or extracted


async def transcribe_input(
    text: str | None,
    audio: MediaBlob | None = None,
    image: MediaBlob | None = None,
    recent_history: Sequence[TurnRef] = (),
) -> Transcript:
    """
    Produce the turn's transcript.

    Without an attachment the typed text passes through unchanged. With
    one, a single extraction call is made; audio wins when both are sent.
    Any failure (upstream error after retries, unparseable output,
    unsupported format) falls back to the typed text.

    Args:
        text: Typed message, if any
        audio: Voice attachment
        image: Image attachment
        recent_history: Last few turns, used only as a spelling hint

    Returns:
        Transcript
    """
    typed_text = (text or "").strip() if (audio or image) else (text or "")
    if audio is None and image is None:
        return Transcript(text=typed_text)

    fallback = Transcript(text=typed_text)
    request = _build_request(audio, image, recent_history)
    if request is None:
        return fallback

    settings = get_settings()
    client = get_openai_client()

    async def _call():
        try:
            return await client.chat.completions.create(**request)
        except APIError as e:
            raise upstream_error_from("openai", e) from e

    try:
        response = await with_retry(
            _call,
            is_retryable,
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            backoff=exponential_backoff(settings.RETRY_INITIAL_DELAY),
            label="transcription",
        )
    except UpstreamError as e:
        logger.warning(f"Transcription failed, using typed text: {e}")
        return fallback

    choices = response.choices or []
    raw_output = (choices[0].message.content if choices else None) or ""
    try:
        parsed = parse_llm_json(raw_output, TranscriptOutput)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Transcription output did not parse, using typed text: {e}")
        return fallback

    return Transcript(text=_combine(typed_text, parsed.transcript.strip()))
