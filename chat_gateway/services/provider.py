# chat_gateway/services/provider.py
import logging
from typing import Any, AsyncIterator, Dict, List

import google.generativeai as genai

from chat_gateway.config import Settings
from chat_gateway.schemas import Message

logger = logging.getLogger(__name__)


class ModelStreamingProvider:
    """
    Anything that turns a system instruction plus a conversation into a lazy
    stream of text deltas.
    """

    async def open_stream(self, system_instruction: str, messages: List[Message]) -> AsyncIterator[str]:
        """
        Starts the model call and returns an iterator over its text deltas.
        Errors raised here happen before any byte is sent to the client.
        """
        raise NotImplementedError


# Stands in for an empty turn Gemini has to see; it rejects empty parts and empty contents
EMPTY_TURN_TEXT = "(empty message)"


def to_gemini_contents(messages: List[Message]) -> List[Dict[str, Any]]:
    """
    Gemini only knows 'user' and 'model' turns and rejects empty parts.
    Empty earlier turns are skipped; an empty latest turn is kept with placeholder text.
    """
    contents = []
    for index, message in enumerate(messages):
        role = "model" if message.role == "assistant" else "user"
        text = message.content
        if not text:
            if index < len(messages) - 1:
                logger.debug(f"Skipping empty {message.role} message")
                continue
            text = EMPTY_TURN_TEXT
        contents.append({"role": role, "parts": [text]})
    if not contents:
        contents.append({"role": "user", "parts": [EMPTY_TURN_TEXT]})
    return contents


def chunk_text(chunk: Any) -> str:
    # `chunk.text` raises on chunks without parts (e.g. the final one), so read parts directly
    candidates = getattr(chunk, "candidates", None) or []
    if not candidates:
        return ""
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    return "".join(getattr(part, "text", "") or "" for part in parts)


class GeminiStreamingProvider(ModelStreamingProvider):
    def __init__(self, settings: Settings):
        if not settings.api_key:
            raise ValueError("GOOGLE_API_KEY not found in .env file")
        genai.configure(api_key=settings.api_key)
        self.model_name = settings.model_name
        self.generation_config = genai.types.GenerationConfig(
            temperature=settings.temperature,
            max_output_tokens=settings.max_output_tokens,
        )

    async def open_stream(self, system_instruction: str, messages: List[Message]) -> AsyncIterator[str]:
        model = genai.GenerativeModel(
            self.model_name,
            system_instruction=system_instruction or None,
            generation_config=self.generation_config,
        )
        response = await model.generate_content_async(to_gemini_contents(messages), stream=True)
        return self._iter_text(response)

    async def _iter_text(self, response) -> AsyncIterator[str]:
        try:
            async for chunk in response:
                text = chunk_text(chunk)
                if text:
                    yield text
        finally:
            await close_response(response)


async def close_response(response: Any) -> None:
    """Stops the underlying API stream of a streamed Gemini response, if it is still open."""
    stream = getattr(response, "_iterator", None)
    cancel = getattr(stream, "cancel", None)
    if cancel is not None:
        cancel()
        return
    aclose = getattr(stream, "aclose", None)
    if aclose is not None:
        await aclose()
