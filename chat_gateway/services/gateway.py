# chat_gateway/services/gateway.py
import asyncio
import logging
import time
from typing import Any, AsyncIterator

from fastapi.responses import JSONResponse
from starlette.responses import Response, StreamingResponse

from chat_gateway.config import Settings
from chat_gateway.errors import GatewayError, ProviderInvocationFailure
from chat_gateway.services.normalizer import normalize_messages
from chat_gateway.services.provider import ModelStreamingProvider
from chat_gateway.services.streams import StreamEncoder, get_encoder
from chat_gateway.services.validator import validate_request

logger = logging.getLogger(__name__)

# Shown to the client when the provider fails after streaming has begun
STREAM_ERROR_TEXT = "An error occurred."


def error_response(error: GatewayError) -> JSONResponse:
    return JSONResponse({"error": error.message}, status_code=error.status_code)


class ChatGateway:
    """
    Validates a chat request, normalizes its messages and relays the model's
    reply back to the caller in the deployment's wire encoding.
    """

    def __init__(self, settings: Settings, provider: ModelStreamingProvider):
        self.settings = settings
        self.provider = provider
        # Fails at construction for an unknown protocol rather than per request
        get_encoder(settings.stream_protocol)

    async def handle(self, body: Any) -> Response:
        try:
            return await self._handle(body)
        except GatewayError as e:
            if e.status_code < 500:
                logger.warning(f"Rejected chat request: {e.message}")
            return error_response(e)
        except Exception as e:
            logger.exception("Unexpected error while handling chat request")
            return error_response(GatewayError(str(e) or "Internal server error"))

    async def _handle(self, body: Any) -> Response:
        # 1. VALIDATE: shape of the body and length of the latest turn
        incoming = validate_request(body, self.settings)

        # 2. NORMALIZE: one canonical {role, content} per message
        messages = normalize_messages(incoming, strict=self.settings.strict_parts)

        # 3. RELAY: open the provider stream before committing to a 200
        try:
            chunks = await self.provider.open_stream(self.settings.system_instruction, messages)
        except Exception as e:
            logger.error(f"Model provider failed to start streaming: {e}", exc_info=True)
            raise ProviderInvocationFailure(str(e) or "Model provider error") from e

        encoder = get_encoder(self.settings.stream_protocol)
        return StreamingResponse(
            self.relay(chunks, encoder),
            media_type=encoder.media_type,
            headers=encoder.headers,
        )

    async def relay(self, chunks: AsyncIterator[str], encoder: StreamEncoder) -> AsyncIterator[str]:
        started = time.monotonic()
        deadline = started + self.settings.max_duration_seconds
        delivered = 0

        for frame in encoder.start():
            yield frame

        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise asyncio.TimeoutError()
                try:
                    text = await asyncio.wait_for(chunks.__anext__(), timeout=remaining)
                except StopAsyncIteration:
                    break
                delivered += 1
                for frame in encoder.delta(text):
                    yield frame
        except asyncio.TimeoutError:
            # The stream is left truncated, as when the platform kills a long request
            logger.warning(
                f"Stream exceeded {self.settings.max_duration_seconds}s after {delivered} chunks, closing"
            )
            return
        except Exception as e:
            logger.error(f"Model stream failed after {delivered} chunks: {e}", exc_info=True)
            for frame in encoder.error(STREAM_ERROR_TEXT) + encoder.finish("error"):
                yield frame
            return
        finally:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

        for frame in encoder.finish():
            yield frame
        logger.info(
            f"Streamed {delivered} chunks as '{encoder.protocol}' in {time.monotonic() - started:.2f}s"
        )
