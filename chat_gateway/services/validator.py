# chat_gateway/services/validator.py
import logging
from typing import Any, List

from pydantic import ValidationError

from chat_gateway.config import Settings
from chat_gateway.errors import EmptyConversation, MalformedRequest, MessageTooLong
from chat_gateway.schemas import IncomingMessage
from chat_gateway.services.normalizer import message_text

logger = logging.getLogger(__name__)


def validate_request(body: Any, settings: Settings) -> List[IncomingMessage]:
    """
    Checks the shape of a chat request body and the length of its latest turn.
    Returns the parsed messages; raises a GatewayError subclass otherwise.
    """
    messages = body.get("messages") if isinstance(body, dict) else None
    if not isinstance(messages, list):
        raise MalformedRequest("Invalid request: messages must be an array")

    if not messages:
        if settings.require_non_empty:
            raise EmptyConversation("Invalid request: messages must not be empty")
        return []

    try:
        parsed = [IncomingMessage.model_validate(item) for item in messages]
    except ValidationError as e:
        raise MalformedRequest(
            f"Invalid request: malformed message ({e.error_count()} validation errors)"
        ) from e

    # Only the most recent turn is length limited
    last_length = len(message_text(parsed[-1]))
    if last_length > settings.max_message_length:
        raise MessageTooLong(
            f"Message too long: {last_length} characters exceeds the maximum message length "
            f"of {settings.max_message_length} characters"
        )

    return parsed
