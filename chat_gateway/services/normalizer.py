# chat_gateway/services/normalizer.py
import logging
from typing import List

from chat_gateway.errors import MalformedRequest
from chat_gateway.schemas import IncomingMessage, Message

logger = logging.getLogger(__name__)


def message_text(message: IncomingMessage, strict: bool = False) -> str:
    """
    Returns the full text of a message in either shape.
    Segmented messages contribute only their `text` parts, joined in order.
    """
    if message.parts is None:
        return message.content or ""

    texts = []
    for part in message.parts:
        if part.type == "text":
            texts.append(part.text or "")
        elif strict:
            raise MalformedRequest(f"Invalid request: unsupported message part type '{part.type}'")
        else:
            logger.debug(f"Dropping non-text part of type '{part.type}' from {message.role} message")
    return "".join(texts)


def normalize_message(message: IncomingMessage, strict: bool = False) -> Message:
    return Message(role=message.role, content=message_text(message, strict=strict))


def normalize_messages(messages: List[IncomingMessage], strict: bool = False) -> List[Message]:
    """Converts client messages into canonical messages, keeping their order."""
    return [normalize_message(message, strict=strict) for message in messages]
