# chat_gateway/schemas.py
from pydantic import BaseModel, ConfigDict
from typing import List, Literal, Optional


class MessagePart(BaseModel):
    """One segment of a segmented message. Only `text` segments carry content."""
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None


class IncomingMessage(BaseModel):
    """A message as the client sends it: either flat `content` or segmented `parts`."""
    model_config = ConfigDict(extra="allow")

    # system turns come only from the server-side instruction
    role: Literal["user", "assistant"]
    content: Optional[str] = None
    parts: Optional[List[MessagePart]] = None


class Message(BaseModel):
    """The canonical message handed to the model provider."""
    role: str
    content: str = ""
