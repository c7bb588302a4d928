# chat_gateway/services/streams.py
"""
Wire encodings for relaying model output to the browser.

Each encoder turns the lifecycle of one assistant reply (start, text deltas,
an optional error, finish) into the frames a particular client contract
expects. Encoders keep per-reply state, so a new one is created per request.
"""
import json
import uuid
from typing import Dict, List


def _json(value) -> str:
    # Same compact form the browser-side parsers produce with JSON.stringify
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:16]}"


class StreamEncoder:
    protocol = ""
    media_type = "text/plain; charset=utf-8"
    headers: Dict[str, str] = {}

    def start(self) -> List[str]:
        return []

    def delta(self, text: str) -> List[str]:
        raise NotImplementedError

    def error(self, message: str) -> List[str]:
        return []

    def finish(self, finish_reason: str = "stop") -> List[str]:
        return []


class TextStreamEncoder(StreamEncoder):
    """Raw text deltas with no framing at all."""
    protocol = "text"

    def delta(self, text: str) -> List[str]:
        return [text] if text else []


class DataStreamEncoder(StreamEncoder):
    """
    Data stream protocol v1: newline-terminated `<code>:<json>` lines.

    f  start of a step, carries the message id
    0  text delta
    3  error
    e  end of a step
    d  end of the message
    """
    protocol = "data"
    headers = {"x-vercel-ai-data-stream": "v1"}

    def __init__(self):
        self.message_id = _new_id("msg")

    @staticmethod
    def _line(code: str, value) -> str:
        return f"{code}:{_json(value)}\n"

    def start(self) -> List[str]:
        return [self._line("f", {"messageId": self.message_id})]

    def delta(self, text: str) -> List[str]:
        return [self._line("0", text)] if text else []

    def error(self, message: str) -> List[str]:
        return [self._line("3", message)]

    def finish(self, finish_reason: str = "stop") -> List[str]:
        return [
            self._line("e", {"finishReason": finish_reason, "isContinued": False}),
            self._line("d", {"finishReason": finish_reason}),
        ]


class UIMessageStreamEncoder(StreamEncoder):
    """
    UI message stream v1: server-sent events whose JSON payloads describe how
    to build the assistant message on the client, closed by `data: [DONE]`.
    """
    protocol = "ui"
    media_type = "text/event-stream"
    headers = {
        "cache-control": "no-cache",
        "x-vercel-ai-ui-message-stream": "v1",
        "x-accel-buffering": "no",
    }

    def __init__(self):
        self.message_id = _new_id("msg")
        self.text_id = _new_id("txt")
        self.text_open = False

    @staticmethod
    def _event(payload) -> str:
        return f"data: {_json(payload)}\n\n"

    def start(self) -> List[str]:
        return [
            self._event({"type": "start", "messageId": self.message_id}),
            self._event({"type": "start-step"}),
        ]

    def delta(self, text: str) -> List[str]:
        if not text:
            return []
        frames = []
        if not self.text_open:
            self.text_open = True
            frames.append(self._event({"type": "text-start", "id": self.text_id}))
        frames.append(self._event({"type": "text-delta", "id": self.text_id, "delta": text}))
        return frames

    def _close_text(self) -> List[str]:
        if not self.text_open:
            return []
        self.text_open = False
        return [self._event({"type": "text-end", "id": self.text_id})]

    def error(self, message: str) -> List[str]:
        return self._close_text() + [self._event({"type": "error", "errorText": message})]

    def finish(self, finish_reason: str = "stop") -> List[str]:
        return self._close_text() + [
            self._event({"type": "finish-step"}),
            self._event({"type": "finish"}),
            "data: [DONE]\n\n",
        ]


ENCODERS = {
    TextStreamEncoder.protocol: TextStreamEncoder,
    DataStreamEncoder.protocol: DataStreamEncoder,
    UIMessageStreamEncoder.protocol: UIMessageStreamEncoder,
}


def get_encoder(protocol: str) -> StreamEncoder:
    try:
        return ENCODERS[protocol]()
    except KeyError:
        raise ValueError(f"Unknown stream protocol: {protocol}")
