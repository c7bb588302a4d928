# chat_gateway/config.py
import os
from typing import List, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_SYSTEM_INSTRUCTION = """You are a helpful AI assistant for SecondOrder, a meta-thinking AI system.
SecondOrder builds a self-auditing system that reasons about its own reasoning.
It generates strategies, coordinates models, and learns from feedback to solve hard problems with precision.

Key capabilities:
- Meta thinking layer: Dynamic cognitive layer that analyzes goals and constraints
- Self-improving loop: Generates answers, absorbs feedback, and iterates
- Model orchestration: Automatically selects model combinations and strategies
- Knowledge extraction: Builds optimized agents for complex reasoning

Be helpful, concise, and informative when discussing AI, meta-cognition, and reasoning systems."""

StreamProtocol = Literal["text", "data", "ui"]


def _env(name: str, default: str):
    return lambda: os.getenv(name, default)


def _env_flag(name: str, default: str):
    return lambda: os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Everything the chat gateway needs, read from the environment once."""

    api_key: str = Field(default_factory=_env("GOOGLE_API_KEY", ""))
    model_name: str = Field(default_factory=_env("MODEL_NAME", "gemini-1.5-flash-latest"))
    temperature: float = Field(default_factory=_env("TEMPERATURE", "0.7"))
    max_output_tokens: int = Field(default_factory=_env("MAX_OUTPUT_TOKENS", "1024"), gt=0)

    system_instruction: str = Field(
        default_factory=_env("SYSTEM_INSTRUCTION", DEFAULT_SYSTEM_INSTRUCTION)
    )
    max_message_length: int = Field(default_factory=_env("MAX_MESSAGE_LENGTH", "4000"), gt=0)
    require_non_empty: bool = Field(default_factory=_env_flag("REQUIRE_NON_EMPTY_MESSAGES", "true"))
    strict_parts: bool = Field(default_factory=_env_flag("STRICT_MESSAGE_PARTS", "false"))

    # One wire encoding per deployment, never negotiated per request
    stream_protocol: StreamProtocol = Field(default_factory=_env("STREAM_PROTOCOL", "ui"))
    max_duration_seconds: float = Field(default_factory=_env("MAX_DURATION_SECONDS", "30"), gt=0)

    cors_allow_origins: List[str] = Field(
        default_factory=_env("CORS_ALLOW_ORIGINS", "http://localhost:3000")
    )
    log_level: str = Field(default_factory=_env("LOG_LEVEL", "INFO"))

    model_config = {"validate_default": True, "protected_namespaces": ()}

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("stream_protocol", mode="before")
    @classmethod
    def lower_protocol(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value: str) -> str:
        return value.upper()
