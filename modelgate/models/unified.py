"""Unified chat-completion request models.

The unified shape follows the OpenAI Chat Completions request format. Fields the
gateway does not interpret are kept and forwarded to the transformer chain.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class UnifiedMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Literal["system", "developer", "user", "assistant", "tool"]
    content: str | list[dict[str, Any]] | None = None
    name: str | None = None
    tool_calls: list[dict[str, Any]] | None = None
    tool_call_id: str | None = None


class UnifiedChatRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    model: str
    messages: list[UnifiedMessage] = Field(min_length=1)
    stream: bool | None = False
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    stop: str | list[str] | None = None
    tools: list[dict[str, Any]] | None = None
    tool_choice: str | dict[str, Any] | None = None

    def to_payload(self, model: str | None = None) -> dict[str, Any]:
        """Serialize for the transformer chain, optionally retargeting the model."""
        payload = self.model_dump(exclude_none=True)
        if model is not None:
            payload["model"] = model
        return payload
