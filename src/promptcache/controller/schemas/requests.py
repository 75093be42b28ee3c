"""Request schemas for PromptCache API."""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """One chat message. Only the text content is inspected."""

    model_config = ConfigDict(extra="allow")

    role: str
    content: Any = None

    def text(self) -> str:
        """Plain text of the message, joining text parts of multi-part content."""
        if isinstance(self.content, str):
            return self.content
        if isinstance(self.content, list):
            return "".join(
                str(part.get("text", ""))
                for part in self.content
                if isinstance(part, dict) and part.get("type") == "text"
            )
        return ""


class ChatCompletionRequest(BaseModel):
    """OpenAI-compatible chat completion request.

    Unknown fields are kept; the raw body is what gets forwarded upstream.
    """

    model_config = ConfigDict(extra="allow")

    model: Optional[str] = None
    messages: List[ChatMessage] = Field(default_factory=list)

    def last_user_prompt(self) -> str:
        """Text of the last message with role ``user``, or an empty string."""
        for message in reversed(self.messages):
            if message.role == "user":
                return message.text()
        return ""


class ProviderRequest(BaseModel):
    """Hot-swap request for the active provider."""

    provider: str = Field(..., min_length=1, description="Provider name")

    class Config:
        json_schema_extra = {"example": {"provider": "mistral"}}


class ProviderResponse(BaseModel):
    """Active provider and the names that can be switched to."""

    provider: str = Field(..., description="Active provider")
    available: List[str] = Field(..., description="Registered provider names")
