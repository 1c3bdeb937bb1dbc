"""Pydantic schemas for the chat API and persisted interactions."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import Role


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1, max_length=4000)
    session_id: str | None = Field(default=None, alias="sessionId", max_length=128)

    @field_validator("message")
    @classmethod
    def validate_message(cls, message: str) -> str:
        if not message.strip():
            raise ValueError("message must not be blank")
        return message


class ChatResponse(BaseModel):
    message: str
    session_id: str = Field(serialization_alias="sessionId")
    provider: str | None = None
    model: str | None = None
    used_fallback: bool = Field(default=False, serialization_alias="usedFallback")
    notice: str | None = None
    duration_seconds: float = Field(serialization_alias="durationSeconds")


class ChatInteraction(BaseModel):
    """One persisted user turn: the message and, once known, the reply."""

    model_config = ConfigDict(frozen=True)

    id: str
    session_id: str
    message: str
    response: str | None = None
    timestamp: datetime


class DisplayMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    content: str
    timestamp: datetime


class HistoryResponse(BaseModel):
    session_id: str = Field(serialization_alias="sessionId")
    messages: list[DisplayMessage]


class ProviderMetadata(BaseModel):
    name: str
    model: str
    base_endpoint: str = Field(serialization_alias="baseEndpoint")
