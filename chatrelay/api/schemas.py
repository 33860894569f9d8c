from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Bound free-text fields so a single request cannot exhaust memory
MAX_STRING_LENGTH = 100000
MAX_HISTORY_ITEMS = 1000

Sender = Literal["user", "assistant"]


class ErrorBody(BaseModel):
    """Every error response is ``{"error": <message or object>}``."""

    error: Any


class _CredentialsRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=254)
    password: str = Field(..., min_length=1, max_length=1024)


class SignupRequest(_CredentialsRequest):
    pass


class LoginRequest(_CredentialsRequest):
    pass


class AccessTokenResponse(BaseModel):
    accessToken: str


class ChatHistoryEntry(BaseModel):
    """One completion-API message, forwarded exactly as sent.

    ``content`` may be text, a list of content parts, or null on tool-call
    turns. Extra keys such as ``name`` or ``tool_calls`` pass through.
    """

    model_config = ConfigDict(extra="allow")

    role: str = Field(..., min_length=1, max_length=32)
    content: Union[str, List[Dict[str, Any]], None] = None


class NewChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messageToSend: str = Field(..., min_length=1, max_length=MAX_STRING_LENGTH)
    sender: Sender = Field(..., alias="from")


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversationId: Union[int, str]
    sender: Sender = Field(..., alias="from")
    messageToSend: Optional[str] = Field(default=None, max_length=MAX_STRING_LENGTH)
    chatHistory: Optional[List[ChatHistoryEntry]] = Field(
        default=None, max_length=MAX_HISTORY_ITEMS
    )

    @field_validator("conversationId")
    @classmethod
    def _require_conversation_id(cls, value: Union[int, str]) -> Union[int, str]:
        if isinstance(value, str) and not value.strip():
            raise ValueError("conversationId must not be empty")
        return value

    @model_validator(mode="after")
    def _require_sender_payload(self):
        if self.sender == "user" and not self.messageToSend:
            raise ValueError("messageToSend is required when from is 'user'")
        if self.sender == "assistant" and not self.chatHistory:
            raise ValueError("chatHistory is required when from is 'assistant'")
        return self

    def history(self) -> List[dict]:
        # Only keys the caller sent; explicit nulls are kept
        return [entry.model_dump(exclude_unset=True) for entry in self.chatHistory or []]


class ConversationSummary(BaseModel):
    conversation_id: Union[int, str]
    summary: str
