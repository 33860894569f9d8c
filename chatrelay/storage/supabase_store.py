from __future__ import annotations

from typing import Any, List

import httpx
from supabase import Client, ClientOptions, PostgrestAPIError, create_client

from chatrelay.logging import get_logger
from chatrelay.service.results import Err, Ok, Result
from chatrelay.storage.models import Conversation, Message

logger = get_logger(__name__)


def create_supabase_client(url: str, key: str) -> Client:
    """Build a Supabase client that never persists or refreshes a session.

    The relay only ever presents tokens handed to it by callers, so the client
    must not pick up a signed-in session of its own.
    """
    return create_client(
        url,
        key,
        options=ClientOptions(persist_session=False, auto_refresh_token=False),
    )


def _store_error(operation: str, exc: Exception) -> Err:
    message = getattr(exc, "message", None) or str(exc)
    detail: Any = None
    if isinstance(exc, PostgrestAPIError):
        detail = {"code": exc.code, "message": message, "details": exc.details, "hint": exc.hint}
    logger.warning(
        "store_operation_failed",
        operation=operation,
        error_type=type(exc).__name__,
        error=message,
    )
    return Err("store", message, detail=detail)


class SupabaseChatStore:
    """Conversations and Messages persisted through Supabase PostgREST."""

    def __init__(
        self,
        client: Client,
        *,
        conversations_table: str = "Conversations",
        messages_table: str = "Messages",
    ) -> None:
        self.client = client
        self.conversations_table = conversations_table
        self.messages_table = messages_table

    def create_conversation(self, user_id: str, summary: str) -> Result[Conversation]:
        try:
            response = (
                self.client.table(self.conversations_table)
                .insert({"user_id": user_id, "summary": summary})
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            return _store_error("create_conversation", exc)
        if not response.data:
            return Err("store", "conversation insert returned no rows")
        return Ok(Conversation.from_row(response.data[0]))

    def add_message(self, message: Message) -> Result[Message]:
        try:
            response = (
                self.client.table(self.messages_table)
                .insert(message.to_insert())
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            return _store_error("add_message", exc)
        if not response.data:
            return Err("store", "message insert returned no rows")
        return Ok(Message.from_row(response.data[0]))

    def list_conversations(self, user_id: str) -> Result[List[Conversation]]:
        try:
            response = (
                self.client.table(self.conversations_table)
                .select("conversation_id, summary")
                .eq("user_id", user_id)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            return _store_error("list_conversations", exc)
        rows = response.data or []
        return Ok(
            [Conversation.from_row({**row, "user_id": user_id}) for row in rows]
        )

    def list_messages(self, conversation_id: str) -> Result[List[Message]]:
        try:
            response = (
                self.client.table(self.messages_table)
                .select("*")
                .eq("conversation_id", conversation_id)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            return _store_error("list_messages", exc)
        return Ok([Message.from_row(row) for row in response.data or []])
