from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List

from chatrelay.logging import get_logger
from chatrelay.service.results import Err, Ok, Result
from chatrelay.storage.models import Conversation, Message


class MemoryChatStore:
    """In-process stand-in for the hosted Conversations/Messages tables.

    Mirrors the hosted store's observable behavior: ids and timestamps are
    assigned on insert, selects filter by equality and return rows in
    insertion order. Ownership of the parent conversation is not checked.
    """

    def __init__(self) -> None:
        self.logger = get_logger(__name__)
        self.conversations: Dict[str, Conversation] = {}
        self.messages: List[Message] = []
        self._data_lock = threading.Lock()

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def create_conversation(self, user_id: str, summary: str) -> Result[Conversation]:
        with self._data_lock:
            conv = Conversation(
                conversation_id=str(uuid.uuid4()),
                user_id=user_id,
                summary=summary,
                created_at=self._now(),
            )
            self.conversations[conv.conversation_id] = conv
        return Ok(conv)

    def add_message(self, message: Message) -> Result[Message]:
        with self._data_lock:
            if str(message.conversation_id) not in self.conversations:
                # Mirrors the foreign key on Messages.conversation_id
                self.logger.warning(
                    "message_for_unknown_conversation",
                    conversation_id=message.conversation_id,
                )
                return Err(
                    "store",
                    "insert or update on table violates foreign key constraint",
                    detail={"conversation_id": message.conversation_id},
                )
            stored = Message.from_row(
                {
                    "message_id": str(uuid.uuid4()),
                    "created_at": self._now(),
                    **message.to_insert(),
                }
            )
            self.messages.append(stored)
        return Ok(stored)

    def list_conversations(self, user_id: str) -> Result[List[Conversation]]:
        with self._data_lock:
            convs = [c for c in self.conversations.values() if c.user_id == user_id]
        return Ok(convs)

    def list_messages(self, conversation_id: str) -> Result[List[Message]]:
        with self._data_lock:
            msgs = [m for m in self.messages if str(m.conversation_id) == str(conversation_id)]
        return Ok(msgs)
