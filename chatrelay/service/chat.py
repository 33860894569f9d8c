from __future__ import annotations

import asyncio
from typing import List, Protocol

from chatrelay.logging import get_logger
from chatrelay.service.llm import CompletionService
from chatrelay.service.results import Result
from chatrelay.storage.models import Conversation, Identity, Message

logger = get_logger(__name__)


class ChatStore(Protocol):
    def create_conversation(self, user_id: str, summary: str) -> Result[Conversation]: ...

    def add_message(self, message: Message) -> Result[Message]: ...

    def list_conversations(self, user_id: str) -> Result[List[Conversation]]: ...

    def list_messages(self, conversation_id: str) -> Result[List[Message]]: ...


class ChatService:
    """Conversation and message operations over a :class:`ChatStore`.

    Store and completion calls block on network I/O and run in a worker
    thread; each one is awaited before the next step starts.
    """

    def __init__(self, store: ChatStore, completion: CompletionService) -> None:
        self.store = store
        self.completion = completion

    async def start_conversation(
        self, identity: Identity, content: str, sender: str
    ) -> Result[Message]:
        """Create a conversation summarized by ``content`` and post it as the first message.

        The two inserts are not atomic: if the message insert fails the
        conversation stays behind without messages.
        """
        created = await asyncio.to_thread(
            self.store.create_conversation, identity.user_id, content
        )
        if not created.ok:
            return created
        conversation = created.value
        posted = await asyncio.to_thread(
            self.store.add_message,
            Message(
                conversation_id=conversation.conversation_id,
                sender=sender,
                content=content,
            ),
        )
        if not posted.ok:
            logger.error(
                "conversation_left_without_message",
                conversation_id=conversation.conversation_id,
                error=posted.message,
            )
        return posted

    async def post_message(
        self, conversation_id: str, sender: str, content: str
    ) -> Result[Message]:
        return await asyncio.to_thread(
            self.store.add_message,
            Message(conversation_id=conversation_id, sender=sender, content=content),
        )

    async def reply(
        self, conversation_id: str, sender: str, history: List[dict]
    ) -> Result[Message]:
        """Generate a reply from ``history`` and store it; nothing is stored on failure."""
        generated = await asyncio.to_thread(self.completion.complete, history)
        if not generated.ok:
            return generated
        return await self.post_message(conversation_id, sender, generated.value)

    async def list_conversations(self, identity: Identity) -> Result[List[Conversation]]:
        return await asyncio.to_thread(self.store.list_conversations, identity.user_id)

    async def list_messages(self, conversation_id: str) -> Result[List[Message]]:
        # No ownership check against the caller's identity.
        return await asyncio.to_thread(self.store.list_messages, conversation_id)


__all__ = ["ChatStore", "ChatService"]
