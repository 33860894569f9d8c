"""Behavior of the in-process store and identity provider."""

from concurrent.futures import ThreadPoolExecutor

from chatrelay.service.auth import MemoryIdentityProvider
from chatrelay.storage.memory import MemoryChatStore
from chatrelay.storage.models import Message


class TestMemoryChatStore:
    def test_create_conversation_assigns_id(self):
        store = MemoryChatStore()

        result = store.create_conversation("u-1", "Hello")

        assert result.ok
        assert result.value.conversation_id
        assert result.value.created_at
        assert store.conversations[result.value.conversation_id].summary == "Hello"

    def test_add_message_requires_conversation(self):
        store = MemoryChatStore()

        result = store.add_message(Message(conversation_id="nope", sender="user", content="x"))

        assert not result.ok
        assert result.source == "store"
        assert store.messages == []

    def test_lists_are_filtered(self):
        store = MemoryChatStore()
        mine = store.create_conversation("u-1", "mine").value
        theirs = store.create_conversation("u-2", "theirs").value
        store.add_message(Message(conversation_id=mine.conversation_id, sender="user", content="a"))
        store.add_message(Message(conversation_id=theirs.conversation_id, sender="user", content="b"))

        assert [c.summary for c in store.list_conversations("u-1").value] == ["mine"]
        assert [m.content for m in store.list_messages(mine.conversation_id).value] == ["a"]
        assert store.list_messages("unknown").value == []

    def test_concurrent_inserts_are_all_kept(self):
        store = MemoryChatStore()
        conversation = store.create_conversation("u-1", "busy").value

        def post(i):
            return store.add_message(
                Message(conversation_id=conversation.conversation_id, sender="user", content=str(i))
            )

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(post, range(50)))

        assert all(r.ok for r in results)
        assert len(store.list_messages(conversation.conversation_id).value) == 50
        assert len({r.value.id for r in results}) == 50


class TestMemoryIdentityProvider:
    def test_register_login_resolve(self):
        provider = MemoryIdentityProvider()

        assert provider.register("a@b.com", "pw").ok
        token = provider.authenticate("a@b.com", "pw").value
        identity = provider.resolve_identity(token).value

        assert identity.email == "a@b.com"
        assert identity.token == token

    def test_user_id_is_stable_across_logins(self):
        provider = MemoryIdentityProvider()
        provider.register("a@b.com", "pw")
        first = provider.authenticate("a@b.com", "pw").value
        second = provider.authenticate("a@b.com", "pw").value

        assert (
            provider.resolve_identity(first).value.user_id
            == provider.resolve_identity(second).value.user_id
        )

    def test_invalidate_session(self):
        provider = MemoryIdentityProvider()
        provider.register("a@b.com", "pw")
        token = provider.authenticate("a@b.com", "pw").value

        assert provider.invalidate_session(token).ok
        assert not provider.resolve_identity(token).ok
        assert not provider.invalidate_session(token).ok
