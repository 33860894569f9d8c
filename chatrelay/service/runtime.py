from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from chatrelay.config import Settings, get_settings
from chatrelay.logging import get_logger
from chatrelay.service.auth import (
    AuthService,
    IdentityProvider,
    MemoryIdentityProvider,
    SupabaseIdentityProvider,
)
from chatrelay.service.chat import ChatService, ChatStore
from chatrelay.service.llm import CompletionService
from chatrelay.storage.memory import MemoryChatStore
from chatrelay.storage.supabase_store import SupabaseChatStore, create_supabase_client

logger = get_logger(__name__)


def _host_of(url: Optional[str]) -> Optional[str]:
    """Host part of a URL for logging without credentials or paths."""
    if not url:
        return url
    try:
        return urlparse(url).hostname
    except ValueError:
        return "***url_parse_error***"


class Runtime:
    """Collaborator handles built once at startup and shared read-only by requests.

    Explicit ``store``, ``identity_provider`` or ``completion`` arguments take
    precedence over what ``settings`` would build.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        store: Optional[ChatStore] = None,
        identity_provider: Optional[IdentityProvider] = None,
        completion: Optional[CompletionService] = None,
    ):
        self.settings = settings or get_settings()
        logger.info(
            "runtime_init_started",
            use_memory_backends=self.settings.use_memory_backends,
            test_mode=self.settings.test_mode,
        )

        if store is None or identity_provider is None:
            if self.settings.use_memory_backends:
                store = store or MemoryChatStore()
                identity_provider = identity_provider or MemoryIdentityProvider()
            else:
                if not self.settings.supabase_configured:
                    raise RuntimeError(
                        "SUPABASE_URL and SUPABASE_KEY are required; "
                        "set USE_MEMORY_BACKENDS=true to run without Supabase."
                    )
                url = self.settings.supabase_url
                key = self.settings.supabase_key
                client = create_supabase_client(url, key)
                store = store or SupabaseChatStore(
                    client,
                    conversations_table=self.settings.conversations_table,
                    messages_table=self.settings.messages_table,
                )
                identity_provider = identity_provider or SupabaseIdentityProvider(
                    client, lambda: create_supabase_client(url, key)
                )
                logger.info("runtime_supabase_connected", supabase_host=_host_of(url))

        self.completion = completion or CompletionService(
            self.settings.completion_model,
            api_key=self.settings.openai_api_key,
            organization=self.settings.openai_org_id,
            project=self.settings.openai_project_id,
            base_url=self.settings.openai_base_url,
        )
        self.store = store
        self.auth = AuthService(identity_provider)
        self.chat = ChatService(store, self.completion)

        logger.info(
            "runtime_initialized",
            store_type=type(store).__name__,
            identity_provider=type(identity_provider).__name__,
            completion_model=self.completion.model,
            completion_configured=self.completion.is_configured,
        )

    def close(self) -> None:
        self.completion.close()
