from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse

from chatrelay.api.schemas import (
    AccessTokenResponse,
    ConversationSummary,
    LoginRequest,
    NewChatRequest,
    SendMessageRequest,
    SignupRequest,
)
from chatrelay.logging import get_logger
from chatrelay.service.errors import UpstreamError
from chatrelay.service.runtime import Runtime
from chatrelay.storage.models import Identity

logger = get_logger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["auth"])
chat_router = APIRouter(prefix="/chat", tags=["chat"])

_runtime_lock = threading.Lock()


def get_runtime(request: Request) -> Runtime:
    """Return the app's collaborator handles, building them on first use."""
    state = request.app.state
    runtime = getattr(state, "runtime", None)
    if runtime is not None:
        return runtime
    with _runtime_lock:
        if getattr(state, "runtime", None) is None:
            state.runtime = Runtime()
        return state.runtime


async def get_identity(
    authorization: Optional[str] = Header(None),
    runtime: Runtime = Depends(get_runtime),
) -> Identity:
    """Gate a route behind a bearer token the auth provider accepts.

    Raises:
        401: If the Authorization header carries no token
        403: If the provider rejects the token or the lookup fails
    """
    return await runtime.auth.authenticate(authorization)


@auth_router.post("/signup", response_class=PlainTextResponse)
async def signup(body: SignupRequest, runtime: Runtime = Depends(get_runtime)):
    result = await runtime.auth.register(body.email, body.password)
    if not result.ok:
        raise UpstreamError(result.message)
    logger.info("user_signed_up", email=body.email)
    return "User signed up successfully!"


@auth_router.post("/login", response_model=AccessTokenResponse)
async def login(body: LoginRequest, runtime: Runtime = Depends(get_runtime)):
    result = await runtime.auth.login(body.email, body.password)
    if not result.ok:
        raise UpstreamError(result.message)
    return AccessTokenResponse(accessToken=result.value)


@auth_router.post("/logout", response_class=PlainTextResponse)
async def logout(
    identity: Identity = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    result = await runtime.auth.logout(identity)
    if not result.ok:
        raise UpstreamError(result.message, detail=result.detail)
    logger.info("user_logged_out", user_id=identity.user_id)
    return "User logged out successfully!"


@chat_router.post("/new")
async def new_chat(
    body: NewChatRequest,
    identity: Identity = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> Dict[str, Any]:
    """Open a conversation whose summary and first message are ``messageToSend``."""
    result = await runtime.chat.start_conversation(identity, body.messageToSend, body.sender)
    if not result.ok:
        raise UpstreamError("Failed to create new chat")
    logger.info(
        "chat_created",
        user_id=identity.user_id,
        conversation_id=result.value.conversation_id,
    )
    return result.value.to_record()


@chat_router.get("/conversations", response_model=List[ConversationSummary])
async def list_conversations(
    identity: Identity = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
):
    result = await runtime.chat.list_conversations(identity)
    if not result.ok:
        raise UpstreamError("Failed to fetch conversations")
    return [conversation.to_summary() for conversation in result.value]


@chat_router.post("/{conversationId}", dependencies=[Depends(get_identity)])
async def send_message(
    body: SendMessageRequest,
    conversationId: str,
    runtime: Runtime = Depends(get_runtime),
) -> Dict[str, Any]:
    """Post a user message, or generate and post an assistant reply.

    For ``from == "assistant"`` the supplied ``chatHistory`` goes to the
    completion service unchanged and the reply text becomes the message body.
    """
    if str(body.conversationId) != conversationId:
        # The body id is authoritative; the path segment only routes.
        logger.warning(
            "conversation_id_mismatch",
            path_conversation_id=conversationId,
            body_conversation_id=body.conversationId,
        )
    if body.sender == "user":
        result = await runtime.chat.post_message(
            body.conversationId, body.sender, body.messageToSend
        )
    else:
        result = await runtime.chat.reply(body.conversationId, body.sender, body.history())
    if not result.ok:
        logger.warning(
            "send_message_failed",
            conversation_id=conversationId,
            sender=body.sender,
            source=result.source,
        )
        raise UpstreamError("Failed to send message")
    return result.value.to_record()


@chat_router.get("/{conversationId}", dependencies=[Depends(get_identity)])
async def fetch_conversation(
    conversationId: str,
    runtime: Runtime = Depends(get_runtime),
) -> List[Dict[str, Any]]:
    result = await runtime.chat.list_messages(conversationId)
    if not result.ok:
        raise UpstreamError("Failed to fetch messages")
    return [message.to_record() for message in result.value]
