from __future__ import annotations

from typing import Any, List, Optional

from openai import OpenAI, OpenAIError

from chatrelay.logging import get_logger
from chatrelay.service.results import Err, Ok, Result

logger = get_logger(__name__)


class CompletionService:
    """Generates one assistant reply from an ordered chat history.

    Without an API key there is no client; replies then echo the last history
    entry so local runs work without credentials.
    """

    def __init__(
        self,
        model: str,
        *,
        api_key: Optional[str] = None,
        organization: Optional[str] = None,
        project: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        self.model = model
        if client is None and api_key:
            client = OpenAI(
                api_key=api_key,
                organization=organization,
                project=project,
                base_url=base_url,
            )
        self.client = client

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def complete(self, history: List[dict]) -> Result[str]:
        if self.client is None:
            logger.warning("completion_client_missing", model=self.model)
            fallback = history[-1].get("content", "") if history else ""
            return Ok(f"[stub model={self.model}] {fallback}")
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=history,
            )
        except OpenAIError as exc:
            logger.warning(
                "completion_failed",
                model=self.model,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return Err("completion", str(exc))
        choices = getattr(completion, "choices", None) or []
        first_choice = next(iter(choices), None)
        if not first_choice:
            logger.warning("completion_returned_no_choices", model=self.model)
            return Err("completion", "completion returned no choices")
        return Ok(first_choice.message.content or "")

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if callable(close):
            close()
