"""Chat-completion client for the generative text service (OpenRouter)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Protocol

import httpx
from pydantic import BaseModel

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """Raised when the completion service fails or answers in an unexpected shape."""

    def __init__(self, message: str, error_type: str = "completion_failed"):
        self.error_type = error_type
        super().__init__(message)


class CompletionResult(BaseModel):
    content: str
    tokens_used: int = 0
    model: str = ""


class CompletionClient(Protocol):
    async def complete(self, system_prompt: str, user_prompt: str) -> CompletionResult: ...

    async def aclose(self) -> None: ...


class OpenRouterClient:
    """Calls ``{base_url}/chat/completions`` with a bearer API key."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str,
        base_url: str = "https://openrouter.ai/api/v1",
        site_url: str = "http://localhost:3000",
        temperature: float = 0.3,
        max_tokens: int = 8000,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.site_url = site_url
        self.temperature = temperature
        self.max_tokens = max_tokens
        # One pooled client for the life of the process; the caller enforces
        # the overall deadline
        self.http = http_client or httpx.AsyncClient(timeout=None)

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: Optional[httpx.AsyncClient] = None
    ) -> OpenRouterClient:
        return cls(
            settings.openrouter_api_key or "",
            model=settings.default_model,
            base_url=settings.openrouter_base_url,
            site_url=settings.site_url,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            http_client=http_client,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.site_url,
            "X-Title": "FlowBuilder",
        }

    async def complete(self, system_prompt: str, user_prompt: str) -> CompletionResult:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        url = f"{self.base_url}/chat/completions"

        try:
            response = await self.http.post(url, headers=self._headers(), json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CompletionError(
                f"Completion API returned {e.response.status_code}: {e.response.text[:200]}",
                "http_status",
            ) from e
        except httpx.HTTPError as e:
            raise CompletionError(f"Completion API request failed: {e}", "transport") from e

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CompletionError(f"Unexpected completion response shape: {e}", "bad_response") from e

        if not isinstance(content, str) or not content.strip():
            raise CompletionError("Completion response has no content", "empty_response")

        usage = data.get("usage") or {}
        logger.debug("Completion from %s used %s tokens", self.model, usage.get("total_tokens"))
        return CompletionResult(
            content=content,
            tokens_used=int(usage.get("total_tokens") or 0),
            model=data.get("model") or self.model,
        )


def create_completion_client(settings: Settings) -> OpenRouterClient | None:
    """Return a client, or None when no API key is configured."""
    if not settings.openrouter_api_key:
        logger.info("OPENROUTER_API_KEY not set; workflows will use the fallback builder")
        return None
    return OpenRouterClient.from_settings(settings)
