"""
Chat-completion client for the hosted LLM.

Fixed request shape: model id, message list, completion token cap.
No streaming, no retry, no rate-limit handling. A non-2xx answer raises
CompletionError carrying the provider's raw body.
"""

import logging
import time
from enum import Enum
from typing import Optional

import httpx

from ..core.config import get_settings
from ..core.errors import CompletionError, UpstreamError
from .http import get_http_client

logger = logging.getLogger(__name__)


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


def message(role: Role, content: str) -> dict:
    return {"role": role.value, "content": content}


class CompletionClient:
    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        max_completion_tokens: int,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.max_completion_tokens = max_completion_tokens
        self._http = http

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http or get_http_client()

    async def complete(self, messages: list[dict]) -> dict:
        """POST /chat/completions and return the parsed JSON body."""
        if not self.api_key:
            raise UpstreamError("OPENAI_API_KEY is missing")

        payload = {
            "model": self.model,
            "messages": messages,
            "max_completion_tokens": self.max_completion_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        start = time.monotonic()
        try:
            resp = await self.http.post(
                f"{self.base_url}/chat/completions", json=payload, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error("Completion request failed: %s", e)
            raise UpstreamError(f"Completion request failed: {e}") from e

        if resp.is_error:
            logger.error("Completion API error %d: %s", resp.status_code, resp.text[:500])
            raise CompletionError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error("Completion API returned a non-JSON body: %s", resp.text[:500])
            raise UpstreamError(f"Invalid OpenAI response: {resp.text}")

        usage = data.get("usage") or {}
        logger.info(
            "Completion: %dms | in=%d out=%d tokens | model=%s",
            int((time.monotonic() - start) * 1000),
            usage.get("prompt_tokens", 0),
            usage.get("completion_tokens", 0),
            self.model,
        )
        return data


def first_choice_content(data: dict) -> Optional[str]:
    """Text of the first choice, or None when the response has no choices."""
    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices or not isinstance(choices, list) or not isinstance(choices[0], dict):
        return None
    msg = choices[0].get("message")
    if not isinstance(msg, dict):
        return None
    content = msg.get("content")
    return content if isinstance(content, str) else None


def get_completion_client() -> CompletionClient:
    settings = get_settings()
    return CompletionClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        max_completion_tokens=settings.openai_max_completion_tokens,
    )
