from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import anyio
import httpx

from ..errors import OracleUnavailable
from .prompts import build_request_body
from .retry import RetryExhausted, RetryPolicy, Sleep, retry_async

logger = logging.getLogger(__name__)


class _BadStatus(Exception):
    """A non-2xx answer from the oracle; retryable."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"HTTP {status_code}: {body[:200]}")
        self.status_code = status_code


def extract_text(data: Any) -> str:
    """Pull candidates[0].content.parts[0].text out of a generateContent reply."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


class OracleClient:
    """Submits instruction documents to a Gemini-style generateContent endpoint.

    Attempts are retried with exponential backoff; only a 2xx status counts as
    success. The reply text is returned as-is for the normalizer.
    """

    def __init__(
        self,
        *,
        base_url: str,
        model_name: str,
        api_key: str,
        timeout_sec: float = 120.0,
        policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = anyio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.model_name = model_name
        self.api_key = api_key
        self.timeout_sec = timeout_sec
        self.policy = policy or RetryPolicy()
        self._transport = transport
        self._sleep = sleep

    @property
    def url(self) -> str:
        return f"{self.base_url}/models/{self.model_name}:generateContent"

    async def invoke(self, instruction: str) -> str:
        if not self.api_key:
            raise OracleUnavailable("No API credential configured for the generative model.")

        body = build_request_body(instruction)
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout_sec) as client:

            async def _attempt() -> Dict[str, Any]:
                r = await client.post(self.url, json=body, headers=headers)
                if not r.is_success:
                    raise _BadStatus(r.status_code, r.text)
                try:
                    return r.json()
                except ValueError:
                    return {}

            try:
                data = await retry_async(
                    _attempt,
                    self.policy,
                    retry_on=(httpx.HTTPError, _BadStatus),
                    sleep=self._sleep,
                    label=f"oracle call ({self.model_name})",
                )
            except RetryExhausted as e:
                raise OracleUnavailable(
                    "AI model failed to respond after retries.",
                    attempts=e.attempts,
                    last_error=e.last_error,
                ) from e

        return extract_text(data)
