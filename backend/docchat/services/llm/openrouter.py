"""OpenRouter provider: OpenAI-compatible chat completions streamed over SSE."""

import json
import logging
from typing import AsyncIterator

import httpx

from docchat.core.config import settings
from docchat.core.errors import GenerationFailure
from docchat.services.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)

OPENROUTER_DEFAULT_MODEL = "google/gemini-2.0-flash-001"


class OpenRouterProvider(BaseLLMProvider):
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        default_model: str | None = None,
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key if api_key is not None else settings.openrouter_api_key
        self.base_url = (base_url or settings.openrouter_base_url).rstrip("/")
        self.default_model = default_model or settings.default_model or OPENROUTER_DEFAULT_MODEL
        self.timeout_s = timeout_s
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise GenerationFailure("OpenRouter API key not configured. Set DOCCHAT_OPENROUTER_API_KEY.")
        return {"Authorization": f"Bearer {self._api_key}"}

    async def stream(self, system: str, prompt: str, model: str | None = None) -> AsyncIterator[str]:
        payload = {
            "model": model or self.default_model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "stream": True,
        }
        # For streaming, read timeout is per-chunk
        timeout = httpx.Timeout(self.timeout_s, connect=10.0)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                async with client.stream(
                    "POST", f"{self.base_url}/chat/completions", json=payload, headers=self._headers()
                ) as resp:
                    if resp.status_code >= 400:
                        body = (await resp.aread()).decode("utf-8", errors="replace")
                        raise GenerationFailure(f"OpenRouter returned {resp.status_code}: {body[:300]}")
                    async for line in resp.aiter_lines():
                        delta = _parse_sse_line(line)
                        if delta is None:
                            continue
                        if delta == "[DONE]":
                            break
                        yield delta
            except httpx.TimeoutException as e:
                raise GenerationFailure(f"OpenRouter request timed out after {self.timeout_s:.1f}s") from e
            except httpx.HTTPError as e:
                raise GenerationFailure(f"OpenRouter request failed ({type(e).__name__}): {e}") from e


def _parse_sse_line(line: str) -> str | None:
    """Content delta carried by one SSE line, "[DONE]" at the end, else None."""
    s = line.strip()
    if not s.startswith("data:"):
        return None
    data_str = s[len("data:"):].strip()
    if not data_str:
        return None
    if data_str == "[DONE]":
        return data_str
    try:
        data = json.loads(data_str)
    except json.JSONDecodeError:
        logger.debug(f"Skipping malformed SSE payload: {data_str[:80]}")
        return None
    if data.get("error"):
        raise GenerationFailure(f"OpenRouter stream error: {data['error']}")
    choice = (data.get("choices") or [{}])[0] or {}
    content = (choice.get("delta") or {}).get("content")
    return str(content) if content else None
