"""Tests for LLM providers."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import patch

import httpx
import pytest
from google.genai import errors

from docchat.core.errors import GenerationFailure
from docchat.services.llm import get_llm_provider
from docchat.services.llm.gemini import GeminiProvider
from docchat.services.llm.openrouter import OpenRouterProvider, _parse_sse_line


def _sse(*deltas):
    lines = [f"data: {json.dumps({'choices': [{'delta': {'content': d}}]})}\n\n" for d in deltas]
    return ": keep-alive\n\n" + "".join(lines) + "data: [DONE]\n\n"


def _provider(handler):
    return OpenRouterProvider(
        api_key="or-key",
        base_url="https://openrouter.test/api/v1",
        default_model="google/gemini-2.0-flash-001",
        transport=httpx.MockTransport(handler),
    )


async def _collect(stream):
    return [f async for f in stream]


def test_openrouter_streams_deltas():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text=_sse("Hel", "lo", "!"), headers={"content-type": "text/event-stream"})

    fragments = asyncio.run(_collect(_provider(handler).stream("sys", "prompt", "openai/gpt-4o")))

    assert fragments == ["Hel", "lo", "!"]
    payload = json.loads(seen[0].content)
    assert payload["model"] == "openai/gpt-4o"
    assert payload["stream"] is True
    assert payload["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "prompt"},
    ]
    assert seen[0].headers["authorization"] == "Bearer or-key"


def test_openrouter_default_model():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text=_sse("ok"))

    asyncio.run(_collect(_provider(handler).stream("sys", "prompt")))
    assert json.loads(seen[0].content)["model"] == "google/gemini-2.0-flash-001"


def test_openrouter_http_error():
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "No auth"}})

    with pytest.raises(GenerationFailure, match="401"):
        asyncio.run(_collect(_provider(handler).stream("sys", "prompt")))


def test_openrouter_missing_key():
    provider = OpenRouterProvider(api_key="", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    with pytest.raises(GenerationFailure):
        asyncio.run(_collect(provider.stream("sys", "prompt")))


def test_parse_sse_line():
    assert _parse_sse_line("") is None
    assert _parse_sse_line(": comment") is None
    assert _parse_sse_line("data: [DONE]") == "[DONE]"
    assert _parse_sse_line("data: {broken") is None
    assert _parse_sse_line('data: {"choices": [{"delta": {}}]}') is None
    with pytest.raises(GenerationFailure):
        _parse_sse_line('data: {"error": {"message": "rate limited"}}')


def test_factory_selects_provider():
    with patch("docchat.services.llm.settings.llm_provider", "openrouter"):
        assert isinstance(get_llm_provider(), OpenRouterProvider)
    with patch("docchat.services.llm.settings.llm_provider", "nope"):
        with pytest.raises(ValueError):
            get_llm_provider()


def _gemini(chunks=(), error=None):
    provider = GeminiProvider(api_key="gemini-key", default_model="gemini-2.0-flash")
    calls = []

    async def chunk_stream():
        for text in chunks:
            yield SimpleNamespace(text=text)

    async def generate_content_stream(**kwargs):
        calls.append(kwargs)
        if error:
            raise error
        return chunk_stream()

    provider.client.aio.models.generate_content_stream = generate_content_stream
    return provider, calls


def test_gemini_streams_text_chunks():
    provider, calls = _gemini(["Hel", "", None, "lo"])

    fragments = asyncio.run(_collect(provider.stream("sys", "prompt", "gemini-2.5-pro")))

    assert fragments == ["Hel", "lo"]
    assert calls[0]["model"] == "gemini-2.5-pro"
    assert calls[0]["config"].system_instruction == "sys"
    assert calls[0]["contents"][0].parts[0].text == "prompt"


def test_gemini_default_model():
    provider, calls = _gemini(["ok"])
    asyncio.run(_collect(provider.stream("sys", "prompt")))
    assert calls[0]["model"] == "gemini-2.0-flash"


def test_gemini_api_error_is_generation_failure():
    error = errors.APIError(429, {"error": {"code": 429, "message": "quota exhausted", "status": "RESOURCE_EXHAUSTED"}})
    provider, _ = _gemini(error=error)

    with pytest.raises(GenerationFailure, match="429"):
        asyncio.run(_collect(provider.stream("sys", "prompt")))
