"""Google Gemini LLM provider."""

import logging
from typing import AsyncIterator

from google import genai
from google.genai import errors, types

from docchat.core.config import settings
from docchat.core.errors import GenerationFailure
from docchat.services.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)

GEMINI_DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiProvider(BaseLLMProvider):
    def __init__(self, api_key: str | None = None, default_model: str | None = None):
        self.client = genai.Client(api_key=api_key or settings.gemini_api_key)
        self.default_model = default_model or settings.default_model or GEMINI_DEFAULT_MODEL

    async def stream(self, system: str, prompt: str, model: str | None = None) -> AsyncIterator[str]:
        model_id = model or self.default_model
        config = types.GenerateContentConfig(system_instruction=system)
        logger.info(f"Gemini stream: model={model_id}, prompt_chars={len(prompt)}")
        try:
            response = await self.client.aio.models.generate_content_stream(
                model=model_id,
                contents=[types.Content(role="user", parts=[types.Part(text=prompt)])],
                config=config,
            )
            async for chunk in response:
                if chunk.text:
                    yield chunk.text
        except errors.APIError as e:
            raise GenerationFailure(f"Gemini request failed ({e.code}): {e.message}") from e
