"""Gemini provider using google-genai SDK with native async."""

import logging
import os

from google import genai
from google.genai import types as genai_types

from argument_ace.models import ModelResponse
from argument_ace.providers.base import (
    JSON_SYSTEM_PROMPT,
    AIProvider,
    ProviderError,
    temperature_for,
    timed_call,
)
from config.config_loader import ModelConfig

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini via google-genai, in JSON response mode."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(self, prompt: str, purpose: str) -> ModelResponse:
        response, latency = await timed_call(
            self._config.name,
            self._client.aio.models.generate_content(
                model=self._config.model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    system_instruction=JSON_SYSTEM_PROMPT,
                    max_output_tokens=self._config.max_tokens,
                    temperature=temperature_for(purpose),
                    response_mime_type="application/json",
                ),
            ),
            self._config.timeout_sec,
        )
        if not response.text:
            raise ProviderError(self._config.name, f"Empty {purpose} reply")

        usage = response.usage_metadata
        token_count = usage.total_token_count if usage else None
        logger.info("Gemini %s: %.2fs, %s tokens", purpose, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            purpose=purpose,
            content=response.text,
            latency_sec=latency,
            token_count=token_count,
        )
