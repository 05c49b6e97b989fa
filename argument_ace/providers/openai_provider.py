"""OpenAI chat provider. Also serves OpenAI-compatible endpoints via ``base_url``."""

import logging
import os

from openai import AsyncOpenAI

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


class OpenAIProvider(AIProvider):
    """OpenAI chat completions in ``json_object`` response mode."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(self, prompt: str, purpose: str) -> ModelResponse:
        response, latency = await timed_call(
            self._config.name,
            self._client.chat.completions.create(
                model=self._config.model,
                messages=[
                    {"role": "system", "content": JSON_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self._config.max_tokens,
                temperature=temperature_for(purpose),
                response_format={"type": "json_object"},
            ),
            self._config.timeout_sec,
        )

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, f"Empty {purpose} reply")
        if choice.finish_reason == "length":
            logger.warning("OpenAI %s reply truncated at %d tokens", purpose, self._config.max_tokens)

        token_count = response.usage.total_tokens if response.usage else None
        logger.info("OpenAI %s: %.2fs, %s tokens", purpose, latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            purpose=purpose,
            content=choice.message.content,
            latency_sec=latency,
            token_count=token_count,
        )
