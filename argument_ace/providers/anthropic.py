"""Anthropic Claude provider using anthropic SDK with native async."""

import logging
import os

import anthropic as anthropic_sdk

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

# Prefilled assistant turn; Claude continues the object from here
_PREFILL = "{"


class AnthropicProvider(AIProvider):
    """Anthropic Claude. JSON output is forced by prefilling the opening brace."""

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(self, prompt: str, purpose: str) -> ModelResponse:
        response, latency = await timed_call(
            self._config.name,
            self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                temperature=temperature_for(purpose),
                system=JSON_SYSTEM_PROMPT,
                messages=[
                    {"role": "user", "content": prompt},
                    {"role": "assistant", "content": _PREFILL},
                ],
            ),
            self._config.timeout_sec,
        )

        text = "".join(b.text for b in response.content or [] if b.type == "text")
        if not text.strip():
            raise ProviderError(self._config.name, f"Empty {purpose} reply")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens
        logger.info("Anthropic %s: %.2fs, %s tokens (stop: %s)", purpose, latency, token_count, response.stop_reason)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            purpose=purpose,
            content=_PREFILL + text,
            latency_sec=latency,
            token_count=token_count,
        )
