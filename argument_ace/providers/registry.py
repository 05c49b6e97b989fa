"""Build provider instances from config."""

import logging

from argument_ace.providers.anthropic import AnthropicProvider
from argument_ace.providers.base import AIProvider
from argument_ace.providers.gemini import GeminiProvider
from argument_ace.providers.openai_provider import OpenAIProvider
from config.config_loader import AppConfig

logger = logging.getLogger(__name__)

PROVIDER_CLASSES: dict[str, type[AIProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "google-genai": GeminiProvider,
}


def build_providers(config: AppConfig) -> dict[str, AIProvider]:
    """Instantiate every provider that has an API key. Keyed by config name."""
    providers: dict[str, AIProvider] = {}
    for name in sorted(config.available_providers):
        model_cfg = config.models[name]
        provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
        if provider_cls is None:
            logger.warning("Provider '%s' uses unknown sdk '%s', skipping", name, model_cfg.sdk)
            continue
        try:
            providers[name] = provider_cls(model_cfg)
        except Exception as exc:
            logger.warning("Failed to instantiate provider '%s': %s", name, exc)
    return providers
