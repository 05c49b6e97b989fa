"""Abstract base for all AI model providers, plus the call plumbing they share."""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import TypeVar

from argument_ace.models import ModelResponse

T = TypeVar("T")

JSON_SYSTEM_PROMPT = (
    "You are the engine of a debate practice coach. Reply with exactly one JSON "
    "object using the snake_case field names the request asks for. No prose, "
    "no markdown."
)

# Sampling temperature per service
PURPOSE_TEMPERATURES = {
    "analysis": 0.3,
    "counter_argument": 0.8,
    "verdict": 0.2,
    "research": 0.5,
    "poi": 0.7,
    "topics": 0.9,
    "argument": 0.7,
}
DEFAULT_TEMPERATURE = 0.5


def temperature_for(purpose: str) -> float:
    return PURPOSE_TEMPERATURES.get(purpose, DEFAULT_TEMPERATURE)


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


async def timed_call(provider_name: str, call: Awaitable[T], timeout_sec: float) -> tuple[T, float]:
    """Await an SDK call with a timeout. Returns (result, latency in seconds).

    Raises:
        ProviderError: On timeout or any SDK exception.
    """
    start = time.monotonic()
    try:
        result = await asyncio.wait_for(call, timeout=timeout_sec)
    except TimeoutError as exc:
        raise ProviderError(provider_name, f"Request timed out after {timeout_sec}s") from exc
    except Exception as exc:
        raise ProviderError(provider_name, f"API call failed: {exc}") from exc
    return result, time.monotonic() - start


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'gemini', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, prompt: str, purpose: str) -> ModelResponse:
        """Generate a JSON completion for the given prompt.

        Args:
            prompt: The full prompt text to send.
            purpose: Which service is asking. Picks the sampling
                temperature and tags the response.

        Returns:
            ModelResponse with the raw text content and call metadata.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...
