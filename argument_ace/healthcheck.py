"""Provider health checks: ping each API before a debate starts.

Every service reply must be a JSON object, so a provider only passes when
its ping reply parses as one.
"""

import asyncio
import json
import logging
from dataclasses import dataclass

from argument_ace.providers.base import AIProvider
from argument_ace.serialization import extract_json

logger = logging.getLogger(__name__)

_PING_PROMPT = 'Reply with the JSON object {"ok": true} only.'
_TIMEOUT_SEC = 15.0


@dataclass(frozen=True)
class HealthResult:
    provider: str
    ok: bool
    error: str = ""
    latency_sec: float | None = None


async def check_provider(name: str, provider: AIProvider) -> HealthResult:
    try:
        response = await asyncio.wait_for(
            provider.generate(_PING_PROMPT, purpose="healthcheck"), timeout=_TIMEOUT_SEC
        )
    except Exception as exc:
        logger.debug("Health check failed for %s: %s", name, exc)
        return HealthResult(name, False, str(exc) or type(exc).__name__)

    try:
        reply = json.loads(extract_json(response.content))
    except json.JSONDecodeError:
        return HealthResult(name, False, f"Reply is not JSON: {response.content[:60]!r}")
    if not isinstance(reply, dict):
        return HealthResult(name, False, "Reply is not a JSON object")
    return HealthResult(name, True, latency_sec=response.latency_sec)


async def run_health_checks(providers: dict[str, AIProvider]) -> dict[str, HealthResult]:
    """Ping all providers in parallel, keyed by provider name."""
    results = await asyncio.gather(*(check_provider(n, p) for n, p in providers.items()))
    return {r.provider: r for r in results}


def working_providers(
    providers: dict[str, AIProvider], results: dict[str, HealthResult]
) -> dict[str, AIProvider]:
    return {n: p for n, p in providers.items() if n in results and results[n].ok}
