"""Service adapters: prompt in, validated record out.

Each call renders a prompt from config, sends it to the provider
assigned to that service, and parses the reply strictly. Anything that
goes wrong on the way comes out as ServiceFailure, so callers only ever
see well-formed records.
"""

import logging
from dataclasses import dataclass, replace
from typing import TypeVar

from pydantic import ValidationError as SchemaError

from argument_ace.errors import ServiceFailure
from argument_ace.models import AnalysisResult, ReasoningSkill, ResearchBundle, VerdictResult, Winner
from argument_ace.providers.base import AIProvider, ProviderError
from argument_ace.serialization import parse_payload
from config.config_loader import SERVICE_NAMES, AppConfig, PromptsConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class _CounterArgumentPayload:
    counter_argument: str


@dataclass(frozen=True)
class _PoiPayload:
    question: str


@dataclass(frozen=True)
class _TopicsPayload:
    topics: tuple[str, ...]


@dataclass(frozen=True)
class _ArgumentPayload:
    argument: str


def winner_for_score(score: float) -> Winner:
    if score > 0:
        return Winner.USER
    if score < 0:
        return Winner.AI
    return Winner.TIE


def normalize_verdict(verdict: VerdictResult) -> VerdictResult:
    """Recompute the final score from the clashes and the winner from its sign."""
    final_score = sum(c.winner_score for c in verdict.clashes)
    winner = winner_for_score(final_score)
    if final_score != verdict.final_score or winner is not verdict.winner:
        logger.info(
            "Verdict corrected: reported %s/%s, clashes give %s/%s",
            verdict.final_score, verdict.winner.value, final_score, winner.value,
        )
    return replace(verdict, final_score=final_score, winner=winner)


class DebateServices:
    """One method per service call, each returning a validated record."""

    def __init__(self, providers: dict[str, AIProvider], prompts: PromptsConfig) -> None:
        missing = [s for s in SERVICE_NAMES if s not in providers]
        if missing:
            raise ValueError(f"No provider assigned for services: {', '.join(missing)}")
        self._providers = providers
        self._prompts = prompts

    @classmethod
    def from_config(cls, config: AppConfig, available: dict[str, AIProvider]) -> "DebateServices":
        """Assign providers per ``config.services``, falling back to any available one.

        Raises:
            ValueError: If no providers are available at all.
        """
        if not available:
            raise ValueError("No providers available")
        fallback = next(iter(available.values()))
        assigned: dict[str, AIProvider] = {}
        for service, provider_name in config.services.items():
            provider = available.get(provider_name)
            if provider is None:
                logger.warning(
                    "Provider %s for %s unavailable, using %s",
                    provider_name, service, fallback.name(),
                )
                provider = fallback
            assigned[service] = provider
        return cls(assigned, config.prompts)

    def provider_for(self, service: str) -> AIProvider:
        return self._providers[service]

    async def _call(self, service: str, prompt: str, record_type: type[T]) -> T:
        provider = self._providers[service]
        try:
            response = await provider.generate(prompt, service)
        except ProviderError as exc:
            raise ServiceFailure(service, str(exc)) from exc
        except Exception as exc:
            raise ServiceFailure(service, f"Unexpected error from {provider.name()}: {exc}") from exc

        try:
            return parse_payload(response.content, record_type)
        except SchemaError as exc:
            logger.warning("Invalid %s reply from %s: %s", service, provider.name(), exc)
            raise ServiceFailure(
                service, f"Invalid response from {provider.name()} ({exc.error_count()} schema errors)"
            ) from exc

    async def analyze_argument(self, argument: str, topic: str) -> AnalysisResult:
        prompt = self._prompts.analysis.format(argument=argument, topic=topic)
        result = await self._call("analysis", prompt, AnalysisResult)
        if not result.feedback.strip():
            raise ServiceFailure("analysis", "Empty feedback")
        return result

    async def generate_counter_argument(
        self,
        topic: str,
        transcript: str,
        skill: ReasoningSkill,
        user_role: str | None = None,
        ai_role: str | None = None,
    ) -> str:
        role_context = ""
        if user_role and ai_role:
            role_context = f"The user speaks as {user_role}; you respond as {ai_role}."
        prompt = self._prompts.counter_argument.format(
            topic=topic,
            transcript=transcript,
            skill=skill.value,
            role_context=role_context,
        )
        payload = await self._call("counter_argument", prompt, _CounterArgumentPayload)
        text = payload.counter_argument.strip()
        if not text:
            raise ServiceFailure("counter_argument", "Empty counter-argument")
        return text

    async def judge_debate(self, topic: str, transcript: str, user_role: str | None = None) -> VerdictResult:
        role_context = f"The user spoke as {user_role}." if user_role else ""
        prompt = self._prompts.verdict.format(topic=topic, transcript=transcript, role_context=role_context)
        verdict = await self._call("verdict", prompt, VerdictResult)
        return normalize_verdict(verdict)

    async def research_topic(self, topic: str) -> ResearchBundle:
        prompt = self._prompts.research.format(topic=topic)
        return await self._call("research", prompt, ResearchBundle)

    async def generate_poi(self, topic: str, draft: str) -> str:
        prompt = self._prompts.poi.format(topic=topic, draft=draft)
        payload = await self._call("poi", prompt, _PoiPayload)
        question = payload.question.strip()
        if not question:
            raise ServiceFailure("poi", "Empty question")
        return question

    async def suggest_topics(self, category: str | None = None) -> list[str]:
        """3-5 debatable topics, optionally within ``category``."""
        category = (category or "").strip()
        category_context = (
            f"Focus on the category: {category}." if category else "Provide general topics suitable for debate."
        )
        prompt = self._prompts.topics.format(category_context=category_context)
        payload = await self._call("topics", prompt, _TopicsPayload)
        topics = [t.strip() for t in payload.topics if t.strip()]
        if not topics:
            raise ServiceFailure("topics", "No topics suggested")
        return topics

    async def generate_argument(self, topic: str, skill: ReasoningSkill) -> str:
        prompt = self._prompts.argument.format(topic=topic, skill=skill.value)
        payload = await self._call("argument", prompt, _ArgumentPayload)
        text = payload.argument.strip()
        if not text:
            raise ServiceFailure("argument", "Empty argument")
        return text
