"""Shared pytest fixtures."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from argument_ace.models import (
    AnalysisResult,
    DebateSession,
    DebateTurn,
    ModelResponse,
    ReasoningSkill,
    Speaker,
)
from argument_ace.orchestrator import SessionHolder, TurnOrchestrator
from argument_ace.providers.base import AIProvider
from argument_ace.services import DebateServices
from argument_ace.speech import SpeechSynthesizer
from argument_ace.store import InMemoryStore, SessionStore
from config.config_loader import (
    SERVICE_NAMES,
    AppConfig,
    DefaultsConfig,
    ModelConfig,
    PromptsConfig,
    SpeechConfig,
)

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

ANALYSIS_JSON = json.dumps({
    "feedback": "Clear claim, but the evidence is anecdotal.",
    "fallacies": ["Hasty generalization"],
    "persuasive_techniques": ["Appeal to emotion"],
    "counterpoints": ["Screen time is not the same as social media use"],
})
COUNTER_JSON = json.dumps({"counter_argument": "Social media also connects isolated teenagers."})
VERDICT_JSON = json.dumps({
    "overall_assessment": "A close debate.",
    "clashes": [
        {"point": "Mental health", "summary": "Harm vs. support", "winner": "user",
         "winner_score": 3, "reasoning": "Better evidence."},
        {"point": "Connection", "summary": "Isolation", "winner": "ai",
         "winner_score": -1, "reasoning": "Stronger example."},
    ],
    "final_score": 2,
    "winner": "user",
    "user_strengths": ["Structure"],
    "user_weaknesses": ["Sources"],
    "ai_strengths": ["Examples"],
    "ai_weaknesses": ["Rebuttal depth"],
    "advice": "Cite studies.",
})
RESEARCH_JSON = json.dumps({
    "pro_points": ["Rising anxiety rates"],
    "con_points": ["Community building"],
    "key_facts": ["Most teens use social media daily"],
})
POI_JSON = json.dumps({"question": "Is correlation really causation here?"})
TOPICS_JSON = json.dumps({"topics": ["Homework should be banned", "  ", "AI art is real art"]})
ARGUMENT_JSON = json.dumps({"argument": "  Schools should start later because teenagers sleep later.  "})

REPLIES = {
    "analysis": ANALYSIS_JSON,
    "counter_argument": COUNTER_JSON,
    "verdict": VERDICT_JSON,
    "research": RESEARCH_JSON,
    "poi": POI_JSON,
    "topics": TOPICS_JSON,
    "argument": ARGUMENT_JSON,
}


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="test",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        analysis="Analyze on {topic}: {argument}",
        counter_argument="Skill {skill}. {role_context} Topic {topic}\n{transcript}",
        verdict="{role_context} Judge {topic}\n{transcript}",
        research="Research {topic}",
        poi="POI on {topic}: {draft}",
        topics="Suggest topics. {category_context}",
        argument="Argue {topic} at {skill} level",
    )


@pytest.fixture
def sample_defaults_config(tmp_path: Path) -> DefaultsConfig:
    return DefaultsConfig(
        reasoning_skill="Intermediate",
        min_turns_for_jury=4,
        min_chars_for_poi=150,
        share_origin="https://ace.example",
        data_dir=tmp_path / "data",
        report_dir=tmp_path / "reports",
        audio_dir=tmp_path / "audio",
    )


@pytest.fixture
def sample_app_config(
    sample_defaults_config: DefaultsConfig,
    sample_prompts_config: PromptsConfig,
) -> AppConfig:
    model_cfg = ModelConfig(
        name="claude",
        sdk="anthropic",
        model="claude-sonnet-4-20250514",
        api_key_env="ANTHROPIC_API_KEY",
        timeout_sec=60,
        max_tokens=4096,
    )
    return AppConfig(
        defaults=sample_defaults_config,
        models={"claude": model_cfg},
        services={service: "claude" for service in SERVICE_NAMES},
        speech=SpeechConfig(
            enabled=False, model="tts-1", voice="alloy", api_key_env="OPENAI_API_KEY", timeout_sec=30,
        ),
        prompts=sample_prompts_config,
        available_providers={"claude"},
    )


@pytest.fixture
def sample_response() -> ModelResponse:
    return ModelResponse(
        provider="claude",
        model="claude-sonnet-4-20250514",
        purpose="analysis",
        content=ANALYSIS_JSON,
        latency_sec=1.5,
        token_count=42,
    )


def make_turn(speaker: Speaker, text: str, offset_sec: int = 0, **kwargs) -> DebateTurn:
    return DebateTurn(speaker=speaker, text=text, timestamp=T0 + timedelta(seconds=offset_sec), **kwargs)


@pytest.fixture
def sample_session() -> DebateSession:
    feedback = AnalysisResult(feedback="Good opening.", fallacies=("Slippery slope",))
    return DebateSession(
        topic="Social media does more harm than good",
        reasoning_skill=ReasoningSkill.ADVANCED,
        debate_log=(
            make_turn(Speaker.USER, "It fuels anxiety.", 0, feedback=feedback),
            make_turn(Speaker.AI, "It also builds community.", 1),
            make_turn(Speaker.USER, "Communities can be toxic.", 2),
            make_turn(Speaker.AI, "So can offline ones.", 3),
        ),
    )


class MockProvider(AIProvider):
    """Test double AIProvider. Replies per purpose from ``replies``."""

    def __init__(self, provider_name: str = "mock", replies: dict[str, str] | None = None) -> None:
        self._name = provider_name
        self._replies = dict(REPLIES if replies is None else replies)
        # Shadow the class method with an AsyncMock at the instance level.
        # ABC check passes because generate is defined in the class body below.
        self.generate = AsyncMock(side_effect=self._reply)  # type: ignore[assignment]

    def _reply(self, prompt: str, purpose: str) -> ModelResponse:
        return ModelResponse(
            provider=self._name,
            model="mock-model",
            purpose=purpose,
            content=self._replies.get(purpose, '{"ok": true}'),
            latency_sec=0.1,
            token_count=10,
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, prompt: str, purpose: str) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return self._reply(prompt, purpose)

    def prompts_for(self, purpose: str) -> list[str]:
        return [c.args[0] for c in self.generate.call_args_list if c.args[1] == purpose]


class MockSpeech(SpeechSynthesizer):
    """Returns ``audio/<n>.mp3``; ``synthesize`` is an AsyncMock for call inspection."""

    def __init__(self) -> None:
        self.count = 0
        self.synthesize = AsyncMock(side_effect=self._make)  # type: ignore[assignment]

    def _make(self, text: str, role: str | None = None) -> str:
        self.count += 1
        return f"audio/{self.count}.mp3"

    async def synthesize(self, text: str, role: str | None = None) -> str:  # type: ignore[override]
        return self._make(text, role)


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()


@pytest.fixture
def services(mock_provider: MockProvider, sample_prompts_config: PromptsConfig) -> DebateServices:
    return DebateServices({s: mock_provider for s in SERVICE_NAMES}, sample_prompts_config)


@pytest.fixture
def mock_speech() -> MockSpeech:
    return MockSpeech()


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore(InMemoryStore(), "https://ace.example")


class StepClock:
    """Deterministic clock: each call returns one second later than the last."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def orchestrator(services, mock_speech, session_store) -> TurnOrchestrator:
    return TurnOrchestrator(services, speech=mock_speech, store=session_store, clock=StepClock())


@pytest.fixture
def holder(orchestrator: TurnOrchestrator) -> SessionHolder:
    return SessionHolder(orchestrator.start_topic("Social media does more harm than good"))
