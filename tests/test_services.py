"""Tests for argument_ace/services.py and serialization helpers."""

import json
from unittest.mock import AsyncMock

import pytest

from argument_ace.errors import ServiceFailure
from argument_ace.models import AnalysisResult, Clash, ReasoningSkill, VerdictResult, Winner
from argument_ace.providers.base import ProviderError
from argument_ace.serialization import extract_json, parse_payload
from argument_ace.services import DebateServices, normalize_verdict, winner_for_score
from config.config_loader import SERVICE_NAMES
from tests.conftest import MockProvider


def test_extract_json_strips_fences():
    text = '```json\n{"a": 1}\n```'
    assert extract_json(text) == '{"a": 1}'


def test_extract_json_drops_chatter():
    assert extract_json('Sure! {"a": {"b": 2}} Hope this helps.') == '{"a": {"b": 2}}'


def test_parse_payload_accepts_lists_as_tuples():
    result = parse_payload('{"feedback": "ok", "fallacies": ["x", "y"]}', AnalysisResult)
    assert result.fallacies == ("x", "y")
    assert result.counterpoints == ()


def test_winner_for_score():
    assert winner_for_score(2.5) is Winner.USER
    assert winner_for_score(-1) is Winner.AI
    assert winner_for_score(0) is Winner.TIE


def test_normalize_verdict_recomputes_score_and_winner():
    verdict = VerdictResult(
        overall_assessment="x",
        clashes=(
            Clash("a", "s", Winner.AI, -3, "r"),
            Clash("b", "s", Winner.USER, 1, "r"),
        ),
        final_score=5,
        winner=Winner.USER,
    )
    fixed = normalize_verdict(verdict)
    assert fixed.final_score == -2
    assert fixed.winner is Winner.AI


def test_services_require_every_provider(mock_provider, sample_prompts_config):
    with pytest.raises(ValueError, match="poi"):
        DebateServices({"analysis": mock_provider}, sample_prompts_config)


def test_from_config_falls_back_to_available(sample_app_config):
    gemini = MockProvider("gemini")
    services = DebateServices.from_config(sample_app_config, {"gemini": gemini})
    assert all(services.provider_for(s) is gemini for s in SERVICE_NAMES)


async def test_analyze_argument(services, mock_provider):
    result = await services.analyze_argument("Teens are anxious.", "Social media")
    assert result.fallacies == ("Hasty generalization",)
    prompt = mock_provider.prompts_for("analysis")[0]
    assert "Teens are anxious." in prompt
    assert "Social media" in prompt


async def test_counter_argument_includes_roles(services, mock_provider):
    text = await services.generate_counter_argument(
        "Topic", 'User: "x"', ReasoningSkill.ADVANCED, "Prime Minister", "Leader of Opposition"
    )
    assert text == "Social media also connects isolated teenagers."
    prompt = mock_provider.prompts_for("counter_argument")[0]
    assert "Advanced" in prompt
    assert "Leader of Opposition" in prompt


async def test_judge_debate_normalizes(services):
    verdict = await services.judge_debate("Topic", "transcript")
    assert verdict.final_score == 2
    assert verdict.winner is Winner.USER
    assert len(verdict.clashes) == 2


async def test_research_and_poi(services):
    bundle = await services.research_topic("Topic")
    assert bundle.pro_points == ("Rising anxiety rates",)
    question = await services.generate_poi("Topic", "draft text")
    assert question.endswith("?")


async def test_malformed_reply_is_service_failure(sample_prompts_config):
    provider = MockProvider(replies={"analysis": "I cannot answer that."})
    services = DebateServices({s: provider for s in SERVICE_NAMES}, sample_prompts_config)
    with pytest.raises(ServiceFailure) as exc_info:
        await services.analyze_argument("x", "y")
    assert exc_info.value.service == "analysis"


async def test_missing_field_is_service_failure(sample_prompts_config):
    provider = MockProvider(replies={"verdict": json.dumps({"overall_assessment": "x"})})
    services = DebateServices({s: provider for s in SERVICE_NAMES}, sample_prompts_config)
    with pytest.raises(ServiceFailure, match="verdict"):
        await services.judge_debate("t", "x")


async def test_empty_feedback_is_service_failure(sample_prompts_config):
    provider = MockProvider(replies={"analysis": '{"feedback": "  "}'})
    services = DebateServices({s: provider for s in SERVICE_NAMES}, sample_prompts_config)
    with pytest.raises(ServiceFailure):
        await services.analyze_argument("x", "y")


async def test_provider_error_is_service_failure(services, mock_provider):
    mock_provider.generate = AsyncMock(side_effect=ProviderError("mock", "503 Service Unavailable"))
    with pytest.raises(ServiceFailure, match="503"):
        await services.research_topic("t")


async def test_suggest_topics_with_category(services, mock_provider):
    topics = await services.suggest_topics("technology")
    assert topics == ["Homework should be banned", "AI art is real art"]
    assert "Focus on the category: technology." in mock_provider.prompts_for("topics")[0]


async def test_suggest_topics_without_category(services, mock_provider):
    await services.suggest_topics()
    assert "general topics" in mock_provider.prompts_for("topics")[0]


async def test_empty_topic_list_is_service_failure(sample_prompts_config):
    provider = MockProvider(replies={"topics": '{"topics": []}'})
    services = DebateServices({s: provider for s in SERVICE_NAMES}, sample_prompts_config)
    with pytest.raises(ServiceFailure, match="topics"):
        await services.suggest_topics()


async def test_generate_argument_at_skill(services, mock_provider):
    text = await services.generate_argument("School start times", ReasoningSkill.BEGINNER)
    assert text == "Schools should start later because teenagers sleep later."
    prompt = mock_provider.prompts_for("argument")[0]
    assert "School start times" in prompt
    assert "Beginner" in prompt
