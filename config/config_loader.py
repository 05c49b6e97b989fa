"""Load settings.yaml into typed dataclasses. Validates API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

SERVICE_NAMES = ("analysis", "counter_argument", "verdict", "research", "poi", "topics", "argument")


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class PromptsConfig:
    analysis: str
    counter_argument: str
    verdict: str
    research: str
    poi: str
    topics: str
    argument: str


@dataclass
class SpeechConfig:
    enabled: bool
    model: str
    voice: str
    api_key_env: str
    timeout_sec: int
    role_voices: dict[str, str] = field(default_factory=dict)


@dataclass
class DefaultsConfig:
    reasoning_skill: str
    min_turns_for_jury: int
    min_chars_for_poi: int
    share_origin: str
    data_dir: Path
    report_dir: Path
    audio_dir: Path
    speech_time_sec: int = 420


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    services: dict[str, str]
    speech: SpeechConfig
    prompts: PromptsConfig
    available_providers: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError if a
    service points at a provider that is not declared under ``models``.
    Logs missing API keys but does not raise; callers check
    available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        reasoning_skill=str(defaults_raw.get("reasoning_skill", "Intermediate")),
        min_turns_for_jury=int(defaults_raw.get("min_turns_for_jury", 4)),
        min_chars_for_poi=int(defaults_raw.get("min_chars_for_poi", 150)),
        share_origin=str(defaults_raw["share_origin"]).rstrip("/"),
        data_dir=Path(defaults_raw["data_dir"]),
        report_dir=Path(defaults_raw["report_dir"]),
        audio_dir=Path(defaults_raw["audio_dir"]),
        speech_time_sec=int(defaults_raw.get("speech_time_sec", 420)),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(**{name: prompts_raw[name] for name in SERVICE_NAMES})

    speech_raw = raw.get("speech", {})
    speech = SpeechConfig(
        enabled=bool(speech_raw.get("enabled", False)),
        model=str(speech_raw.get("model", "tts-1")),
        voice=str(speech_raw.get("voice", "alloy")),
        api_key_env=str(speech_raw.get("api_key_env", "OPENAI_API_KEY")),
        timeout_sec=int(speech_raw.get("timeout_sec", 60)),
        role_voices={k: str(v) for k, v in speech_raw.get("role_voices", {}).items()},
    )

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s (set %s in .env)",
                provider_name,
                model_raw["api_key_env"],
            )

    services_raw = raw.get("services", {})
    services: dict[str, str] = {}
    for service in SERVICE_NAMES:
        provider_name = str(services_raw.get(service, next(iter(models), "")))
        if provider_name not in models:
            raise ValueError(f"Service '{service}' uses unknown provider '{provider_name}'")
        services[service] = provider_name

    return AppConfig(
        defaults=defaults,
        models=models,
        services=services,
        speech=speech,
        prompts=prompts,
        available_providers=available_providers,
    )
