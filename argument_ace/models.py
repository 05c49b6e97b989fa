"""Frozen dataclasses for debate sessions. No logic, no deps."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Speaker(str, Enum):
    USER = "user"
    AI = "ai"


class ReasoningSkill(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class Winner(str, Enum):
    USER = "user"
    AI = "ai"
    TIE = "tie"


class DebateFormat(str, Enum):
    STANDARD = "standard"
    ASIAN_PARLIAMENTARY = "asian-parliamentary"
    BRITISH_PARLIAMENTARY = "british-parliamentary"


@dataclass(frozen=True)
class AnalysisResult:
    feedback: str
    fallacies: tuple[str, ...] = ()
    persuasive_techniques: tuple[str, ...] = ()
    counterpoints: tuple[str, ...] = ()


@dataclass(frozen=True)
class DebateTurn:
    speaker: Speaker
    text: str
    timestamp: datetime    # ordering key, strictly increasing per session
    feedback: AnalysisResult | None = None
    audio_ref: str | None = None
    role: str | None = None


@dataclass(frozen=True)
class Clash:
    point: str
    summary: str
    winner: Winner
    winner_score: float    # -5 (AI) .. +5 (user)
    reasoning: str


@dataclass(frozen=True)
class VerdictResult:
    overall_assessment: str
    clashes: tuple[Clash, ...]
    final_score: float
    winner: Winner
    user_strengths: tuple[str, ...] = ()
    user_weaknesses: tuple[str, ...] = ()
    ai_strengths: tuple[str, ...] = ()
    ai_weaknesses: tuple[str, ...] = ()
    advice: str | None = None


@dataclass(frozen=True)
class ResearchBundle:
    pro_points: tuple[str, ...]
    con_points: tuple[str, ...]
    key_facts: tuple[str, ...] = ()


@dataclass(frozen=True)
class DebateSession:
    topic: str
    reasoning_skill: ReasoningSkill = ReasoningSkill.INTERMEDIATE
    debate_log: tuple[DebateTurn, ...] = ()
    research: ResearchBundle | None = None
    verdict: VerdictResult | None = None
    id: str | None = None                  # assigned on first save
    updated_at: datetime | None = None
    share_id: str | None = None            # assigned on publish only
    public_url: str | None = None
    debate_format: DebateFormat = DebateFormat.STANDARD
    current_role: str | None = None
    prep_time_used: float = 0.0
    key: str = field(default_factory=lambda: uuid.uuid4().hex)   # in-memory identity


@dataclass(frozen=True)
class Draft:
    text: str = ""
    poi: str | None = None


@dataclass(frozen=True)
class TimerState:
    total_duration: float
    remaining: float
    started_at: float | None = None        # wall-clock epoch seconds
    paused_accumulated_seconds: float = 0.0
    running: bool = False
    paused: bool = False
    completed: bool = False


@dataclass(frozen=True)
class ModelResponse:
    provider: str          # "gemini", "claude", "openai"
    model: str             # actual model string used
    purpose: str           # service that asked: "analysis", "verdict", ...
    content: str
    latency_sec: float
    token_count: int | None
