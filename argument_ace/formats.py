"""Debate formats, speaking roles and the opponent role table."""

from dataclasses import dataclass, field

from argument_ace.models import DebateFormat


@dataclass(frozen=True)
class SpeakingRole:
    name: str
    description: str
    speaking_minutes: int
    position: str          # "government" or "opposition"


@dataclass(frozen=True)
class FormatInfo:
    display_name: str
    description: str
    prep_minutes: int
    roles: tuple[SpeakingRole, ...] = field(default_factory=tuple)

    @property
    def prep_seconds(self) -> int:
        return self.prep_minutes * 60

    def role(self, name: str) -> SpeakingRole | None:
        return next((r for r in self.roles if r.name == name), None)


ASIAN_PARLIAMENTARY_ROLES = (
    SpeakingRole("Prime Minister", "Defines the motion and opens the Government case.", 7, "government"),
    SpeakingRole("Leader of Opposition", "Rebuts the Prime Minister and opens the Opposition case.", 7, "opposition"),
    SpeakingRole("Deputy Prime Minister", "Rebuts the Leader of Opposition and extends the Government case.", 7, "government"),
    SpeakingRole("Deputy Leader of Opposition", "Rebuts the Deputy Prime Minister and extends the Opposition case.", 7, "opposition"),
    SpeakingRole("Government Whip", "Rebuts the Opposition and summarises the Government case.", 7, "government"),
    SpeakingRole("Opposition Whip", "Rebuts the Government and summarises the Opposition case.", 7, "opposition"),
    SpeakingRole("Opposition Reply", "Summarises the debate from the Opposition side.", 4, "opposition"),
    SpeakingRole("Government Reply", "Summarises the debate from the Government side.", 4, "government"),
)

# Which role the AI takes when the user speaks as the key role
_OPPONENT_ROLES = {
    "Prime Minister": "Leader of Opposition",
    "Leader of Opposition": "Deputy Prime Minister",
    "Deputy Prime Minister": "Deputy Leader of Opposition",
    "Deputy Leader of Opposition": "Government Whip",
    "Government Whip": "Opposition Whip",
    "Opposition Whip": "Government Reply",
    "Government Reply": "Opposition Reply",
    "Opposition Reply": "Prime Minister",
}

FORMATS: dict[DebateFormat, FormatInfo] = {
    DebateFormat.STANDARD: FormatInfo(
        display_name="Standard Debate",
        description="A flexible debate format with no specific roles or time constraints.",
        prep_minutes=0,
    ),
    DebateFormat.ASIAN_PARLIAMENTARY: FormatInfo(
        display_name="Asian Parliamentary",
        description="A formal format with 8 speeches, including substantive and reply speeches.",
        prep_minutes=15,
        roles=ASIAN_PARLIAMENTARY_ROLES,
    ),
    DebateFormat.BRITISH_PARLIAMENTARY: FormatInfo(
        display_name="British Parliamentary",
        description="A formal format with 8 speeches from 4 teams, common in university competitions.",
        prep_minutes=15,
    ),
}


def get_format(debate_format: DebateFormat | str) -> FormatInfo:
    """Look up a format by enum or its string value.

    Raises:
        ValueError: For an unknown format name.
    """
    try:
        return FORMATS[DebateFormat(debate_format)]
    except ValueError:
        raise ValueError(
            f"Unknown format: {debate_format}. Available: {[f.value for f in FORMATS]}"
        ) from None


def opponent_role(debate_format: DebateFormat, user_role: str | None) -> str | None:
    """Return the AI's role for the user's role, or None outside role-based formats."""
    if debate_format is not DebateFormat.ASIAN_PARLIAMENTARY or not user_role:
        return None
    return _OPPONENT_ROLES.get(user_role)
