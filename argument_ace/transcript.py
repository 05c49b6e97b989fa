"""Pure transcript operations over DebateSession snapshots.

Every function returns a new session; turns are located by timestamp,
never by position, so a patch lands on the right turn even after the
log has grown or been copied.
"""

from dataclasses import replace
from datetime import datetime, timedelta

from argument_ace.models import AnalysisResult, DebateSession, DebateTurn, Speaker

_TICK = timedelta(microseconds=1)


def next_timestamp(log: tuple[DebateTurn, ...], now: datetime) -> datetime:
    """Return ``now``, bumped past the newest turn when the clock has not advanced."""
    if log and now <= log[-1].timestamp:
        return log[-1].timestamp + _TICK
    return now


def append_turn(session: DebateSession, turn: DebateTurn) -> DebateSession:
    """Append a turn.

    Raises:
        ValueError: If the turn would not be strictly newer than the last one.
    """
    if session.debate_log and turn.timestamp <= session.debate_log[-1].timestamp:
        raise ValueError(
            f"Turn timestamp {turn.timestamp.isoformat()} is not after "
            f"{session.debate_log[-1].timestamp.isoformat()}"
        )
    return replace(session, debate_log=session.debate_log + (turn,))


def find_turn(session: DebateSession, timestamp: datetime) -> DebateTurn | None:
    return next((t for t in session.debate_log if t.timestamp == timestamp), None)


def _patch_turn(session: DebateSession, timestamp: datetime, **changes) -> DebateSession:
    if find_turn(session, timestamp) is None:
        return session
    log = tuple(
        replace(t, **changes) if t.timestamp == timestamp else t
        for t in session.debate_log
    )
    return replace(session, debate_log=log)


def attach_feedback(
    session: DebateSession, timestamp: datetime, feedback: AnalysisResult
) -> DebateSession:
    return _patch_turn(session, timestamp, feedback=feedback)


def attach_audio(session: DebateSession, timestamp: datetime, audio_ref: str) -> DebateSession:
    """Set audio on the turn at ``timestamp``; unchanged if no such turn exists."""
    return _patch_turn(session, timestamp, audio_ref=audio_ref)


def remove_turn(session: DebateSession, timestamp: datetime) -> DebateSession:
    log = tuple(t for t in session.debate_log if t.timestamp != timestamp)
    if len(log) == len(session.debate_log):
        return session
    return replace(session, debate_log=log)


def speaker_label(turn: DebateTurn) -> str:
    label = "User" if turn.speaker is Speaker.USER else "AI"
    return f"{label} ({turn.role})" if turn.role else label


def format_transcript(log: tuple[DebateTurn, ...] | list[DebateTurn]) -> str:
    """Render turns as ``Speaker (Role): "text"`` blocks separated by blank lines."""
    return "\n\n".join(f'{speaker_label(t)}: "{t.text}"' for t in log)


def last_feedback(session: DebateSession) -> AnalysisResult | None:
    """Feedback of the most recent user turn that has any."""
    for turn in reversed(session.debate_log):
        if turn.speaker is Speaker.USER and turn.feedback is not None:
            return turn.feedback
    return None
