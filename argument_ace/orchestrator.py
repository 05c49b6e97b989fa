"""Turn orchestration: user turn in, feedback and rebuttal out.

The caller keeps the active session in a SessionHolder. Every change the
orchestrator makes is a pure ``DebateSession -> DebateSession`` function
applied through the holder, so a result that arrives late (speech audio,
a slow verdict) is merged into whatever snapshot is current at that
moment, and a result for a session that has since been replaced is
dropped.
"""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timezone

from argument_ace.errors import ServiceFailure, ValidationError
from argument_ace.formats import get_format, opponent_role
from argument_ace.models import (
    DebateFormat,
    DebateSession,
    DebateTurn,
    Draft,
    ReasoningSkill,
    ResearchBundle,
    Speaker,
    VerdictResult,
)
from argument_ace.services import DebateServices
from argument_ace.speech import SpeechSynthesizer
from argument_ace.store import SessionStore
from argument_ace.transcript import (
    append_turn,
    attach_audio,
    attach_feedback,
    find_turn,
    format_transcript,
    next_timestamp,
    remove_turn,
)

logger = logging.getLogger(__name__)

MIN_TURNS_FOR_JURY = 4
MIN_CHARS_FOR_POI = 150

SessionUpdater = Callable[[DebateSession], DebateSession]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionHolder:
    """The caller's current session snapshot plus the in-progress draft."""

    def __init__(
        self,
        session: DebateSession,
        on_change: Callable[[DebateSession], None] | None = None,
    ) -> None:
        self.session = session
        self.draft = Draft()
        self._on_change = on_change

    def apply(self, updater: SessionUpdater) -> DebateSession:
        updated = updater(self.session)
        if updated is not self.session:
            self.session = updated
            if self._on_change:
                self._on_change(updated)
        return self.session

    def replace_session(self, session: DebateSession) -> None:
        """Switch to a different session. Results still in flight for the old one are dropped."""
        self.draft = Draft()
        self.apply(lambda _: session)


def _for_session(key: str, updater: SessionUpdater) -> SessionUpdater:
    """Wrap ``updater`` so it only touches the session with ``key``."""
    def guarded(session: DebateSession) -> DebateSession:
        if session.key != key:
            logger.info("Dropping result for replaced session %s", key)
            return session
        return updater(session)
    return guarded


class TurnOrchestrator:
    """Sequences service calls per turn and keeps the transcript consistent."""

    def __init__(
        self,
        services: DebateServices,
        speech: SpeechSynthesizer | None = None,
        store: SessionStore | None = None,
        min_turns_for_jury: int = MIN_TURNS_FOR_JURY,
        min_chars_for_poi: int = MIN_CHARS_FOR_POI,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._services = services
        self._speech = speech
        self._store = store
        self._min_turns_for_jury = min_turns_for_jury
        self._min_chars_for_poi = min_chars_for_poi
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._background: set[asyncio.Task] = set()

    # -- session lifecycle ---------------------------------------------------

    def start_topic(
        self,
        topic: str,
        skill: ReasoningSkill = ReasoningSkill.INTERMEDIATE,
        debate_format: DebateFormat = DebateFormat.STANDARD,
        role: str | None = None,
    ) -> DebateSession:
        """Create a fresh in-memory session for ``topic``.

        Raises:
            ValidationError: Empty topic, or a role the format does not have.
        """
        topic = topic.strip()
        if not topic:
            raise ValidationError("A debate topic is required")
        info = get_format(debate_format)
        if role and info.roles and info.role(role) is None:
            raise ValidationError(f"Unknown role for {info.display_name}: {role}")
        return DebateSession(
            topic=topic,
            reasoning_skill=skill,
            debate_format=DebateFormat(debate_format),
            current_role=role or None,
        )

    def change_topic(self, holder: SessionHolder, topic: str, **kwargs) -> DebateSession:
        holder.replace_session(self.start_topic(topic, **kwargs))
        return holder.session

    @asynccontextmanager
    async def _exclusive(self, session: DebateSession, action: str) -> AsyncIterator[None]:
        """Hold the session's request lock, or fail at once if it is taken.

        Requests never queue on the lock, so the entry is dropped on release.
        """
        lock = self._locks.setdefault(session.key, asyncio.Lock())
        if lock.locked():
            raise ValidationError(f"Cannot {action}: another request is still in flight for this session")
        try:
            async with lock:
                yield
        finally:
            if not lock.locked() and self._locks.get(session.key) is lock:
                del self._locks[session.key]

    # -- turns -----------------------------------------------------------------

    async def submit_turn(self, holder: SessionHolder, user_text: str) -> DebateSession:
        """Append the user's argument, then its feedback and the AI rebuttal.

        The user turn shows up in the holder immediately. Analysis and
        counter-argument run concurrently; if either fails the user turn
        is removed again and ServiceFailure is raised. On success speech
        for the AI turn is requested in the background.

        Raises:
            ValidationError: Empty text/topic or a turn already in flight.
            ServiceFailure: Analysis or counter-argument failed.
        """
        base = holder.session
        text = user_text.strip()
        if not base.topic.strip():
            raise ValidationError("A debate topic is required")
        if not text:
            raise ValidationError("Argument text is required")
        async with self._exclusive(base, "submit a turn"):
            user_turn = DebateTurn(
                speaker=Speaker.USER,
                text=text,
                timestamp=next_timestamp(base.debate_log, self._clock()),
                role=base.current_role,
            )
            with_user = holder.apply(lambda s: append_turn(s, user_turn))
            ai_role = opponent_role(base.debate_format, base.current_role)
            logger.info("Turn %d submitted for %r", len(with_user.debate_log), base.topic)

            def rollback() -> None:
                holder.apply(_for_session(base.key, lambda s: remove_turn(s, user_turn.timestamp)))

            try:
                results = await asyncio.gather(
                    self._services.analyze_argument(text, base.topic),
                    self._services.generate_counter_argument(
                        base.topic,
                        format_transcript(with_user.debate_log),
                        base.reasoning_skill,
                        base.current_role,
                        ai_role,
                    ),
                    return_exceptions=True,
                )
            except asyncio.CancelledError:
                rollback()
                logger.info("Turn cancelled for %r", base.topic)
                raise
            failure = next((r for r in results if isinstance(r, BaseException)), None)
            if failure is not None:
                rollback()
                logger.warning("Turn rolled back: %s", failure)
                if isinstance(failure, ServiceFailure):
                    raise failure
                raise ServiceFailure("turn", f"Unexpected error: {failure}") from failure
            feedback, counter_argument = results

            current = holder.session
            if current.key != base.key or find_turn(current, user_turn.timestamp) is None:
                logger.info("Discarding turn result for %r: session changed while waiting", base.topic)
                return current

            ai_turn = DebateTurn(
                speaker=Speaker.AI,
                text=counter_argument,
                timestamp=next_timestamp(current.debate_log, self._clock()),
                role=ai_role,
            )
            committed = holder.apply(
                lambda s: append_turn(attach_feedback(s, user_turn.timestamp, feedback), ai_turn)
            )
            holder.draft = Draft()

        self._schedule_speech(holder, base.key, ai_turn)
        return committed

    def _schedule_speech(self, holder: SessionHolder, key: str, turn: DebateTurn) -> None:
        if self._speech is None:
            return
        task = asyncio.create_task(self._attach_speech(holder, key, turn))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _attach_speech(self, holder: SessionHolder, key: str, turn: DebateTurn) -> None:
        try:
            audio_ref = await self._speech.synthesize(turn.text, turn.role)
        except Exception as exc:
            # Audio is optional: the turn stays readable without it
            logger.warning("Speech synthesis failed for turn at %s: %s", turn.timestamp.isoformat(), exc)
            return
        holder.apply(_for_session(key, lambda s: attach_audio(s, turn.timestamp, audio_ref)))
        logger.debug("Audio attached to turn at %s", turn.timestamp.isoformat())

    async def drain(self) -> None:
        """Wait for all background speech tasks, including ones started meanwhile."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # -- verdict, research, POI ---------------------------------------------

    async def request_verdict(self, holder: SessionHolder) -> VerdictResult:
        """Ask the jury for a verdict on the whole transcript.

        Raises:
            ValidationError: Too few turns, or a turn is in flight.
            ServiceFailure: The verdict call failed; any previous verdict is kept.
        """
        base = holder.session
        if len(base.debate_log) < self._min_turns_for_jury:
            raise ValidationError(
                f"At least {self._min_turns_for_jury} turns are needed for a verdict, "
                f"got {len(base.debate_log)}"
            )
        async with self._exclusive(base, "request a verdict"):
            verdict = await self._services.judge_debate(
                base.topic, format_transcript(base.debate_log), base.current_role
            )
            holder.apply(_for_session(base.key, lambda s: replace(s, verdict=verdict)))
        logger.info("Verdict for %r: %s (%+g)", base.topic, verdict.winner.value, verdict.final_score)
        return verdict

    async def research_topic(self, holder: SessionHolder) -> ResearchBundle:
        """Fetch pro/con points for the topic. On failure the old bundle is kept."""
        base = holder.session
        if not base.topic.strip():
            raise ValidationError("A debate topic is required")
        bundle = await self._services.research_topic(base.topic)
        holder.apply(_for_session(base.key, lambda s: replace(s, research=bundle)))
        return bundle

    async def generate_argument(self, holder: SessionHolder) -> str:
        """Write an example argument at the session's skill level into the draft."""
        base = holder.session
        if not base.topic.strip():
            raise ValidationError("A debate topic is required")
        argument = await self._services.generate_argument(base.topic, base.reasoning_skill)
        if holder.session.key != base.key:
            logger.info("Dropping generated argument for replaced session %s", base.key)
            return argument
        holder.draft = Draft(text=argument)
        return argument

    async def request_point_of_information(self, holder: SessionHolder, draft_text: str) -> str:
        """Have the opponent interject on the draft. Stored on the draft, not the transcript."""
        base = holder.session
        if len(draft_text.strip()) < self._min_chars_for_poi:
            raise ValidationError(
                f"Write at least {self._min_chars_for_poi} characters before asking for a POI"
            )
        if not base.topic.strip():
            raise ValidationError("A debate topic is required")
        question = await self._services.generate_poi(base.topic, draft_text)
        if holder.session.key != base.key:
            logger.info("Dropping POI for replaced session %s", base.key)
            return question
        holder.draft = Draft(text=draft_text, poi=question)
        return question

    def answer_point_of_information(self, holder: SessionHolder, response: str) -> Draft:
        """Fold the user's answer into the draft and clear the POI."""
        if holder.draft.poi is None:
            raise ValidationError("There is no Point of Information to answer")
        response = response.strip()
        if not response:
            raise ValidationError("A POI response is required")
        holder.draft = Draft(text=f"{holder.draft.text}\n\n[POI Response]: {response}")
        return holder.draft

    def decline_point_of_information(self, holder: SessionHolder) -> Draft:
        holder.draft = replace(holder.draft, poi=None)
        return holder.draft

    # -- persistence -------------------------------------------------------------

    def _require_store(self) -> SessionStore:
        if self._store is None:
            raise ValueError("No session store configured")
        return self._store

    async def save(self, holder: SessionHolder) -> DebateSession:
        """Create or update the stored record and copy its id back into the holder."""
        store = self._require_store()
        session = holder.session
        if not session.topic.strip() and not session.debate_log:
            raise ValidationError("Nothing to save: no topic and no turns")
        saved = await store.save(session)
        return holder.apply(_for_session(saved.key, lambda s: replace(
            s,
            id=saved.id,
            updated_at=saved.updated_at,
            share_id=saved.share_id,
            public_url=saved.public_url,
        )))

    async def share(self, holder: SessionHolder) -> tuple[str, str]:
        """Publish the current session once and record the share id locally.

        Raises:
            StaleWriteError: The session was already published.
            ValidationError: Another request for this session is in flight.
        """
        store = self._require_store()
        session = holder.session
        async with self._exclusive(session, "publish"):
            share_id, public_url = await store.publish(session)
            holder.apply(_for_session(session.key, lambda s: replace(s, share_id=share_id, public_url=public_url)))
            if holder.session.id:
                await self.save(holder)
        return share_id, public_url

    async def load(self, holder: SessionHolder, session_id: str) -> DebateSession | None:
        """Replace the holder's session with a stored one; None if it does not exist."""
        session = await self._require_store().load(session_id)
        if session is None:
            return None
        holder.replace_session(replace(session, key=uuid.uuid4().hex))
        return holder.session
