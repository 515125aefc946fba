"""
Session registry — matching, message relay and teardown for two-party chats.

All state is in memory and private to the registry:
  - sessions:      session_id → Session (participants, outbox, transcript, kind)
  - user_sessions: user_id → session_id (humans only; the bot is not durable)
  - locks:         session_id → asyncio.Lock, kept while the session lives
                   or someone holds or waits on it

Every operation that mutates a session holds that session's lock. Structural
updates never await, so they are atomic on the event loop. send_message keeps
the lock across reply generation, so a session's user message and bot reply
land together while other sessions keep moving.
"""

import asyncio
import logging
import uuid
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Optional

from ..core.config import get_settings
from ..core.errors import (
    FailedPrecondition,
    Internal,
    InvalidArgument,
    NotFound,
    ResourceExhausted,
)
from ..core.guardrails import check_input, check_output
from ..models.session import (
    AnswerResult,
    AutomatedMessage,
    HumanMessage,
    JoinResult,
    JoinStatus,
    SendResult,
    Session,
    SessionInfo,
    SessionKind,
    StoredMessage,
)
from .reply import ReplyGenerator

logger = logging.getLogger(__name__)

MAX_PARTICIPANTS = 2


class SessionRegistry:
    """Owns every live session. Only the public coroutines below touch state."""

    def __init__(
        self,
        reply_generator: ReplyGenerator,
        human_prefix: Optional[str] = None,
        bot_prefix: Optional[str] = None,
        reply_timeout: Optional[float] = None,
        fallback_reply: Optional[str] = None,
    ):
        settings = get_settings()
        self._reply_generator = reply_generator
        self.human_prefix = human_prefix if human_prefix is not None else settings.human_session_prefix
        self.bot_prefix = bot_prefix or settings.bot_id_prefix
        self.reply_timeout = reply_timeout if reply_timeout is not None else settings.reply_timeout_seconds
        self.fallback_reply = fallback_reply or settings.fallback_reply

        self._sessions: dict[str, Session] = {}
        self._user_sessions: dict[str, str] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}

    # ── Locking ──────────────────────────────────────────────────────

    @asynccontextmanager
    async def _locked(self, session_id: str) -> AsyncIterator[None]:
        """
        Hold the lock for a session id. The lock is dropped from the map once
        its session is gone and nobody holds or waits on it.
        """
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._lock_holders[session_id] = self._lock_holders.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[session_id] -= 1
            if not self._lock_holders[session_id]:
                del self._lock_holders[session_id]
                if session_id not in self._sessions:
                    self._locks.pop(session_id, None)

    @asynccontextmanager
    async def _locked_all(self, session_ids: set[str]) -> AsyncIterator[None]:
        """Hold several session locks, taken in sorted order."""
        async with AsyncExitStack() as stack:
            for session_id in sorted(session_ids):
                await stack.enter_async_context(self._locked(session_id))
            yield

    @asynccontextmanager
    async def _locked_user(self, user_id: str) -> AsyncIterator[Optional[str]]:
        """Hold the lock of the caller's current session. Yields its id, or None."""
        while True:
            session_id = self._user_sessions.get(user_id)
            if session_id is None:
                yield None
                return
            async with self._locked(session_id):
                # The caller may have left or moved while we waited.
                if self._user_sessions.get(user_id) == session_id:
                    yield session_id
                    return

    # ── Helpers (call with the session lock held) ────────────────────

    def _validate_ids(self, user_id: str, session_id: str) -> None:
        if not user_id or not user_id.strip():
            raise InvalidArgument("user_id is required")
        if not session_id or not session_id.strip():
            raise InvalidArgument("session_id is required")
        if user_id.startswith(self.bot_prefix):
            raise InvalidArgument(f"user_id may not start with reserved prefix '{self.bot_prefix}'")

    def _kind_for(self, session_id: str) -> SessionKind:
        if session_id.startswith(self.human_prefix):
            return SessionKind.HUMAN
        return SessionKind.AUTOMATED

    def _new_bot_id(self) -> str:
        live = {s.bot_id for s in self._sessions.values() if s.bot_id}
        while True:
            bot_id = f"{self.bot_prefix}{uuid.uuid4().hex[:12]}"
            if bot_id not in live:
                return bot_id

    def _require_session(self, user_id: str, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            logger.error("User %s mapped to missing session %s", user_id, session_id)
            self._user_sessions.pop(user_id, None)
            raise Internal(f"Session {session_id} has no record")
        return session

    def _remove_participant(self, session: Session, user_id: str) -> None:
        if user_id in session.participants:
            session.participants.remove(user_id)
        self._user_sessions.pop(user_id, None)

        if not session.participants or session.kind is SessionKind.AUTOMATED:
            self._destroy(session)
        else:
            logger.info(
                "User %s left session %s (%d participant(s) remain)",
                user_id, session.session_id, len(session.participants),
            )

    def _destroy(self, session: Session) -> None:
        for participant in session.participants:
            if self._user_sessions.get(participant) == session.session_id:
                self._user_sessions.pop(participant)
        self._sessions.pop(session.session_id, None)
        logger.info(
            "Closed session %s (kind=%s, %d messages)",
            session.session_id, session.kind.value, len(session.transcript),
        )

    async def _generate_reply(self, session: Session, text: str) -> tuple[str, bool]:
        """Returns (reply_text, generated). generated=False means the fallback was used."""
        history = list(session.transcript[:-1])
        try:
            reply = await asyncio.wait_for(
                self._reply_generator.generate(session.session_id, history, text),
                timeout=self.reply_timeout or None,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Reply generation timed out after %.1fs (session=%s), using fallback",
                self.reply_timeout, session.session_id,
            )
            return self.fallback_reply, False
        except Exception as e:
            logger.warning("Reply generation failed (session=%s), using fallback: %s", session.session_id, e)
            return self.fallback_reply, False

        checked = check_output(reply)
        if not checked.allowed:
            logger.warning("Rejected generated reply (session=%s): %s", session.session_id, checked.reason)
            return self.fallback_reply, False
        return checked.modified_input or reply, True

    # ── Operations ───────────────────────────────────────────────────

    async def join_or_create(self, user_id: str, session_id: str) -> JoinResult:
        """
        Put user_id into session_id, creating the session if needed.

        New ids starting with the human prefix wait for a second human. Any
        other new id is completed at once by a synthesized bot participant.
        A user already in a different session leaves it, but only once the
        join is sure to succeed. A failed join changes nothing.
        """
        self._validate_ids(user_id, session_id)

        while True:
            current = self._user_sessions.get(user_id)
            lock_ids = {session_id} if current is None else {session_id, current}

            async with self._locked_all(lock_ids):
                if self._user_sessions.get(user_id) != current:
                    continue

                session = self._sessions.get(session_id)

                if session is not None and user_id in session.participants:
                    return JoinResult(
                        status=JoinStatus.ALREADY_IN,
                        session_id=session_id,
                        participants=list(session.participants),
                        kind=session.kind,
                    )

                if session is not None and len(session.participants) >= MAX_PARTICIPANTS:
                    raise ResourceExhausted(f"Session {session_id} is full")

                if current is not None and current != session_id:
                    logger.info("User %s switching from session %s to %s", user_id, current, session_id)
                    previous = self._sessions.get(current)
                    if previous is None:
                        self._user_sessions.pop(user_id, None)
                    else:
                        self._remove_participant(previous, user_id)

                if session is None:
                    kind = self._kind_for(session_id)
                    session = Session(session_id=session_id, kind=kind)
                    session.participants.append(user_id)
                    if kind is SessionKind.AUTOMATED:
                        session.bot_id = self._new_bot_id()
                        session.participants.append(session.bot_id)
                    self._sessions[session_id] = session
                    logger.info("Created session %s (kind=%s) for %s", session_id, kind.value, user_id)
                else:
                    session.participants.append(user_id)
                    logger.info("User %s joined session %s", user_id, session_id)

                self._user_sessions[user_id] = session_id

                return JoinResult(
                    status=JoinStatus.JOINED if session.is_ready else JoinStatus.WAITING,
                    session_id=session_id,
                    participants=list(session.participants),
                    kind=session.kind,
                )

    async def send_message(self, sender_id: str, text: str) -> SendResult:
        """
        Queue a message for the sender's partner.
        In AUTOMATED sessions the bot reply is generated and queued before returning.
        """
        async with self._locked_user(sender_id) as session_id:
            if session_id is None:
                raise NotFound(f"User {sender_id} is not in any session")
            session = self._require_session(sender_id, session_id)

            if not session.is_ready:
                raise FailedPrecondition("Waiting for another participant to join the session")

            guard = check_input(text, user_id=sender_id)
            if not guard.allowed:
                raise InvalidArgument(guard.reason or "Message rejected")

            session.append(HumanMessage(sender_id=sender_id, text=text))

            if session.kind is not SessionKind.AUTOMATED:
                return SendResult()

            try:
                reply, generated = await self._generate_reply(session, text)
            except asyncio.CancelledError:
                # The human message is already queued; it still gets its one reply.
                session.append(AutomatedMessage(sender_id=session.bot_id, text=self.fallback_reply))
                raise
            session.append(AutomatedMessage(sender_id=session.bot_id, text=reply))
            return SendResult(reply_generated=generated)

    async def receive_messages(self, user_id: str) -> list[StoredMessage]:
        """Return and discard every queued message not written by user_id."""
        async with self._locked_user(user_id) as session_id:
            if session_id is None:
                return []
            session = self._sessions.get(session_id)
            if session is None:
                return []

            delivered = [m for m in session.outbox if m.sender_id != user_id]
            session.outbox = [m for m in session.outbox if m.sender_id == user_id]
            return delivered

    async def submit_answer(self, user_id: str, guess: SessionKind) -> AnswerResult:
        """Score the guess against the session kind, then take the user out of the session."""
        try:
            guess = SessionKind(guess)
        except ValueError:
            raise InvalidArgument(f"guess must be one of: {', '.join(k.value for k in SessionKind)}")

        async with self._locked_user(user_id) as session_id:
            if session_id is None:
                raise NotFound(f"User {user_id} is not in any session")
            session = self._require_session(user_id, session_id)

            kind = session.kind
            correct = guess is kind
            logger.info("User %s guessed %s in session %s (correct=%s)", user_id, guess.value, session_id, correct)

            self._remove_participant(session, user_id)
            return AnswerResult(correct=correct, kind=kind)

    async def leave_session(self, user_id: str) -> None:
        if not await self._leave(user_id):
            raise NotFound(f"User {user_id} is not in any session")

    async def _leave(self, user_id: str) -> bool:
        async with self._locked_user(user_id) as session_id:
            if session_id is None:
                return False
            session = self._sessions.get(session_id)
            if session is None:
                self._user_sessions.pop(user_id, None)
                return True
            self._remove_participant(session, user_id)
            return True

    async def get_session_info(self, user_id: str) -> SessionInfo:
        session_id = self._user_sessions.get(user_id)
        if session_id is None:
            raise NotFound(f"User {user_id} is not in any session")
        session = self._require_session(user_id, session_id)
        return SessionInfo(
            session_id=session.session_id,
            participants=list(session.participants),
            message_count=len(session.outbox),
            kind=session.kind,
        )

    async def get_pending_count(self, user_id: str) -> int:
        session_id = self._user_sessions.get(user_id)
        if session_id is None:
            return 0
        session = self._sessions.get(session_id)
        if session is None:
            return 0
        return sum(1 for m in session.outbox if m.sender_id != user_id)

    def stats(self) -> dict:
        """Counts for the health endpoint."""
        return {
            "sessions": len(self._sessions),
            "waiting": sum(1 for s in self._sessions.values() if not s.is_ready),
            "users": len(self._user_sessions),
        }
