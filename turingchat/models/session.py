"""
In-memory session records. Volatile for the life of the process.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionKind(str, Enum):
    """Who the human is talking to. Fixed when the session is created."""
    HUMAN = "human"
    AUTOMATED = "ai"


class JoinStatus(str, Enum):
    JOINED = "joined"
    WAITING = "waiting"
    ALREADY_IN = "already_in"


@dataclass(frozen=True)
class HumanMessage:
    sender_id: str
    text: str
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def is_automated(self) -> bool:
        return False


@dataclass(frozen=True)
class AutomatedMessage:
    sender_id: str
    text: str
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def is_automated(self) -> bool:
        return True


StoredMessage = Union[HumanMessage, AutomatedMessage]


@dataclass
class Session:
    """
    One two-party chat.

    outbox:     messages not yet consumed by their recipient (drained on receive)
    transcript: full history, append-only, used as reply-generation context
    bot_id:     synthesized participant for AUTOMATED sessions, else None
    """

    session_id: str
    kind: SessionKind
    participants: list[str] = field(default_factory=list)
    outbox: list[StoredMessage] = field(default_factory=list)
    transcript: list[StoredMessage] = field(default_factory=list)
    bot_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_ready(self) -> bool:
        return len(self.participants) == 2

    def append(self, message: StoredMessage) -> None:
        self.outbox.append(message)
        self.transcript.append(message)


@dataclass
class JoinResult:
    status: JoinStatus
    session_id: str
    participants: list[str]
    kind: SessionKind


@dataclass
class SendResult:
    delivered: bool = True
    reply_generated: bool = False   # False when the bot reply was the fallback text


@dataclass
class AnswerResult:
    correct: bool
    kind: SessionKind


@dataclass
class SessionInfo:
    session_id: str
    participants: list[str]
    message_count: int
    kind: SessionKind
