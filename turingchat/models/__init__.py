"""
Session records. Plain dataclasses, no database.
"""

from .session import (
    SessionKind,
    JoinStatus,
    HumanMessage,
    AutomatedMessage,
    StoredMessage,
    Session,
    JoinResult,
    SendResult,
    AnswerResult,
    SessionInfo,
)

__all__ = [
    "SessionKind",
    "JoinStatus",
    "HumanMessage", "AutomatedMessage", "StoredMessage",
    "Session",
    "JoinResult", "SendResult", "AnswerResult", "SessionInfo",
]
