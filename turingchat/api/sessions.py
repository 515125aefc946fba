"""
Sessions API.

POST /session/join      — Join or create a session
POST /session/leave     — Leave the current session
POST /session/answer    — Guess human vs bot, then leave
GET  /session/{user_id} — Current session snapshot
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.dependencies import get_registry
from ..models.session import JoinStatus, SessionKind
from ..services.registry import SessionRegistry

logger = logging.getLogger(__name__)

sessions_router = APIRouter(prefix="/session", tags=["sessions"])


class JoinSessionRequest(BaseModel):
    user_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)


class JoinSessionResponse(BaseModel):
    success: bool = True
    message: str
    status: JoinStatus
    session_id: str
    participants: list[str] = []


class LeaveSessionRequest(BaseModel):
    user_id: str = Field(min_length=1)


class ApiResponse(BaseModel):
    success: bool
    message: str


class SubmitAnswerRequest(BaseModel):
    user_id: str = Field(min_length=1)
    guess: SessionKind


class SubmitAnswerResponse(BaseModel):
    correct: bool
    actual: SessionKind


class SessionInfoResponse(BaseModel):
    session_id: str
    participants: list[str]
    message_count: int
    kind: SessionKind


_JOIN_MESSAGES = {
    JoinStatus.ALREADY_IN: "Already in session",
    JoinStatus.WAITING: "Joined session {session_id}, waiting for another participant",
    JoinStatus.JOINED: "Joined session {session_id}",
}


@sessions_router.post("/join", response_model=JoinSessionResponse)
async def join_session(
    request: JoinSessionRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    """Join a session by id. Unknown ids are created on the fly."""
    result = await registry.join_or_create(request.user_id, request.session_id)
    return JoinSessionResponse(
        message=_JOIN_MESSAGES[result.status].format(session_id=result.session_id),
        status=result.status,
        session_id=result.session_id,
        participants=result.participants,
    )


@sessions_router.post("/leave", response_model=ApiResponse)
async def leave_session(
    request: LeaveSessionRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    await registry.leave_session(request.user_id)
    return ApiResponse(success=True, message="Left session successfully")


@sessions_router.post("/answer", response_model=SubmitAnswerResponse)
async def submit_answer(
    request: SubmitAnswerRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    """Guess whether the partner was human or ai. Ends the caller's participation."""
    result = await registry.submit_answer(request.user_id, request.guess)
    return SubmitAnswerResponse(correct=result.correct, actual=result.kind)


@sessions_router.get("/{user_id}", response_model=SessionInfoResponse)
async def get_session_info(
    user_id: str,
    registry: SessionRegistry = Depends(get_registry),
):
    info = await registry.get_session_info(user_id)
    return SessionInfoResponse(
        session_id=info.session_id,
        participants=info.participants,
        message_count=info.message_count,
        kind=info.kind,
    )
