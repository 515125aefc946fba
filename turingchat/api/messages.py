"""
Messages API — client-driven polling.

POST /message/send                — Send to the session partner
GET  /receive/{user_id}           — Drain messages addressed to the caller
GET  /messages/pending/{user_id}  — Count messages waiting for the caller
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..core.dependencies import get_registry
from ..services.registry import SessionRegistry

logger = logging.getLogger(__name__)

messages_router = APIRouter(tags=["messages"])


class SendMessageRequest(BaseModel):
    user_id: str = Field(min_length=1)
    message: str


class SendMessageResponse(BaseModel):
    success: bool = True
    message: str = "Message sent successfully"


class MessageOut(BaseModel):
    sender_id: str
    message: str
    timestamp: str


class ReceivedMessagesResponse(BaseModel):
    messages: list[MessageOut] = []


class PendingCountResponse(BaseModel):
    count: int


@messages_router.post("/message/send", response_model=SendMessageResponse)
async def send_message(
    request: SendMessageRequest,
    registry: SessionRegistry = Depends(get_registry),
):
    """Send a message. Against a bot, returns once the bot's reply is queued."""
    await registry.send_message(request.user_id, request.message)
    return SendMessageResponse()


@messages_router.get("/receive/{user_id}", response_model=ReceivedMessagesResponse)
async def receive_messages(
    user_id: str,
    registry: SessionRegistry = Depends(get_registry),
):
    """Each message is returned to its recipient once, then dropped."""
    messages = await registry.receive_messages(user_id)
    return ReceivedMessagesResponse(
        messages=[
            MessageOut(
                sender_id=m.sender_id,
                message=m.text,
                timestamp=m.timestamp.isoformat(),
            )
            for m in messages
        ]
    )


@messages_router.get("/messages/pending/{user_id}", response_model=PendingCountResponse)
async def get_pending_count(
    user_id: str,
    registry: SessionRegistry = Depends(get_registry),
):
    return PendingCountResponse(count=await registry.get_pending_count(user_id))
