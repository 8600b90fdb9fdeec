"""
Support and AI chat.

SUPPORT messages are stored for a human to pick up; AI messages are answered
immediately by the booking assistant and stored together with the reply.
"""
import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .ai_assistant import Assistant, get_assistant
from .core.db import get_session
from .core.request_context import RequestContext, get_request_context
from .models import Client, MessageChannel, SupportMessage

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)


class ChatMessageView(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: uuid.UUID
    channel: MessageChannel
    message: str
    ai_response: str | None = None
    created_at: datetime

    @classmethod
    def from_row(cls, row: SupportMessage) -> "ChatMessageView":
        return cls(
            id=row.id,
            channel=row.channel,
            message=row.user_message,
            ai_response=row.ai_response,
            created_at=row.created_at,
        )


async def save_message(
    db: AsyncSession,
    client_id: uuid.UUID,
    channel: MessageChannel,
    message: str,
    ai_response: str | None = None,
) -> SupportMessage:
    row = SupportMessage(client_id=client_id, channel=channel, user_message=message, ai_response=ai_response)
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return row


@router.post("/support", response_model=ChatMessageView, status_code=201)
async def send_support_message(
    request: ChatMessageRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    row = await save_message(db, ctx.client_id, MessageChannel.SUPPORT, request.message)
    logger.info(f"Support message {row.id} received from client {ctx.client_id}")
    return ChatMessageView.from_row(row)


@router.get("/support", response_model=list[ChatMessageView])
async def list_support_messages(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    """Caller's SUPPORT messages, newest first."""
    result = await db.execute(
        select(SupportMessage)
        .where(
            SupportMessage.client_id == ctx.client_id,
            SupportMessage.channel == MessageChannel.SUPPORT,
        )
        .order_by(SupportMessage.created_at.desc())
    )
    return [ChatMessageView.from_row(row) for row in result.scalars().all()]


@router.post("/ai", response_model=ChatMessageView, status_code=201)
async def ask_assistant(
    request: ChatMessageRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
    assistant: Assistant = Depends(get_assistant),
):
    """
    Ask the booking assistant. The caller's weekly availability is passed as context.

    Always answers: provider failures fall back to a canned reply.
    """
    availability = await db.scalar(select(Client.availability).where(Client.id == ctx.client_id))
    reply = await assistant.generate(request.message, availability)

    row = await save_message(db, ctx.client_id, MessageChannel.AI, request.message, ai_response=reply)
    logger.info(f"AI message {row.id} answered for client {ctx.client_id}")
    return ChatMessageView.from_row(row)
