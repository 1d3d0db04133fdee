"""API routes for the AI assistant conversation."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from expenser.core.context import AppServices, get_services
from expenser.core.session import get_current_user
from expenser.domain.chat.schemas import ChatConversation, ChatRequest
from expenser.domain.chat.services import QUICK_QUESTIONS, ChatBusyError
from expenser.domain.users.schemas import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat")


def _conversation(services: AppServices, identity: Identity) -> ChatConversation:
    return ChatConversation(
        messages=services.chat.messages(identity),
        quick_questions=list(QUICK_QUESTIONS),
        pending=services.chat.is_pending(identity),
    )


@router.get("/messages", response_model=ChatConversation)
async def get_messages(
    identity: Identity = Depends(get_current_user),
    services: AppServices = Depends(get_services),
) -> ChatConversation:
    return _conversation(services, identity)


@router.post("/messages", response_model=ChatConversation)
async def send_message(
    payload: ChatRequest,
    identity: Identity = Depends(get_current_user),
    services: AppServices = Depends(get_services),
) -> ChatConversation:
    """Send one message and return the conversation including the reply."""
    try:
        await services.chat.send(identity, payload.message)
    except ChatBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _conversation(services, identity)
