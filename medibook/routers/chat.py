"""Chat widget router."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict, Field

from medibook.services.chatbot import generate_reply
from medibook.services.session import (
    append_history,
    delete_session,
    get_history,
    load_session,
    save_session,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter()


class ChatRequest(BaseModel):
    """Inbound message from the chat widget."""

    model_config = ConfigDict(str_strip_whitespace=True)

    session_id: str = Field(min_length=1)
    message_text: str = Field(min_length=1)


class ChatResponse(BaseModel):
    session_id: str
    reply_to_user: str
    topic: str


class ChatHistoryResponse(BaseModel):
    session_id: str
    history: List[Dict[str, Any]]


@router.post("/chat", response_model=ChatResponse)
def handle_chat_message(payload: ChatRequest) -> ChatResponse:
    """Answer a widget message and record both turns in the session."""

    LOGGER.debug("Processing chat message for session=%s", payload.session_id)

    session_state = load_session(payload.session_id)
    append_history(session_state, "user", payload.message_text)

    reply = generate_reply(payload.message_text)
    append_history(session_state, "assistant", reply.reply_to_user)
    session_state.setdefault("metadata", {})["last_topic"] = reply.topic

    save_session(payload.session_id, session_state)

    return ChatResponse(
        session_id=payload.session_id,
        reply_to_user=reply.reply_to_user,
        topic=reply.topic,
    )


@router.get("/chat/{session_id}", response_model=ChatHistoryResponse)
def read_chat_history(session_id: str) -> ChatHistoryResponse:
    session_state = load_session(session_id)
    return ChatHistoryResponse(session_id=session_id, history=get_history(session_state))


@router.delete("/chat/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def reset_chat_session(session_id: str) -> None:
    """Forget a conversation; the next message starts from the greeting."""

    delete_session(session_id)
    LOGGER.debug("Chat session %s reset", session_id)
