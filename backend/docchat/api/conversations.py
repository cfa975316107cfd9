"""REST API for conversation history management."""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from docchat.core.auth import get_current_user_id
from docchat.core.errors import NotFound
from docchat.models.conversation import ChatMessage, Conversation
from docchat.services.citations import load_sources
from docchat.services.conversation_store import ConversationStore, get_store

router = APIRouter()
logger = logging.getLogger(__name__)


class TitleUpdate(BaseModel):
    title: str | None = None


def conversation_to_dict(c: Conversation) -> dict:
    return {
        "id": c.id,
        "project_id": c.project_id,
        "title": c.title,
        "created_at": c.created_at.isoformat(),
        "updated_at": c.updated_at.isoformat(),
    }


def message_to_dict(m: ChatMessage) -> dict:
    return {
        "id": m.id,
        "conversation_id": m.conversation_id,
        "role": m.role,
        "content": m.content,
        "sources": load_sources(m.sources),
        "created_at": m.created_at.isoformat(),
    }


@router.get("/")
async def list_conversations(
    project_id: str | None = None,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_store),
):
    return [conversation_to_dict(c) for c in store.list_conversations(user_id, project_id)]


@router.get("/{conversation_id}")
async def get_conversation_messages(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_store),
):
    messages = store.list_messages(conversation_id, user_id)
    return [message_to_dict(m) for m in messages]


@router.patch("/{conversation_id}")
async def rename_conversation(
    conversation_id: str,
    body: TitleUpdate,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_store),
):
    conv = store.update_conversation_title(conversation_id, user_id, body.title or "")
    return conversation_to_dict(conv)


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_store),
):
    if not store.get_conversation(conversation_id, user_id):
        logger.debug(f"Delete: conversation {conversation_id} not found")
        raise NotFound("Conversation not found")
    store.delete_conversation(conversation_id, user_id)
    return {"success": True}
