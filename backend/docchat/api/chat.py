"""Streaming chat endpoint."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from docchat.core.auth import get_current_user_id
from docchat.core.errors import InvalidRequest
from docchat.services.chat import ChatOrchestrator, get_orchestrator

router = APIRouter()
logger = logging.getLogger(__name__)

CONVERSATION_HEADER = "X-Conversation-Id"


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    project_id: str | None = Field(default=None, alias="projectId")
    conversation_id: str | None = Field(default=None, alias="conversationId")
    model: str | None = None


async def read_chat_request(request: Request) -> ChatRequest:
    # Body is read by hand so authentication always runs before parsing
    try:
        return ChatRequest.model_validate(await request.json())
    except ValueError as e:
        logger.debug(f"Rejected chat body: {e}")
        raise InvalidRequest("Invalid request body") from e


@router.post("")
async def chat(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
):
    req = await read_chat_request(request)
    turn = orchestrator.start_turn(
        user_id,
        message=req.message,
        project_id=req.project_id,
        conversation_id=req.conversation_id,
        model=req.model,
    )
    return StreamingResponse(
        orchestrator.stream_reply(turn),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
            CONVERSATION_HEADER: turn.conversation_id,
        },
    )
