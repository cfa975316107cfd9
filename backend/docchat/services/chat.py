"""Retrieval-augmented chat orchestration.

A turn has two phases. ``start_turn`` runs before any response bytes are
sent: it validates the request, resolves the conversation and durably saves
the user message. ``stream_reply`` then produces the response body: context
retrieval, grounded generation, saving the assistant message, and finally the
trailing sources marker. The assistant message is only saved once the whole
reply has been produced, and the model provider is only built when a reply
actually needs one.
"""

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from fastapi import Depends

from docchat.core.errors import ChatError, GenerationFailure, InvalidRequest, NotFound
from docchat.services.citations import citations_from_passages
from docchat.services.conversation_store import ConversationStore, get_store, title_from_message
from docchat.services.llm import get_llm_provider
from docchat.services.llm.base import BaseLLMProvider
from docchat.services.prompting import RAG_SYSTEM_PROMPT, build_rag_prompt
from docchat.services.retrieval import ContextRetriever, get_retriever
from docchat.services.retrieval.base import TOP_K
from docchat.services.streaming import StreamTee

logger = logging.getLogger(__name__)

NO_DOCUMENTS_REPLY = "Attach a Document first"
SOURCES_MARKER = "\n\n__SOURCES__:"
ERROR_MARKER = "\n\n__ERROR__:"


def sources_marker(citations) -> str:
    return SOURCES_MARKER + json.dumps([c.to_dict() for c in citations], ensure_ascii=False)


def error_marker(message: str) -> str:
    return ERROR_MARKER + json.dumps({"error": message}, ensure_ascii=False)


@dataclass
class ChatTurn:
    user_id: str
    project_id: str
    conversation_id: str
    message: str
    model: str | None = None
    canned_reply: str | None = None


class ChatOrchestrator:
    def __init__(
        self,
        store: ConversationStore,
        retriever: ContextRetriever,
        llm_factory: Callable[[], BaseLLMProvider],
        top_k: int = TOP_K,
    ):
        self.store = store
        self.retriever = retriever
        self.top_k = top_k
        self._llm_factory = llm_factory
        self._llm: BaseLLMProvider | None = None

    @property
    def llm(self) -> BaseLLMProvider:
        """The model provider, built on first use so canned turns never need one."""
        if self._llm is None:
            self._llm = self._llm_factory()
        return self._llm

    def start_turn(
        self,
        user_id: str,
        message: str | None,
        project_id: str | None,
        conversation_id: str | None = None,
        model: str | None = None,
    ) -> ChatTurn:
        if not message or not message.strip() or not project_id:
            raise InvalidRequest("Message and project ID required")

        if not self.store.get_project(project_id, user_id):
            raise NotFound("Project not found")

        if conversation_id:
            conv = self.store.get_conversation(conversation_id, user_id)
            if not conv or conv.project_id != project_id:
                raise NotFound("Conversation not found")
        else:
            conversation_id = self.store.create_conversation(project_id, user_id, title_from_message(message))
            logger.info(f"Created conversation {conversation_id} in project {project_id}")

        # Saved before anything else can fail so the user's turn is never lost
        self.store.append_message(conversation_id, user_id, "user", message)

        turn = ChatTurn(
            user_id=user_id,
            project_id=project_id,
            conversation_id=conversation_id,
            message=message,
            model=model or None,
        )

        if self.store.count_ready_documents(project_id) == 0:
            logger.info(f"Project {project_id} has no ready documents; skipping retrieval and generation")
            self.store.append_message(conversation_id, user_id, "assistant", NO_DOCUMENTS_REPLY)
            turn.canned_reply = NO_DOCUMENTS_REPLY

        return turn

    async def stream_reply(self, turn: ChatTurn) -> AsyncIterator[str]:
        if turn.canned_reply is not None:
            yield turn.canned_reply
            return

        passages = await self.retriever.retrieve(turn.message, turn.project_id, self.top_k)
        logger.info(f"Retrieved {len(passages)} passages for conversation {turn.conversation_id}")

        try:
            llm = self.llm
        except ValueError as e:
            logger.error(f"Model provider unavailable for conversation {turn.conversation_id}: {e}")
            yield error_marker("Model provider is not configured")
            return

        prompt = build_rag_prompt(turn.message, passages)
        stream = StreamTee(llm.stream(RAG_SYSTEM_PROMPT, prompt, turn.model))

        try:
            async with contextlib.aclosing(stream.forward()) as fragments:
                async for fragment in fragments:
                    yield fragment
        except GenerationFailure as e:
            logger.error(f"Generation failed for conversation {turn.conversation_id}: {e.message}", exc_info=True)
            yield error_marker(e.message)
            return
        except (asyncio.CancelledError, GeneratorExit):
            logger.info(f"Client left conversation {turn.conversation_id} mid-stream; reply discarded")
            raise

        citations = citations_from_passages(passages)
        try:
            self.store.append_message(turn.conversation_id, turn.user_id, "assistant", stream.text, citations)
        except ChatError as e:
            logger.error(f"Reply for conversation {turn.conversation_id} could not be saved: {e.message}")
            yield error_marker(e.message)
            return

        # Sources marker is always the final write
        if citations:
            yield sources_marker(citations)


def get_llm_factory() -> Callable[[], BaseLLMProvider]:
    return get_llm_provider


def get_orchestrator(
    store: ConversationStore = Depends(get_store),
    retriever: ContextRetriever = Depends(get_retriever),
    llm_factory: Callable[[], BaseLLMProvider] = Depends(get_llm_factory),
) -> ChatOrchestrator:
    return ChatOrchestrator(store, retriever, llm_factory)
