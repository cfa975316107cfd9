"""Durable conversations and messages, always scoped by owner."""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from docchat.core.errors import NotFound, PersistenceFailure
from docchat.models.conversation import ChatMessage, Conversation
from docchat.models.project import Document, Project
from docchat.services.citations import Citation, dump_sources

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Conversation"
TITLE_CHARS = 50


def title_from_message(message: str) -> str:
    """First 50 characters of the message, with an ellipsis when truncated."""
    if len(message) > TITLE_CHARS:
        return message[:TITLE_CHARS] + "..."
    return message


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        try:
            with Session(self.engine, expire_on_commit=False) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error while trying to {action}: {e}")
            raise PersistenceFailure(f"Failed to {action}") from e

    # --- Projects and documents (read side of the CRUD layer) ---

    def get_project(self, project_id: str, user_id: str) -> Project | None:
        with self._session("load project") as session:
            return session.exec(
                select(Project).where(Project.id == project_id, Project.user_id == user_id)
            ).first()

    def count_ready_documents(self, project_id: str) -> int:
        with self._session("count documents") as session:
            return session.exec(
                select(func.count())
                .select_from(Document)
                .where(Document.project_id == project_id, Document.status == "ready")
            ).one()

    def get_document(self, document_id: str, user_id: str) -> Document | None:
        with self._session("load document") as session:
            return session.exec(
                select(Document).where(Document.id == document_id, Document.user_id == user_id)
            ).first()

    def delete_document(self, document_id: str, user_id: str) -> None:
        with self._session("delete document") as session:
            doc = session.exec(
                select(Document).where(Document.id == document_id, Document.user_id == user_id)
            ).first()
            if not doc:
                raise NotFound("Document not found")
            session.delete(doc)
            session.commit()

    def decrement_document_count(self, project_id: str, user_id: str) -> None:
        with self._session("update document count") as session:
            project = session.exec(
                select(Project).where(Project.id == project_id, Project.user_id == user_id)
            ).first()
            if not project:
                raise NotFound("Project not found")
            project.document_count = max(project.document_count - 1, 0)
            project.updated_at = _now()
            session.add(project)
            session.commit()

    def delete_project(self, project_id: str, user_id: str) -> None:
        """Delete a project with its documents, conversations and messages."""
        with self._session("delete project") as session:
            project = session.exec(
                select(Project).where(Project.id == project_id, Project.user_id == user_id)
            ).first()
            if not project:
                raise NotFound("Project not found")

            conversations = session.exec(
                select(Conversation).where(Conversation.project_id == project_id)
            ).all()
            for conv in conversations:
                self._delete_messages(session, conv.id)
                session.delete(conv)
            for doc in session.exec(select(Document).where(Document.project_id == project_id)).all():
                session.delete(doc)

            session.delete(project)
            session.commit()
            logger.debug(f"Deleted project {project_id} with {len(conversations)} conversations")

    # --- Conversations ---

    def create_conversation(self, project_id: str, user_id: str, title: str) -> str:
        with self._session("create conversation") as session:
            conv = Conversation(project_id=project_id, user_id=user_id, title=title or DEFAULT_TITLE)
            session.add(conv)
            session.commit()
            return conv.id

    def get_conversation(self, conversation_id: str, user_id: str) -> Conversation | None:
        with self._session("load conversation") as session:
            return session.exec(
                select(Conversation).where(
                    Conversation.id == conversation_id, Conversation.user_id == user_id
                )
            ).first()

    def list_conversations(self, user_id: str, project_id: str | None = None) -> list[Conversation]:
        with self._session("list conversations") as session:
            query = select(Conversation).where(Conversation.user_id == user_id)
            if project_id:
                query = query.where(Conversation.project_id == project_id)
            return list(session.exec(query.order_by(Conversation.updated_at.desc())).all())  # type: ignore

    def update_conversation_title(self, conversation_id: str, user_id: str, title: str) -> Conversation:
        with self._session("rename conversation") as session:
            conv = self._owned_conversation(session, conversation_id, user_id)
            conv.title = title.strip() or DEFAULT_TITLE
            conv.updated_at = _now()
            session.add(conv)
            session.commit()
            return conv

    def delete_conversation(self, conversation_id: str, user_id: str) -> None:
        with self._session("delete conversation") as session:
            conv = self._owned_conversation(session, conversation_id, user_id)
            self._delete_messages(session, conversation_id)
            session.delete(conv)
            session.commit()
            logger.debug(f"Deleted conversation {conversation_id}")

    # --- Messages ---

    def append_message(
        self,
        conversation_id: str,
        user_id: str,
        role: str,
        content: str,
        sources: Iterable[Citation] = (),
    ) -> int:
        if role not in ("user", "assistant"):
            raise ValueError(f"Invalid message role: {role}")
        with self._session(f"save {role} message") as session:
            conv = self._owned_conversation(session, conversation_id, user_id)
            msg = ChatMessage(
                conversation_id=conversation_id,
                role=role,
                content=content,
                sources=dump_sources(sources),
            )
            conv.updated_at = _now()
            session.add(msg)
            session.add(conv)
            session.commit()
            return msg.id  # type: ignore

    def list_messages(self, conversation_id: str, user_id: str) -> list[ChatMessage]:
        with self._session("load messages") as session:
            self._owned_conversation(session, conversation_id, user_id)
            return list(
                session.exec(
                    select(ChatMessage)
                    .where(ChatMessage.conversation_id == conversation_id)
                    .order_by(ChatMessage.created_at, ChatMessage.id)  # type: ignore
                ).all()
            )

    @staticmethod
    def _owned_conversation(session: Session, conversation_id: str, user_id: str) -> Conversation:
        conv = session.exec(
            select(Conversation).where(Conversation.id == conversation_id, Conversation.user_id == user_id)
        ).first()
        if not conv:
            raise NotFound("Conversation not found")
        return conv

    @staticmethod
    def _delete_messages(session: Session, conversation_id: str) -> None:
        for msg in session.exec(select(ChatMessage).where(ChatMessage.conversation_id == conversation_id)).all():
            session.delete(msg)


def get_store() -> ConversationStore:
    from docchat.core import database
    return ConversationStore(database.engine)
