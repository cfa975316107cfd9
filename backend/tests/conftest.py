"""Shared test fixtures for backend tests."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from docchat.core.auth import get_current_user_id
from docchat.core.errors import GenerationFailure
from docchat.models.conversation import ChatMessage, Conversation
from docchat.models.project import Document, Project
from docchat.services.chat import get_llm_factory
from docchat.services.conversation_store import ConversationStore, get_store
from docchat.services.llm.base import BaseLLMProvider
from docchat.services.retrieval import ContextRetriever, get_index_client, get_retriever
from docchat.services.retrieval.base import BaseIndexClient

USER_ID = "user-1"
OTHER_USER_ID = "user-2"

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import docchat.models  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


class FakeIndexClient(BaseIndexClient):
    """Index that returns canned passages and records every call."""

    def __init__(self):
        self.passages = []
        self.error: Exception | None = None
        self.calls: list[tuple[str, str, int]] = []
        self.deleted: list[tuple[str, str]] = []

    async def retrieve(self, query, project_id, top_k):
        self.calls.append((query, project_id, top_k))
        if self.error:
            raise self.error
        return list(self.passages)

    async def delete_file(self, project_id, file_id):
        if self.error:
            raise self.error
        self.deleted.append((project_id, file_id))


class FakeLLM(BaseLLMProvider):
    """Model that streams fixed tokens, optionally failing part way through."""

    default_model = "fake-model"

    def __init__(self, tokens=None):
        self.tokens = tokens if tokens is not None else ["Hello", " from", " model"]
        self.fail_after: int | None = None
        self.error: Exception = GenerationFailure("model exploded")
        self.calls: list[dict] = []
        self.closed = False

    async def stream(self, system, prompt, model=None):
        self.calls.append({"system": system, "prompt": prompt, "model": model})
        try:
            for i, token in enumerate(self.tokens):
                if self.fail_after is not None and i >= self.fail_after:
                    raise self.error
                yield token
        finally:
            self.closed = True


@pytest.fixture
def index_client():
    return FakeIndexClient()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def store():
    return ConversationStore(test_engine)


@pytest.fixture
def client(index_client, llm, store):
    """FastAPI TestClient with all external services replaced."""
    with patch("docchat.core.database.engine", test_engine):
        from docchat.main import app

        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_current_user_id] = lambda: USER_ID
        app.dependency_overrides[get_index_client] = lambda: index_client
        app.dependency_overrides[get_retriever] = lambda: ContextRetriever(index_client)
        app.dependency_overrides[get_llm_factory] = lambda: lambda: llm

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()


def seed_project(user_id=USER_ID, documents=(), name="Handbook"):
    """Insert a project with (file_name, status) documents directly into the test DB."""
    with Session(test_engine) as session:
        project = Project(user_id=user_id, name=name, document_count=len(documents))
        session.add(project)
        session.commit()
        session.refresh(project)

        for file_name, status in documents:
            session.add(Document(project_id=project.id, user_id=user_id, file_name=file_name, status=status))
        session.commit()
        return project.id


def seed_conversation(project_id, user_id=USER_ID, title="Test Chat", messages=()):
    """Insert a conversation + (role, content[, sources]) messages."""
    with Session(test_engine) as session:
        conv = Conversation(project_id=project_id, user_id=user_id, title=title)
        session.add(conv)
        session.commit()
        session.refresh(conv)

        for role, content, *rest in messages:
            msg = ChatMessage(conversation_id=conv.id, role=role, content=content)
            if rest:
                msg.sources = rest[0]
            session.add(msg)
        session.commit()
        return conv.id
