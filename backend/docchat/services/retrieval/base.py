"""Context retrieval interfaces.

Index clients implement ``BaseIndexClient`` and may raise freely.
``ContextRetriever`` wraps one and makes retrieval best-effort: any error or
timeout yields an empty passage list.
"""

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

TOP_K = 10
TIMEOUT_S = 30.0
UNKNOWN_DOCUMENT = "Unknown Document"


@dataclass(frozen=True)
class PassageMetadata:
    """Named view over the loose metadata bag an index returns for a node."""

    custom_file_name: str | None = None
    file_name: str | None = None
    source_file_name: str | None = None
    legacy_file_name: str | None = None  # "file name" key written by older ingestions
    page_number: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_node(cls, metadata: dict[str, Any] | None, source_metadata: dict[str, Any] | None = None) -> "PassageMetadata":
        metadata = metadata or {}
        custom = metadata.get("custom_metadata")
        custom = custom if isinstance(custom, dict) else {}
        source_metadata = source_metadata or {}
        page = metadata.get("page_number") or metadata.get("page_label")
        try:
            page_number = int(page) if page not in (None, "") else None
        except (TypeError, ValueError):
            page_number = None
        return cls(
            custom_file_name=_text(custom.get("file_name")),
            file_name=_text(metadata.get("file_name")),
            source_file_name=_text(source_metadata.get("file_name")),
            legacy_file_name=_text(metadata.get("file name")),
            page_number=page_number,
            extra=dict(metadata),
        )

    def resolve_file_name(self) -> str:
        for candidate in (
            self.custom_file_name,
            self.file_name,
            self.source_file_name,
            self.legacy_file_name,
        ):
            if candidate:
                return candidate
        return UNKNOWN_DOCUMENT


def _text(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class ContextPassage:
    content: str
    score: float = 0.0
    metadata: PassageMetadata = field(default_factory=PassageMetadata)

    @property
    def file_name(self) -> str:
        return self.metadata.resolve_file_name()

    @property
    def page_number(self) -> int | None:
        return self.metadata.page_number


class BaseIndexClient(ABC):
    @abstractmethod
    async def retrieve(self, query: str, project_id: str, top_k: int) -> list[ContextPassage]:
        """Query the project's index. May raise on any failure."""
        ...

    @abstractmethod
    async def delete_file(self, project_id: str, file_id: str) -> None:
        """Remove an indexed file from the project's index."""
        ...


class ContextRetriever:
    """Best-effort retrieval with its own timeout."""

    def __init__(self, client: BaseIndexClient, timeout_s: float = TIMEOUT_S):
        self.client = client
        self.timeout_s = timeout_s

    async def retrieve(self, query: str, project_id: str, top_k: int = TOP_K) -> list[ContextPassage]:
        if top_k < 1:
            raise ValueError("top_k must be at least 1")

        task = asyncio.ensure_future(self.client.retrieve(query, project_id, top_k))
        done, _ = await asyncio.wait({task}, timeout=self.timeout_s)

        # A result that is ready by the time the timer is checked always wins
        if task not in done:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task
            logger.warning(f"Retrieval timed out after {self.timeout_s:.0f}s for project {project_id}")
            return []

        try:
            passages = task.result()
        except Exception as e:
            logger.warning(f"Retrieval failed for project {project_id} (continuing without context): {e}")
            return []

        if not passages:
            logger.info(f"Retrieval returned no passages for project {project_id}; index may still be processing")
            return []

        ranked = sorted(passages, key=lambda p: p.score, reverse=True)
        return ranked[:top_k]
