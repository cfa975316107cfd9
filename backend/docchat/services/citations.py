"""Citation records attached to assistant messages.

A citation is a read-only projection of a retrieved passage: the display name
of its file and a short excerpt. On the wire and in storage it is
``{"fileName": ..., "content": ...}``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from docchat.services.retrieval.base import ContextPassage

logger = logging.getLogger(__name__)

EXCERPT_CHARS = 200
UNKNOWN_FILE = "Unknown"


@dataclass(frozen=True)
class Citation:
    file_name: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"fileName": self.file_name, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Citation":
        return cls(file_name=str(data.get("fileName") or UNKNOWN_FILE), content=str(data.get("content") or ""))


def citations_from_passages(passages: Iterable[ContextPassage]) -> list[Citation]:
    return [
        Citation(file_name=p.file_name or UNKNOWN_FILE, content=p.content[:EXCERPT_CHARS])
        for p in passages
    ]


def dump_sources(citations: Iterable[Citation]) -> str:
    return json.dumps([c.to_dict() for c in citations], ensure_ascii=False)


def load_sources(raw: str | None) -> list[dict[str, Any]]:
    """Parse a stored sources column. Missing or malformed values give []."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug(f"Unparseable sources value: {raw[:80]!r}")
        return []
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]
