"""Project and document records.

Managed by the CRUD layer; the chat pipeline only reads project ownership
and whether a project has documents ready for retrieval.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel

DOCUMENT_STATUSES = ("uploading", "processing", "ready", "error")


def _new_id() -> str:
    return str(uuid.uuid4())


class Project(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    user_id: str = Field(index=True)
    name: str
    description: Optional[str] = None
    document_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Document(SQLModel, table=True):
    id: str = Field(default_factory=_new_id, primary_key=True)
    project_id: str = Field(foreign_key="project.id", index=True)
    user_id: str = Field(index=True)
    file_name: str
    file_type: str = Field(default="")
    file_size: int = Field(default=0)
    file_url: str = Field(default="")
    status: str = Field(default="uploading")  # uploading | processing | ready | error
    error_message: Optional[str] = None
    index_file_id: Optional[str] = None  # file id in the external document index
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
