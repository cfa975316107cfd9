from docchat.models.conversation import ChatMessage, Conversation
from docchat.models.project import Document, Project

__all__ = ["ChatMessage", "Conversation", "Document", "Project"]
