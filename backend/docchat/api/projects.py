from fastapi import APIRouter, Depends

from docchat.api.conversations import conversation_to_dict
from docchat.core.auth import get_current_user_id
from docchat.core.errors import NotFound
from docchat.services.conversation_store import ConversationStore, get_store

router = APIRouter()


@router.get("/{project_id}/conversations")
async def list_project_conversations(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_store),
):
    if not store.get_project(project_id, user_id):
        raise NotFound("Project not found")
    return [conversation_to_dict(c) for c in store.list_conversations(user_id, project_id)]


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_store),
):
    """Delete a project together with its documents and conversations."""
    store.delete_project(project_id, user_id)
    return {"success": True}
