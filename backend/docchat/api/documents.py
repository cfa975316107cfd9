"""Document removal. The record is deleted first; index and counter updates are best-effort."""

import logging

from fastapi import APIRouter, Depends

from docchat.core.auth import get_current_user_id
from docchat.core.errors import NotFound
from docchat.services.cleanup import run_cleanup
from docchat.services.conversation_store import ConversationStore, get_store
from docchat.services.retrieval import BaseIndexClient, get_index_client

router = APIRouter()
logger = logging.getLogger(__name__)


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    user_id: str = Depends(get_current_user_id),
    store: ConversationStore = Depends(get_store),
    index: BaseIndexClient = Depends(get_index_client),
):
    document = store.get_document(document_id, user_id)
    if not document:
        raise NotFound("Document not found")

    store.delete_document(document_id, user_id)
    logger.info(f"Deleted document {document_id} ({document.file_name})")

    cleanup = {}
    if document.index_file_id:
        cleanup["index"] = await run_cleanup(
            f"remove {document.index_file_id} from index",
            lambda: index.delete_file(document.project_id, document.index_file_id),
        )
    cleanup["document_count"] = await run_cleanup(
        f"decrement document count of project {document.project_id}",
        lambda: store.decrement_document_count(document.project_id, user_id),
    )
    return {"success": True, "cleanup": cleanup}
