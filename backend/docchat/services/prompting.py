"""Grounded prompt construction for document chat."""

from docchat.services.retrieval.base import ContextPassage

NO_CONTEXT_REPLY = "I Unravel if there are Documents, Upload a document first"
NOT_FOUND_REPLY = "Not found in document"
NO_CONTEXT_MARKER = "NO DOCUMENTS ATTACHED/PROVIDED."
PASSAGE_SEPARATOR = "\n\n---\n\n"

RAG_SYSTEM_PROMPT = f"""You are a helpful AI assistant that answers questions based ONLY on the provided document context.

Rules:
1. Only use information from the provided context to answer questions.
2. If there are no documents attached yet (no context provided), respond with exactly: "{NO_CONTEXT_REPLY}".
3. If there are documents (context is provided) but the user's prompt is not related to the documents or the answer cannot be found in the context, respond with: "{NOT_FOUND_REPLY}".
4. Do NOT include citations or source references in your response. The sources are displayed separately in the UI.
5. Be concise but thorough.
6. Format your responses in a clear, readable way using markdown when appropriate."""


def _passage_block(passage: ContextPassage) -> str:
    page = f" (Page {passage.page_number})" if passage.page_number else ""
    return f"[{passage.file_name}{page}]\n{passage.content}"


def build_rag_prompt(query: str, passages: list[ContextPassage]) -> str:
    if not passages:
        return f"{NO_CONTEXT_MARKER}\n\nUSER QUESTION:\n{query}"

    context_text = PASSAGE_SEPARATOR.join(_passage_block(p) for p in passages)
    return (
        "Based on the following document context, please answer the user's question.\n\n"
        f"DOCUMENT CONTEXT:\n{context_text}\n\n"
        f"USER QUESTION:\n{query}"
    )
