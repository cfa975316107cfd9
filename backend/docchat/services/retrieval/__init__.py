"""Document index factory."""

from docchat.services.retrieval.base import BaseIndexClient, ContextPassage, ContextRetriever


def get_index_client() -> BaseIndexClient:
    from docchat.services.retrieval.llamacloud import LlamaCloudIndexClient
    return LlamaCloudIndexClient()


def get_retriever() -> ContextRetriever:
    return ContextRetriever(get_index_client())


__all__ = ["BaseIndexClient", "ContextPassage", "ContextRetriever", "get_index_client", "get_retriever"]
