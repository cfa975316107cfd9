"""LlamaCloud pipeline client. One pipeline per project, named ``<prefix>-<project id>``."""

import logging
from typing import Any

import httpx

from docchat.core.config import settings
from docchat.core.errors import RetrievalFailure
from docchat.services.retrieval.base import BaseIndexClient, ContextPassage, PassageMetadata

logger = logging.getLogger(__name__)


class LlamaCloudIndexClient(BaseIndexClient):
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        project_name: str | None = None,
        index_name: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key if api_key is not None else settings.llama_cloud_api_key
        self.base_url = (base_url or settings.llama_cloud_base_url).rstrip("/")
        self.project_name = project_name or settings.llama_cloud_project_name
        self.index_name = index_name or settings.llama_cloud_index_name
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise RetrievalFailure("LlamaCloud API key not configured. Set DOCCHAT_LLAMA_CLOUD_API_KEY.")
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

    def pipeline_name(self, project_id: str) -> str:
        return f"{self.index_name}-{project_id}" if project_id else self.index_name

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, headers=self._headers(), transport=self._transport, timeout=30.0
        )

    async def _pipeline_id(self, client: httpx.AsyncClient, project_id: str) -> str:
        name = self.pipeline_name(project_id)
        resp = await client.get(
            "/pipelines",
            params={"pipeline_name": name, "project_name": self.project_name},
        )
        resp.raise_for_status()
        pipelines = resp.json() or []
        for p in pipelines:
            if p.get("name") == name and p.get("id"):
                return str(p["id"])
        raise RetrievalFailure(f"No index pipeline named '{name}'")

    async def retrieve(self, query: str, project_id: str, top_k: int) -> list[ContextPassage]:
        try:
            async with self._client() as client:
                pipeline_id = await self._pipeline_id(client, project_id)
                logger.debug(f"Querying pipeline {pipeline_id} (top_k={top_k})")
                resp = await client.post(
                    f"/pipelines/{pipeline_id}/retrieve",
                    json={"query": query, "similarity_top_k": top_k},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            raise RetrievalFailure(f"LlamaCloud request failed ({type(e).__name__}): {e}") from e

        nodes = data.get("retrieval_nodes") or []
        passages = [self._to_passage(n) for n in nodes if isinstance(n, dict)]
        logger.debug(f"Got {len(passages)} passages from pipeline {pipeline_id}")
        return passages

    @staticmethod
    def _to_passage(item: dict[str, Any]) -> ContextPassage:
        node = item.get("node")
        if not isinstance(node, dict):
            node = {}
        source = (node.get("relationships") or {}).get("SOURCE") or {}
        return ContextPassage(
            content=str(node.get("text") or node.get("content") or ""),
            score=float(item.get("score") or 0.0),
            metadata=PassageMetadata.from_node(node.get("metadata"), source.get("metadata")),
        )

    async def delete_file(self, project_id: str, file_id: str) -> None:
        try:
            async with self._client() as client:
                pipeline_id = await self._pipeline_id(client, project_id)
                resp = await client.delete(f"/pipelines/{pipeline_id}/files/{file_id}")
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise RetrievalFailure(f"LlamaCloud delete failed ({type(e).__name__}): {e}") from e
        logger.info(f"Removed file {file_id} from index {self.pipeline_name(project_id)}")
