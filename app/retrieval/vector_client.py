"""
Vector Retrieval Client — Historical context lookup and indexing.

The search service embeds the query text and runs a filtered nearest-neighbour
query over the repo's collection. Incident summaries are written to the same
collection with a "type" metadata key, which the tier filters select on.
Failures surface as EmbeddingError or RetrievalError; callers decide how to
degrade.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Protocol

import httpx

from app.config import settings
from app.core.errors import EmbeddingError, RetrievalError
from app.models.context_models import RetrievalResult, VectorDocument

logger = logging.getLogger("codrel.retrieval")


class Retriever(Protocol):
    async def query(
        self, repo: str, text: str, where: dict[str, Any], limit: int
    ) -> RetrievalResult: ...


class Indexer(Protocol):
    async def upsert(self, repo: str, documents: list[VectorDocument]) -> int: ...


def collection_name(repo: str) -> str:
    """'owner/repo' -> 'owner_repo'."""
    return re.sub(r"[^a-zA-Z0-9._-]", "_", repo)


def type_filter(event_types: list[str] | None) -> dict[str, Any]:
    """Metadata filter restricting results to the given event types; {} = unscoped."""
    if not event_types:
        return {}
    return {"type": {"$in": list(event_types)}}


class HttpRetriever:
    """
    httpx client for the vector search service.

    POST {base_url}/collections/{collection}/query
        {"query_text": ..., "where": {...}, "n_results": N}
    -> {"documents": [[...]]} or {"documents": [...]}
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = (base_url or settings.retrieval_url).rstrip("/")
        headers = {"Content-Type": "application/json"}
        token = api_key if api_key is not None else settings.retrieval_api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.AsyncClient(
            timeout=timeout or settings.retrieval_timeout_seconds,
            headers=headers,
            limits=httpx.Limits(max_connections=40, max_keepalive_connections=10),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def query(
        self, repo: str, text: str, where: dict[str, Any], limit: int
    ) -> RetrievalResult:
        url = f"{self.base_url}/collections/{collection_name(repo)}/query"
        payload = {"query_text": text, "where": where or {}, "n_results": limit}

        try:
            response = await self._client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"vector search skipped | repo={repo} | reason={e}")
            raise RetrievalError("Vector context unavailable") from e

        if response.status_code == 404:
            # Repo never indexed: no history rather than a failure
            return RetrievalResult()

        _raise_for_status(response, repo, "vector search")

        try:
            body = response.json()
        except ValueError as e:
            raise RetrievalError("Vector search returned non-JSON body") from e

        return RetrievalResult(documents=_flatten_documents(body.get("documents")))

    async def upsert(self, repo: str, documents: list[VectorDocument]) -> int:
        """
        Index documents into the repo's collection; the service embeds them.

        POST {base_url}/collections/{collection}/upsert
            {"ids": [...], "documents": [...], "metadatas": [...]}
        """
        if not documents:
            return 0

        url = f"{self.base_url}/collections/{collection_name(repo)}/upsert"
        payload = {
            "ids": [d.id for d in documents],
            "documents": [d.text for d in documents],
            "metadatas": [d.metadata for d in documents],
        }

        try:
            response = await self._client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"vector upsert skipped | repo={repo} | reason={e}")
            raise RetrievalError("Vector index unavailable") from e

        _raise_for_status(response, repo, "vector upsert")
        logger.info(f"vector upsert | repo={repo} | count={len(documents)}")
        return len(documents)


def _flatten_documents(documents: Any) -> list[str]:
    # Chroma-style responses nest one list per query embedding
    if not documents:
        return []
    if isinstance(documents[0], list):
        documents = documents[0]
    return [d for d in documents if isinstance(d, str) and d]


def _error_reason(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)
    return str(body)


def _raise_for_status(response: httpx.Response, repo: str, action: str) -> None:
    if response.status_code < 400:
        return
    reason = _error_reason(response)
    logger.warning(
        f"{action} failed | repo={repo} | status={response.status_code} | reason={reason}"
    )
    if "embed" in reason.lower():
        raise EmbeddingError("Failed to generate embedding")
    raise RetrievalError(f"{action} unavailable")
