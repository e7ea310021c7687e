"""Chroma implementation of the vector-store abstraction."""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Any

import chromadb

from batch_rag.config import settings
from batch_rag.errors import StoreError
from batch_rag.retrieval.base import EMBEDDING_KEY, VectorStoreBase

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from batch_rag.retrieval.models import MetadataFilter

logger = logging.getLogger(__name__)

# Max records per upsert call (Chroma caps a single request well above this).
UPSERT_BATCH_SIZE = 5000

_OP_MAP = {
    "eq": "$eq",
    "ne": "$ne",
    "gt": "$gt",
    "gte": "$gte",
    "lt": "$lt",
    "lte": "$lte",
    "in": "$in",
    "nin": "$nin",
}


def _build_chroma_where(filters: list[MetadataFilter]) -> dict[str, Any] | None:
    """Convert a list of :class:`MetadataFilter` to Chroma ``where`` syntax."""
    if not filters:
        return None

    clauses: list[dict[str, Any]] = []
    for f in filters:
        chroma_op = _OP_MAP.get(f.operator)
        if chroma_op is None:
            raise ValueError(f"Unsupported filter operator: {f.operator!r}")
        clauses.append({f.field: {chroma_op: f.value}})

    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def _flat_metadata(metadata: dict[str, Any]) -> dict[str, str | int | float | bool]:
    """Chroma metadata values must be flat str/int/float/bool."""
    flat = {
        k: v
        for k, v in metadata.items()
        if k != EMBEDDING_KEY and isinstance(v, (str, int, float, bool))
    }
    # Chroma rejects empty metadata dicts.
    return flat or {"source": "unknown"}


class ChromaVectorStore(VectorStoreBase):
    """Chroma-backed vector store.

    Parameters
    ----------
    collection_name:
        Name of the Chroma collection.
    host:
        Chroma server hostname.
    port:
        Chroma server port.
    distance_metric:
        ``cosine`` | ``l2`` | ``ip``; only used when the collection is created.
    client:
        Pre-built Chroma client (tests inject an ``EphemeralClient``).
    """

    def __init__(
        self,
        collection_name: str = settings.chroma_collection,
        *,
        host: str = settings.chroma_host,
        port: int = settings.chroma_port,
        distance_metric: str = settings.chroma_distance,
        client: Any | None = None,
    ) -> None:
        super().__init__(collection_name)
        try:
            self._client = client if client is not None else chromadb.HttpClient(host=host, port=port)
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": distance_metric},
            )
        except Exception as exc:
            raise StoreError(f"cannot open Chroma collection {collection_name!r} at {host}:{port}: {exc}") from exc

    # -- VectorStoreBase overrides --------------------------------------------

    def add_documents(self, documents: list[Document]) -> list[str]:
        ids: list[str] = []
        embeddings: list[list[float]] = []
        contents: list[str] = []
        metadatas: list[dict[str, Any]] = []
        seen: set[str] = set()

        for doc in documents:
            vector = doc.metadata.get(EMBEDDING_KEY)
            if vector is None:
                raise StoreError(f"document {doc.id!r} has no embedding")
            doc_id = doc.id or hashlib.sha256(doc.page_content.encode()).hexdigest()[:16]
            # Chroma rejects an upsert that repeats an id.
            if doc_id in seen:
                logger.debug("Skipping duplicate id %s", doc_id)
                continue
            seen.add(doc_id)
            ids.append(doc_id)
            embeddings.append(list(vector))
            contents.append(doc.page_content)
            metadatas.append(_flat_metadata(doc.metadata))

        try:
            for start in range(0, len(ids), UPSERT_BATCH_SIZE):
                end = start + UPSERT_BATCH_SIZE
                self._collection.upsert(
                    ids=ids[start:end],
                    embeddings=embeddings[start:end],
                    documents=contents[start:end],
                    metadatas=metadatas[start:end],
                )
        except Exception as exc:
            raise StoreError(f"upsert into {self.collection_name!r} failed: {exc}") from exc

        if len(ids) < len(documents):
            logger.warning("Dropped %d duplicate ids before upsert", len(documents) - len(ids))
        logger.info("Indexed %d vectors → collection '%s'", len(ids), self.collection_name)
        return ids

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        where = _build_chroma_where(filters) if filters else None

        try:
            results = self._collection.query(
                query_embeddings=[query_embedding],
                n_results=k,
                where=where,
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise StoreError(f"search in {self.collection_name!r} failed: {exc}") from exc

        hits: list[dict[str, Any]] = []
        ids = (results.get("ids") or [[]])[0]
        docs = (results.get("documents") or [[]])[0]
        metas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        for doc_id, content, meta, dist in zip(ids, docs, metas, distances):
            # Distances are >= 0; map them to a 0-1 similarity score.
            score = 1.0 / (1.0 + dist)
            hits.append(
                {
                    "id": doc_id,
                    "content": content or "",
                    "score": score,
                    "metadata": meta or {},
                }
            )
        return hits

    def health_check(self) -> bool:
        try:
            self._client.heartbeat()
            return True
        except Exception:
            logger.warning("Chroma health-check failed", exc_info=True)
            return False

    def delete(self, ids: list[str]) -> None:
        self._collection.delete(ids=ids)
