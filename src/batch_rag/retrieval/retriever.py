"""Semantic retriever — embed a query, search the store, attach citations.

Query-time retrieval is the single-item form of the ingestion path: one
query text, one embedding call, one vector search. No batching or worker
pool is involved.

Usage::

    from batch_rag.retrieval.retriever import SemanticRetriever

    retriever = SemanticRetriever(store, embeddings)
    results   = retriever.search("What is Milvus?", k=5)
    for r in results:
        print(r.citation.short_ref(), r.content[:80])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from batch_rag.config import settings
from batch_rag.retrieval.models import Citation, MetadataFilter, RetrievalResult

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

    from batch_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)


class SemanticRetriever:
    """High-level retriever over any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        A concrete vector-store backend.
    embeddings:
        The embedding model used at ingestion time; query vectors must live
        in the same space.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum similarity score; results below this are discarded.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        embeddings: Embeddings,
        *,
        default_k: int = settings.retriever_top_k,
        score_threshold: float = settings.score_threshold,
    ) -> None:
        self._store = store
        self._embeddings = embeddings
        self.default_k = default_k
        self.score_threshold = score_threshold

    # -- public API -----------------------------------------------------------

    def search(
        self,
        query: str,
        *,
        k: int | None = None,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalResult]:
        """Run a semantic search and return results with citations.

        Parameters
        ----------
        query:
            Natural-language query string.
        k:
            Number of results (defaults to ``self.default_k``).
        filters:
            Optional metadata filters forwarded to the vector store.

        Returns
        -------
        list[RetrievalResult]
            Ranked results, each carrying a :class:`Citation`. May be empty;
            callers decide whether that is an error.
        """
        embedding = self._embeddings.embed_query(query)
        results = self.search_by_embedding(embedding, k=k, filters=filters)
        logger.info("Retrieved %d results for %r", len(results), query)
        return results

    def search_by_embedding(
        self,
        embedding: list[float],
        *,
        k: int | None = None,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalResult]:
        """Same as :meth:`search` but accepts a pre-computed embedding."""
        k = k or self.default_k
        raw_hits = self._store.similarity_search(embedding, k=k, filters=filters)
        return self._to_results(raw_hits)

    # -- internals ------------------------------------------------------------

    def _to_results(self, raw_hits: list[dict[str, Any]]) -> list[RetrievalResult]:
        results: list[RetrievalResult] = []
        for hit in raw_hits:
            score = hit.get("score")
            if score is not None and score < self.score_threshold:
                continue

            meta = hit.get("metadata", {})
            citation = Citation(
                document_id=hit.get("id"),
                source=meta.get("source", "unknown"),
                chunk_index=meta.get("chunk_index"),
                page=meta.get("page"),
                score=score,
                metadata=meta,
            )
            results.append(RetrievalResult(content=hit.get("content", ""), citation=citation))
        return results
