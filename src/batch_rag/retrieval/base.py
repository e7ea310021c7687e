"""Abstract base class for vector-store backends.

Adding a new backend (Milvus, Qdrant, pgvector …) only requires
subclassing :class:`VectorStoreBase` and implementing the three abstract
methods.  Embedding happens upstream: the store receives documents whose
``metadata["embedding"]`` is already populated, and query vectors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from batch_rag.retrieval.models import MetadataFilter

# Metadata key under which documents carry their vector into the store.
EMBEDDING_KEY = "embedding"


class VectorStoreBase(ABC):
    """Backend-agnostic vector-store interface.

    Parameters
    ----------
    collection_name:
        Logical name of the collection / index / namespace.
    """

    def __init__(self, collection_name: str) -> None:
        self.collection_name = collection_name

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def add_documents(self, documents: list[Document]) -> list[str]:
        """Persist pre-embedded *documents* and return their ids.

        Each document **must** carry its vector in ``metadata["embedding"]``.

        Raises
        ------
        StoreError
            If the backend rejects the write.
        """
        ...

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        """Return the top-*k* results matching *query_embedding*.

        Each result dict **must** contain at least:

        * ``"id"`` – document / chunk identifier
        * ``"content"`` – the textual content
        * ``"score"`` – similarity score (higher = more similar)
        * ``"metadata"`` – associated metadata dict

        Parameters
        ----------
        query_embedding:
            Dense vector for the query.
        k:
            Number of results to return.
        filters:
            Optional metadata filters applied server-side.
        """
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """Return ``True`` when the backend is reachable and ready."""
        ...

    # -- optional overrides ---------------------------------------------------

    def delete(self, ids: list[str]) -> None:
        """Delete documents by their IDs.  Optional — raises by default."""
        raise NotImplementedError(f"{type(self).__name__} does not support delete")
