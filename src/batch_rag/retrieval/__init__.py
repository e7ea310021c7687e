"""
Retrieval — vector storage, vector search, and citation tracking.

This module wraps the vector store behind a clean interface so that
the ingestion and generation layers never need to know which DB is
backing retrieval.

Public surface
--------------
- :class:`SemanticRetriever` — embed a query and search with citations.
- :class:`VectorStoreBase` — abstract backend (subclass for Milvus, etc.).
- :class:`ChromaVectorStore` — default Chroma backend.
- :class:`Citation`, :class:`RetrievalResult`, :class:`MetadataFilter` — data models.
"""

from batch_rag.retrieval.base import VectorStoreBase
from batch_rag.retrieval.models import Citation, MetadataFilter, RetrievalResult
from batch_rag.retrieval.retriever import SemanticRetriever

__all__ = [
    "Citation",
    "ChromaVectorStore",
    "MetadataFilter",
    "RetrievalResult",
    "SemanticRetriever",
    "VectorStoreBase",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import ChromaVectorStore to avoid pulling in chromadb at import time."""
    if name == "ChromaVectorStore":
        from batch_rag.retrieval.chroma_store import ChromaVectorStore

        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
