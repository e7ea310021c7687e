"""RagClient — the two user-facing operations: upload and query."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from batch_rag.batching import RateLimiter
from batch_rag.config import settings
from batch_rag.generation.generator import Answer, Generator
from batch_rag.ingestion.uploader import Uploader, UploadResult

logger = logging.getLogger(__name__)


class RagClient:
    """Facade over an :class:`Uploader` and a :class:`Generator`.

    Build the default stack (Chroma + configured embeddings + OpenAI chat)
    with :meth:`from_settings`, or pass pre-built parts for tests.
    """

    def __init__(self, uploader: Uploader, generator: Generator, *, limiter: RateLimiter | None = None) -> None:
        self.uploader = uploader
        self.generator = generator
        self.limiter = limiter

    @classmethod
    def from_settings(cls) -> RagClient:
        """Wire the default backends from :data:`batch_rag.config.settings`.

        All uploads through the returned client share one rate limiter, so
        concurrent uploads stay inside a single request budget.

        Raises
        ------
        StoreError
            If the vector store cannot be reached.
        """
        from batch_rag.generation.llm import get_llm
        from batch_rag.ingestion.embedder import ChunkEmbedTransform, get_embedding_function
        from batch_rag.retrieval.chroma_store import ChromaVectorStore
        from batch_rag.retrieval.retriever import SemanticRetriever

        embeddings = get_embedding_function()
        store = ChromaVectorStore()
        limiter = RateLimiter(settings.rate_interval_seconds, settings.rate_burst, name="embeddings")
        uploader = Uploader(
            store,
            ChunkEmbedTransform(
                embeddings,
                chunk_size=settings.chunk_size,
                chunk_overlap=settings.chunk_overlap,
                strategy=settings.chunk_strategy,
            ),
            limiter=limiter,
        )
        generator = Generator(SemanticRetriever(store, embeddings), get_llm())
        logger.info(
            "RAG client ready (collection=%s, chunking=%s, workers=%d, batch_size=%d)",
            settings.chroma_collection,
            settings.chunk_strategy,
            settings.workers,
            settings.batch_size,
        )
        return cls(uploader, generator, limiter=limiter)

    def upload(self, source: str | Path, cancel: threading.Event | None = None) -> UploadResult:
        """Ingest *source* into the vector store."""
        return self.uploader.upload(source, cancel=cancel)

    def query(self, prompt: str, *, k: int | None = None) -> Answer:
        """Answer *prompt* from the indexed documents."""
        return self.generator.generate(prompt, k=k)

    def health_check(self) -> bool:
        """True when the vector store answers."""
        return self.uploader.store.health_check()

    def close(self) -> None:
        if self.limiter is not None:
            self.limiter.close()
