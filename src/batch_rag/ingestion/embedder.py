"""Embedding — the chunk+embed batch transform used during ingestion."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from langchain_huggingface import HuggingFaceEmbeddings
from langchain_openai import OpenAIEmbeddings

from batch_rag.config import settings
from batch_rag.errors import ConfigurationError
from batch_rag.ingestion.chunker import chunk_documents, make_splitter
from batch_rag.retrieval.base import EMBEDDING_KEY

if TYPE_CHECKING:
    from langchain_core.documents import Document
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)

EMBEDDING_PROVIDERS = ("huggingface", "openai")


def get_embedding_function(provider: str | None = None) -> Embeddings:
    """Return the configured embedding function.

    ``huggingface`` runs a sentence-transformer locally. ``openai`` calls the
    embeddings API; its client-side retries are disabled so that 429
    rejections reach the pipeline's retry policy instead.
    """
    provider = provider or settings.embedding_provider
    if provider == "huggingface":
        return HuggingFaceEmbeddings(model_name=settings.embedding_model)
    if provider == "openai":
        kwargs: dict = {
            "model": settings.openai_embedding_model,
            "api_key": settings.openai_api_key or "EMPTY",
            "max_retries": 0,
        }
        if settings.llm_base_url:
            kwargs["base_url"] = settings.llm_base_url
        logger.info("Using OpenAI embeddings: %s", settings.openai_embedding_model)
        return OpenAIEmbeddings(**kwargs)
    raise ConfigurationError(f"unknown embedding provider {provider!r}; expected one of {EMBEDDING_PROVIDERS}")


class ChunkEmbedTransform:
    """Batch transform: split a batch of documents, then embed the chunks.

    One call makes one ``embed_documents`` request for the whole batch, so
    one call costs one rate-limiter permit (the ``semantic`` strategy embeds
    sentence groups while splitting and therefore makes extra calls).
    Provider errors propagate unchanged; the retry policy recognises
    rate-limit rejections by their HTTP status.

    Parameters
    ----------
    embeddings:
        Any LangChain ``Embeddings`` implementation.
    chunk_size / chunk_overlap:
        Size limits for the ``recursive`` strategy.
    strategy:
        ``recursive`` or ``semantic``, see
        :func:`~batch_rag.ingestion.chunker.make_splitter`.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        *,
        chunk_size: int = settings.chunk_size,
        chunk_overlap: int = settings.chunk_overlap,
        strategy: str = "recursive",
    ) -> None:
        self.embeddings = embeddings
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.strategy = strategy
        self._splitter = make_splitter(
            strategy,
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            embeddings=embeddings,
            buffer_size=settings.semantic_buffer_size,
            min_chunk_size=settings.semantic_min_chunk_size,
            breakpoint_percentile=settings.semantic_breakpoint_percentile,
        )

    def __call__(self, items: list[Document]) -> list[Document]:
        chunks = chunk_documents(items, splitter=self._splitter)
        if not chunks:
            return []
        vectors = self.embeddings.embed_documents([c.page_content for c in chunks])
        if len(vectors) != len(chunks):
            raise ValueError(f"embedder returned {len(vectors)} vectors for {len(chunks)} chunks")
        for chunk, vector in zip(chunks, vectors):
            chunk.metadata[EMBEDDING_KEY] = list(vector)
        logger.debug("Embedded %d chunks from %d documents", len(chunks), len(items))
        return chunks
