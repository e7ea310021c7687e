"""Uploader — load → chunk+embed (batch pipeline) → index.

Each stage fails fast when it produces nothing: an upload that loaded no
documents, produced no chunks, or stored no vectors raises
:class:`~batch_rag.errors.PipelineLevelError` instead of returning an empty
success. Dropped batches alone do not fail an upload; they are logged and
reported on the :class:`UploadResult`.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from batch_rag.batching import BatchFailure, BatchPipeline, BatchTransform, PipelineConfig
from batch_rag.config import settings
from batch_rag.errors import PipelineLevelError
from batch_rag.ingestion.loader import load_source

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from batch_rag.batching import RateLimiter
    from batch_rag.retrieval.base import VectorStoreBase

logger = logging.getLogger(__name__)

LoaderFn = Callable[[str | Path], "list[Document]"]


@dataclass
class UploadResult:
    """Outcome of one upload."""

    source: str
    ids: list[str]
    documents_loaded: int
    chunks_indexed: int
    failures: list[BatchFailure] = field(default_factory=list)

    @property
    def dropped_batches(self) -> int:
        return len(self.failures)


class Uploader:
    """Ingest one source into the vector store.

    Parameters
    ----------
    store:
        Destination vector store.
    transform:
        Batch transform that turns loaded documents into embedded chunks,
        normally a :class:`~batch_rag.ingestion.embedder.ChunkEmbedTransform`.
    loader:
        Callable that loads a source path into documents.
    config:
        Worker-pool configuration; defaults to the global settings.
    limiter:
        Optional limiter shared with other pipelines hitting the same API.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        transform: BatchTransform,
        *,
        loader: LoaderFn = load_source,
        config: PipelineConfig | None = None,
        limiter: RateLimiter | None = None,
    ) -> None:
        self._store = store
        self._loader = loader
        self._pipeline = BatchPipeline(
            transform,
            config or PipelineConfig.from_settings(settings),
            limiter=limiter,
        )

    @property
    def store(self) -> VectorStoreBase:
        return self._store

    def upload(self, source: str | Path, cancel: threading.Event | None = None) -> UploadResult:
        """Load *source*, embed it through the batch pipeline and index it.

        Raises
        ------
        PipelineLevelError
            When loading, chunking or indexing yields nothing.
        PipelineCancelled
            When *cancel* fires mid-run.
        OSError
            When *source* cannot be read.
        """
        docs = self._loader(source)
        if not docs:
            raise PipelineLevelError(f"no documents loaded from {source}")

        result = self._pipeline.run(docs, cancel=cancel)
        for failure in result.failures:
            logger.warning(
                "Batch %d (%d documents) from %s was not ingested: %s",
                failure.batch_index,
                failure.size,
                source,
                failure.error,
            )
        if not result.items:
            raise PipelineLevelError(
                f"no chunks produced from {source} ({result.dropped} of {result.batches_dispatched} batches failed)"
            )

        ids = self._store.add_documents(result.items)
        if not ids:
            raise PipelineLevelError(f"vector store returned no ids for {source}")

        logger.info(
            "Uploaded %s: %d documents → %d chunks indexed (%d batches dropped)",
            source,
            len(docs),
            len(ids),
            result.dropped,
        )
        return UploadResult(
            source=str(source),
            ids=ids,
            documents_loaded=len(docs),
            chunks_indexed=len(ids),
            failures=result.failures,
        )
