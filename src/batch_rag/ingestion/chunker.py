"""Text chunking strategies."""

from __future__ import annotations

import hashlib
from typing import TYPE_CHECKING, Any

from langchain_experimental.text_splitter import SemanticChunker
from langchain_text_splitters import RecursiveCharacterTextSplitter

from batch_rag.errors import ConfigurationError

if TYPE_CHECKING:
    from langchain_core.documents import Document
    from langchain_core.embeddings import Embeddings
    from langchain_text_splitters import TextSplitter

CHUNK_STRATEGIES = ("recursive", "semantic")


def chunk_id(source: str, chunk_index: int, text: str, page: Any = None) -> str:
    """Deterministic chunk id so re-ingesting a file overwrites, not duplicates.

    *page* keeps identical boilerplate on different pages of one PDF apart.
    """
    key = f"{source}:{chunk_index}:{text}" if page is None else f"{source}:{page}:{chunk_index}:{text}"
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def make_splitter(
    strategy: str = "recursive",
    *,
    chunk_size: int = 512,
    chunk_overlap: int = 64,
    embeddings: Embeddings | None = None,
    buffer_size: int = 2,
    min_chunk_size: int = 100,
    breakpoint_percentile: float = 90.0,
) -> TextSplitter | SemanticChunker:
    """Build the splitter for *strategy*.

    ``recursive`` splits on paragraph, line, sentence and word boundaries up to
    *chunk_size* characters. ``semantic`` groups sentences and starts a new
    chunk where the embedding distance between neighbouring groups exceeds the
    *breakpoint_percentile*; it needs *embeddings*.
    """
    if strategy == "recursive":
        return RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=len,
            separators=["\n\n", "\n", ". ", " ", ""],
        )
    if strategy == "semantic":
        if embeddings is None:
            raise ConfigurationError("semantic chunking needs an embedding model")
        return SemanticChunker(
            embeddings,
            buffer_size=buffer_size,
            breakpoint_threshold_type="percentile",
            breakpoint_threshold_amount=breakpoint_percentile,
            min_chunk_size=min_chunk_size,
        )
    raise ConfigurationError(f"unknown chunk strategy {strategy!r}; expected one of {CHUNK_STRATEGIES}")


def chunk_documents(
    documents: list[Document],
    chunk_size: int = 512,
    chunk_overlap: int = 64,
    *,
    splitter: TextSplitter | SemanticChunker | None = None,
) -> list[Document]:
    """Split *documents* into smaller chunks for embedding.

    Parameters
    ----------
    documents:
        Source documents produced by a loader.
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of overlapping characters between consecutive chunks.
    splitter:
        Pre-built splitter from :func:`make_splitter`; overrides the two
        size arguments.

    Returns
    -------
    list[Document]
        Chunked documents ready for embedding. Each carries an ``id`` plus
        ``chunk_index`` (position within its source document) and
        ``char_count`` metadata. Blank chunks are dropped.
    """
    if splitter is None:
        splitter = make_splitter(chunk_size=chunk_size, chunk_overlap=chunk_overlap)
    chunks: list[Document] = []
    for doc in documents:
        pieces = [c for c in splitter.split_documents([doc]) if c.page_content.strip()]
        for index, chunk in enumerate(pieces):
            source = str(chunk.metadata.get("source", "unknown"))
            chunk.metadata["chunk_index"] = index
            chunk.metadata["char_count"] = len(chunk.page_content)
            chunk.id = chunk_id(source, index, chunk.page_content, chunk.metadata.get("page"))
            chunks.append(chunk)
    return chunks
