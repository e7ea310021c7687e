"""Unit tests for the chunker module."""

import pytest
from langchain_core.documents import Document
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_experimental.text_splitter import SemanticChunker
from langchain_text_splitters import RecursiveCharacterTextSplitter

from batch_rag.errors import ConfigurationError
from batch_rag.ingestion.chunker import chunk_documents, chunk_id, make_splitter


def test_chunk_documents_splits_long_text() -> None:
    """A document longer than chunk_size should be split."""
    long_text = "word " * 500  # ~2500 chars
    docs = [Document(page_content=long_text, metadata={"source": "test"})]
    chunks = chunk_documents(docs, chunk_size=256, chunk_overlap=32)
    assert len(chunks) > 1
    assert all(len(c.page_content) <= 256 for c in chunks)


def test_chunk_documents_preserves_metadata() -> None:
    """Metadata from the source document should be preserved in chunks."""
    docs = [Document(page_content="Short text.", metadata={"source": "test.md", "page": 3})]
    chunks = chunk_documents(docs, chunk_size=256, chunk_overlap=0)
    assert all(c.metadata.get("source") == "test.md" for c in chunks)
    assert all(c.metadata.get("page") == 3 for c in chunks)


def test_chunk_documents_empty_input() -> None:
    """An empty list should return an empty list."""
    assert chunk_documents([]) == []


def test_chunk_index_restarts_per_document() -> None:
    docs = [
        Document(page_content="alpha " * 100, metadata={"source": "a.txt"}),
        Document(page_content="beta " * 100, metadata={"source": "b.txt"}),
    ]
    chunks = chunk_documents(docs, chunk_size=128, chunk_overlap=0)

    for source in ("a.txt", "b.txt"):
        indexes = [c.metadata["chunk_index"] for c in chunks if c.metadata["source"] == source]
        assert indexes == list(range(len(indexes)))


def test_chunk_ids_are_deterministic() -> None:
    docs = [Document(page_content="word " * 200, metadata={"source": "doc.txt"})]
    first = chunk_documents(docs, chunk_size=128, chunk_overlap=16)
    second = chunk_documents(
        [Document(page_content="word " * 200, metadata={"source": "doc.txt"})], chunk_size=128, chunk_overlap=16
    )
    assert [c.id for c in first] == [c.id for c in second]
    assert len({c.id for c in first}) == len(first)


def test_chunk_id_depends_on_source() -> None:
    assert chunk_id("a.txt", 0, "same") != chunk_id("b.txt", 0, "same")
    assert len(chunk_id("a.txt", 0, "same")) == 16


def test_repeated_pdf_pages_get_distinct_ids() -> None:
    """Boilerplate repeated on every page must not collapse into one record."""
    pages = [
        Document(page_content="Company confidential", metadata={"source": "deck.pdf", "page": page})
        for page in (0, 1, 2)
    ]
    chunks = chunk_documents(pages)

    assert len(chunks) == 3
    assert len({c.id for c in chunks}) == 3
    assert chunk_id("deck.pdf", 0, "x", page=0) != chunk_id("deck.pdf", 0, "x", page=1)


def test_char_count_matches_content() -> None:
    docs = [Document(page_content="Some text here.", metadata={"source": "x"})]
    (chunk,) = chunk_documents(docs)
    assert chunk.metadata["char_count"] == len(chunk.page_content)


def test_blank_document_yields_no_chunks() -> None:
    assert chunk_documents([Document(page_content="   \n\n  ", metadata={"source": "blank.txt"})]) == []


# ── Splitter selection ──────────────────────────────────────────────────


class TestMakeSplitter:
    def test_recursive_is_default(self) -> None:
        assert isinstance(make_splitter(), RecursiveCharacterTextSplitter)

    def test_semantic_needs_embeddings(self) -> None:
        with pytest.raises(ConfigurationError, match="embedding model"):
            make_splitter("semantic")

    def test_unknown_strategy_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="unknown chunk strategy"):
            make_splitter("fixed")

    def test_semantic_chunks_cover_every_sentence(self) -> None:
        sentences = [f"Sentence number {i} talks about topic {i % 3}." for i in range(12)]
        text = " ".join(sentences)
        splitter = make_splitter("semantic", embeddings=DeterministicFakeEmbedding(size=8), min_chunk_size=20)
        assert isinstance(splitter, SemanticChunker)

        chunks = chunk_documents([Document(page_content=text, metadata={"source": "notes.txt"})], splitter=splitter)

        assert chunks
        assert " ".join(c.page_content for c in chunks) == text
        assert [c.metadata["chunk_index"] for c in chunks] == list(range(len(chunks)))
        assert all(c.metadata["source"] == "notes.txt" for c in chunks)
