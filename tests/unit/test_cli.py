"""Unit tests for the command-line entry point and RagClient wiring."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.language_models import FakeListChatModel

from batch_rag import cli
from batch_rag.client import RagClient
from batch_rag.config import settings
from batch_rag.errors import PipelineCancelled, PipelineLevelError, StoreError
from batch_rag.generation.generator import Answer
from batch_rag.ingestion.uploader import UploadResult


@pytest.fixture()
def rag_client(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    fake = MagicMock()
    monkeypatch.setattr(RagClient, "from_settings", classmethod(lambda cls: fake))
    # Keep pytest's own SIGINT handler in place.
    monkeypatch.setattr(cli.signal, "signal", MagicMock())
    return fake


def test_upload_prints_summary(rag_client: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    rag_client.upload.return_value = UploadResult(
        source="docs/", ids=["a", "b"], documents_loaded=1, chunks_indexed=2
    )

    assert cli.main(["upload", "docs/"]) == 0

    assert "Indexed 2 chunks from 1 documents" in capsys.readouterr().out
    args, kwargs = rag_client.upload.call_args
    assert args == ("docs/",)
    assert kwargs["cancel"] is not None


def test_query_prints_answer_and_sources(rag_client: MagicMock, capsys: pytest.CaptureFixture[str]) -> None:
    rag_client.query.return_value = Answer(text="It is a vector DB.", sources=["milvus.pdf"])

    assert cli.main(["query", "What is Milvus?", "-k", "3"]) == 0

    out = capsys.readouterr().out
    assert "It is a vector DB." in out
    assert "Sources: milvus.pdf" in out
    rag_client.query.assert_called_once_with("What is Milvus?", k=3)


def test_pipeline_error_exit_code(rag_client: MagicMock) -> None:
    rag_client.query.side_effect = PipelineLevelError("no documents retrieved")
    assert cli.main(["query", "anything"]) == 1


def test_cancelled_exit_code(rag_client: MagicMock) -> None:
    rag_client.upload.side_effect = PipelineCancelled("interrupted")
    assert cli.main(["upload", "docs/"]) == 130


def test_unreadable_source_exit_code(rag_client: MagicMock) -> None:
    rag_client.upload.side_effect = OSError("cannot read notes.txt as text")
    assert cli.main(["upload", "notes.txt"]) == 1
    rag_client.close.assert_called_once()


def test_unreachable_store_exit_code(monkeypatch: pytest.MonkeyPatch) -> None:
    def unreachable(cls):
        raise StoreError("cannot open Chroma collection 'batch_rag' at localhost:8000")

    monkeypatch.setattr(RagClient, "from_settings", classmethod(unreachable))
    assert cli.main(["query", "anything"]) == 1


# ── RagClient ───────────────────────────────────────────────────────────


def test_client_delegates() -> None:
    uploader, generator = MagicMock(), MagicMock()
    client = RagClient(uploader, generator)

    client.upload("data/", cancel=None)
    client.query("q", k=2)

    uploader.upload.assert_called_once_with("data/", cancel=None)
    generator.generate.assert_called_once_with("q", k=2)


def test_client_health_check_asks_the_store() -> None:
    uploader = MagicMock()
    uploader.store.health_check.return_value = False
    assert RagClient(uploader, MagicMock()).health_check() is False


class TestFromSettings:
    @pytest.fixture()
    def client(self, monkeypatch: pytest.MonkeyPatch):
        from batch_rag.generation import llm
        from batch_rag.ingestion import embedder
        from batch_rag.retrieval import chroma_store

        store = MagicMock()
        store.add_documents.side_effect = lambda docs: [d.id for d in docs]
        monkeypatch.setattr(embedder, "get_embedding_function", lambda: DeterministicFakeEmbedding(size=8))
        monkeypatch.setattr(chroma_store, "ChromaVectorStore", lambda: store)
        monkeypatch.setattr(llm, "get_llm", lambda: FakeListChatModel(responses=["ok"]))
        monkeypatch.setattr(settings, "rate_interval_seconds", 0.01)
        monkeypatch.setattr(settings, "rate_burst", 100)
        monkeypatch.setattr(settings, "chunk_strategy", "recursive")

        client = RagClient.from_settings()
        yield client
        client.close()

    def test_uploads_share_one_limiter(self, client: RagClient, tmp_path: Path) -> None:
        first, second = tmp_path / "a.txt", tmp_path / "b.txt"
        first.write_text("Milvus is a vector database.")
        second.write_text("Chroma is a vector database too.")

        client.upload(first)
        granted = client.limiter.permits_granted
        client.upload(second)

        assert client.uploader._pipeline._limiter is client.limiter
        assert granted >= 1
        assert client.limiter.permits_granted > granted
