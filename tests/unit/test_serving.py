"""Unit tests for the serving layer."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from batch_rag.errors import GenerationError, PipelineLevelError, StoreError
from batch_rag.generation.generator import Answer
from batch_rag.ingestion.uploader import UploadResult
from batch_rag.serving.app import app, get_client


@pytest.fixture()
def rag_client() -> MagicMock:
    return MagicMock()


@pytest.fixture()
def http(rag_client: MagicMock):
    app.dependency_overrides[get_client] = lambda: rag_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health_endpoint() -> None:
    """GET /health should return 200 with status ok."""
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


# ── /ready ──────────────────────────────────────────────────────────────


def test_ready_when_store_answers(http: TestClient, rag_client: MagicMock) -> None:
    rag_client.health_check.return_value = True
    response = http.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready"}


def test_not_ready_when_store_down(http: TestClient, rag_client: MagicMock) -> None:
    rag_client.health_check.return_value = False
    assert http.get("/ready").status_code == 503


def test_unreachable_store_at_startup_is_503() -> None:
    def unreachable() -> MagicMock:
        raise StoreError("cannot open Chroma collection")

    app.dependency_overrides[get_client] = unreachable
    try:
        response = TestClient(app).get("/ready")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 503
    assert "cannot open Chroma collection" in response.json()["detail"]


# ── /upload ─────────────────────────────────────────────────────────────


def test_upload_returns_ids(http: TestClient, rag_client: MagicMock) -> None:
    rag_client.upload.return_value = UploadResult(
        source="data/doc.pdf", ids=["a", "b", "c"], documents_loaded=1, chunks_indexed=3
    )

    response = http.post("/upload", json={"source": "data/doc.pdf"})

    assert response.status_code == 200
    assert response.json() == {"ids": ["a", "b", "c"], "documents_loaded": 1, "chunks_indexed": 3, "dropped_batches": 0}
    rag_client.upload.assert_called_once_with("data/doc.pdf")


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (FileNotFoundError("no such file"), 404),
        (OSError("cannot read x as text"), 422),
        (PipelineLevelError("no documents loaded"), 422),
        (StoreError("upsert failed"), 502),
    ],
)
def test_upload_errors_map_to_status(http: TestClient, rag_client: MagicMock, error: Exception, status: int) -> None:
    rag_client.upload.side_effect = error
    response = http.post("/upload", json={"source": "x"})
    assert response.status_code == status
    assert str(error) in response.json()["detail"]


# ── /query ──────────────────────────────────────────────────────────────


def test_query_returns_answer(http: TestClient, rag_client: MagicMock) -> None:
    rag_client.query.return_value = Answer(text="Milvus is a vector DB.", sources=["milvus.pdf"])

    response = http.post("/query", json={"query": "What is Milvus?", "k": 3})

    assert response.status_code == 200
    assert response.json() == {"answer": "Milvus is a vector DB.", "sources": ["milvus.pdf"]}
    rag_client.query.assert_called_once_with("What is Milvus?", k=3)


def test_query_rejects_non_positive_k(http: TestClient) -> None:
    response = http.post("/query", json={"query": "q", "k": 0})
    assert response.status_code == 422


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (PipelineLevelError("no documents retrieved"), 422),
        (GenerationError("chat model call failed"), 502),
    ],
)
def test_query_errors_map_to_status(http: TestClient, rag_client: MagicMock, error: Exception, status: int) -> None:
    rag_client.query.side_effect = error
    response = http.post("/query", json={"query": "q"})
    assert response.status_code == status
