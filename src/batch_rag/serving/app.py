"""FastAPI application exposing upload and query as a REST API."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from batch_rag.client import RagClient
from batch_rag.errors import ConfigurationError, GenerationError, PipelineLevelError, StoreError

app = FastAPI(
    title="Batch RAG API",
    version="0.1.0",
    description="Upload documents into the vector store and ask questions about them.",
)


@lru_cache(maxsize=1)
def get_client() -> RagClient:
    """Build the default client once, on first use."""
    return RagClient.from_settings()


@app.exception_handler(StoreError)
async def store_unavailable(request: Request, exc: StoreError) -> JSONResponse:
    """The client could not be built because the vector store is unreachable."""
    return JSONResponse(status_code=503, content={"detail": str(exc)})


# ── Request / Response schemas ────────────────────────────────────────
class UploadRequest(BaseModel):
    """A file or directory path readable by the server."""

    source: str


class UploadResponse(BaseModel):
    """Outcome of an upload."""

    ids: list[str]
    documents_loaded: int
    chunks_indexed: int
    dropped_batches: int = 0


class QueryRequest(BaseModel):
    """Incoming question from the user."""

    query: str
    k: int | None = Field(default=None, gt=0)


class QueryResponse(BaseModel):
    """Answer returned by the generator."""

    answer: str
    sources: list[str] = []


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}


@app.get("/ready")
def ready(client: RagClient = Depends(get_client)) -> dict[str, str]:
    """Readiness: the vector store must answer."""
    if not client.health_check():
        raise HTTPException(status_code=503, detail="vector store unavailable")
    return {"status": "ready"}


@app.post("/upload", response_model=UploadResponse)
def upload(request: UploadRequest, client: RagClient = Depends(get_client)) -> UploadResponse:
    """Ingest a source through the batch pipeline."""
    try:
        result = client.upload(request.source)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except OSError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PipelineLevelError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except StoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return UploadResponse(
        ids=result.ids,
        documents_loaded=result.documents_loaded,
        chunks_indexed=result.chunks_indexed,
        dropped_batches=result.dropped_batches,
    )


@app.post("/query", response_model=QueryResponse)
def query(request: QueryRequest, client: RagClient = Depends(get_client)) -> QueryResponse:
    """Retrieve context and generate an answer."""
    try:
        answer = client.query(request.query, k=request.k)
    except PipelineLevelError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except (GenerationError, StoreError) as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return QueryResponse(answer=answer.text, sources=answer.sources)
