"""Shared configuration loaded from environment / ``.env``."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="OpenAI API key (or dummy value for local vLLM)")
    llm_model_name: str = Field(default="gpt-4o-mini", description="LLM model identifier")
    llm_base_url: str = Field(
        default="",
        description=(
            "Base URL for an OpenAI-compatible chat API. Leave empty to use "
            "OpenAI cloud, e.g. 'http://localhost:8000/v1' for a local vLLM server."
        ),
    )
    llm_temperature: float = 0.0

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "batch_rag"
    chroma_distance: str = "cosine"

    # Embedding
    embedding_provider: str = Field(default="huggingface", description="'huggingface' (local) or 'openai'")
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    openai_embedding_model: str = "text-embedding-3-small"

    # Loading / chunking
    pdf_split_pages: bool = Field(default=True, description="Emit one document per PDF page")
    chunk_strategy: str = Field(default="recursive", description="'recursive' or 'semantic'")
    chunk_size: int = Field(default=512, gt=0)
    chunk_overlap: int = Field(default=64, ge=0)
    semantic_buffer_size: int = Field(default=2, ge=0, description="Neighbouring sentences grouped per embedding")
    semantic_min_chunk_size: int = Field(default=100, ge=0)
    semantic_breakpoint_percentile: float = Field(default=90.0, gt=0, le=100)

    # Worker pool
    workers: int = Field(default=3, gt=0, description="Concurrent batch workers")
    batch_size: int = Field(default=10, gt=0, description="Documents per batch")
    max_retries: int = Field(default=5, ge=0, description="Retries after rate-limit rejections")
    rate_interval_seconds: float = Field(default=2.0, gt=0, description="Refill interval of the shared limiter")
    rate_burst: int = Field(default=1, gt=0, description="Permits granted per refill interval")
    backoff_base_seconds: float = Field(default=2.0, ge=0, description="First retry delay; doubles per retry")
    preserve_order: bool = Field(default=False, description="Reassemble batches in dispatch order")

    # Retrieval
    retriever_top_k: int = Field(default=5, gt=0)
    score_threshold: float = 0.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Import `settings` wherever needed.
settings = Settings()
