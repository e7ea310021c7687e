"""Domain models for retrieval results and their provenance."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class MetadataFilter(BaseModel):
    """Declarative metadata filter for vector-store queries.

    Attributes
    ----------
    field:
        The metadata key to filter on (e.g. ``"source"``, ``"page"``).
    operator:
        Comparison operator — one of ``eq``, ``ne``, ``gt``, ``gte``,
        ``lt``, ``lte``, ``in``, ``nin``.
    value:
        The value (or list of values for ``in`` / ``nin``) to compare against.
    """

    field: str
    operator: str = "eq"
    value: Any = None

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="eq", value=value)

    @classmethod
    def one_of(cls, field: str, values: list[Any]) -> MetadataFilter:
        return cls(field=field, operator="in", value=values)


class Citation(BaseModel):
    """Where a retrieved chunk came from.

    Attributes
    ----------
    document_id:
        The vector-store ID of the chunk (``None`` when unknown).
    source:
        File path or URL the chunk was loaded from.
    chunk_index:
        Ordinal position of the chunk within its source document.
    page:
        Page number for paginated sources such as PDFs.
    score:
        Similarity score returned by the vector store.
    metadata:
        Remaining metadata stored alongside the chunk.
    """

    document_id: str | None = None
    source: str = "unknown"
    chunk_index: int | None = None
    page: int | None = None
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def short_ref(self) -> str:
        """Return a compact ``[source§chunk]`` reference string."""
        chunk = self.chunk_index if self.chunk_index is not None else "?"
        return f"[{self.source}§{chunk}]"


class RetrievalResult(BaseModel):
    """A single retrieved passage together with its citation."""

    content: str
    citation: Citation

    def __str__(self) -> str:  # noqa: D105
        return f"{self.citation.short_ref()} {self.content[:120]}…"
