"""Document loaders — thin wrappers around LangChain document loaders."""

from __future__ import annotations

import logging
from pathlib import Path

from langchain_community.document_loaders import (
    PyPDFLoader,
    TextLoader,
    UnstructuredMarkdownLoader,
)
from langchain_core.documents import Document
from pypdf.errors import PyPdfError

from batch_rag.config import settings

logger = logging.getLogger(__name__)


PDF_SUFFIXES = frozenset({".pdf"})
MARKDOWN_SUFFIXES = frozenset({".md", ".markdown"})
TEXT_SUFFIXES = frozenset({".txt", ".text", ".rst", ".log"})


def load_directory(path: str | Path) -> list[Document]:
    """Recursively load all supported documents from *path*.

    Each file is dispatched on its suffix the same way :func:`load_source`
    dispatches a single file; files with other suffixes are skipped.

    Parameters
    ----------
    path:
        Root directory containing source documents.

    Returns
    -------
    list[Document]
        Flat list of LangChain ``Document`` objects with metadata, in path
        order.
    """
    supported = PDF_SUFFIXES | MARKDOWN_SUFFIXES | TEXT_SUFFIXES
    docs: list[Document] = []
    for file in sorted(Path(path).rglob("*")):
        if not file.is_file():
            continue
        if file.suffix.lower() not in supported:
            logger.debug("Skipping unsupported file %s", file)
            continue
        docs.extend(_load_file(file))
    return docs


def load_pdf(path: str | Path, split_pages: bool | None = None) -> list[Document]:
    """Load a single PDF file, one document per page by default.

    With ``split_pages=False`` the pages are merged into a single document
    whose metadata records the page count.
    """
    if split_pages is None:
        split_pages = settings.pdf_split_pages
    try:
        pages = PyPDFLoader(str(path)).load()
    except PyPdfError as exc:
        raise OSError(f"cannot parse PDF {path}: {exc}") from exc
    if split_pages or not pages:
        return pages
    return [
        Document(
            page_content="\n".join(p.page_content for p in pages),
            metadata={"source": str(path), "page_count": len(pages)},
        )
    ]


def load_markdown(path: str | Path) -> list[Document]:
    """Load a single Markdown file."""
    return UnstructuredMarkdownLoader(str(path)).load()


def load_text(path: str | Path) -> list[Document]:
    """Load a single UTF-8 text file.

    Raises
    ------
    OSError
        If the file cannot be read or decoded.
    """
    try:
        return TextLoader(str(path), encoding="utf-8").load()
    except RuntimeError as exc:
        raise OSError(f"cannot read {path} as text: {exc.__cause__ or exc}") from exc


def _load_file(path: Path) -> list[Document]:
    suffix = path.suffix.lower()
    if suffix in PDF_SUFFIXES:
        return load_pdf(path)
    if suffix in MARKDOWN_SUFFIXES:
        return load_markdown(path)
    return load_text(path)


def load_source(source: str | Path) -> list[Document]:
    """Load *source*, picking a loader from the path.

    Directories are walked recursively; files are dispatched on their
    suffix (``.pdf``, ``.md``/``.markdown``, anything else as text); inside a
    directory only known suffixes are loaded. Every returned document
    carries ``metadata["source"]``.

    Raises
    ------
    FileNotFoundError
        If *source* does not exist.
    OSError
        If a file cannot be read or decoded.
    """
    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"no such file or directory: {source}")

    docs = load_directory(path) if path.is_dir() else _load_file(path)

    for doc in docs:
        doc.metadata.setdefault("source", str(path))
    logger.info("Loaded %d documents from %s", len(docs), path)
    return docs
