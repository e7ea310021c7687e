"""Generator — answer a query from retrieved context.

Flow: embed + search (via :class:`SemanticRetriever`) → assemble the hits
into a prompt context → call the chat model → extract its text.  Both an
empty retrieval and an empty model response are pipeline-level errors.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from batch_rag.errors import GenerationError, PipelineLevelError
from batch_rag.generation.prompts import assemble_context, build_answer_prompt

if TYPE_CHECKING:
    from langchain_core.language_models import BaseChatModel

    from batch_rag.retrieval.retriever import SemanticRetriever

logger = logging.getLogger(__name__)


class Answer(BaseModel):
    """A generated answer and the sources it was grounded on."""

    text: str
    sources: list[str] = []


def _message_text(message: Any) -> str:
    """Pull plain text out of a chat-model response."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts).strip()
    return ""


class Generator:
    """Retrieval-augmented answer generation.

    Parameters
    ----------
    retriever:
        Used to fetch the top-k passages for a query.
    llm:
        Any LangChain chat model; see :func:`~batch_rag.generation.llm.get_llm`.
    """

    def __init__(self, retriever: SemanticRetriever, llm: BaseChatModel) -> None:
        self._retriever = retriever
        self._llm = llm

    def generate(self, query: str, *, k: int | None = None) -> Answer:
        """Answer *query* from the indexed documents.

        Raises
        ------
        PipelineLevelError
            If retrieval returns nothing or the model returns no text.
        GenerationError
            If the chat model call fails.
        """
        results = self._retriever.search(query, k=k)
        if not results:
            raise PipelineLevelError(f"no documents retrieved for query {query!r}")

        context = assemble_context(results)
        messages = build_answer_prompt(query, context)

        try:
            response = self._llm.invoke(messages)
        except Exception as exc:
            raise GenerationError(f"chat model call failed: {exc}") from exc

        text = _message_text(response)
        if not text:
            raise PipelineLevelError("chat model returned an empty response")

        sources = list(dict.fromkeys(r.citation.source for r in results))
        logger.info("Generated %d-char answer from %d passages", len(text), len(results))
        return Answer(text=text, sources=sources)
