"""Prompt templates for answer generation.

Keeping prompts in one place makes them easy to audit and version.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.messages import HumanMessage, SystemMessage

from batch_rag.errors import PipelineLevelError

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

    from batch_rag.retrieval.models import RetrievalResult

CONTEXT_SEPARATOR = "\n---\n"

# ── Context assembly ─────────────────────────────────────────────────


def assemble_context(results: list[RetrievalResult]) -> str:
    """Render retrieved passages as numbered ``Result i:`` blocks.

    Raises
    ------
    PipelineLevelError
        If there is nothing to ground an answer on.
    """
    blocks = [
        f"Result {i}: {r.citation.short_ref()}\n{r.content}"
        for i, r in enumerate(results, 1)
        if r.content.strip()
    ]
    if not blocks:
        raise PipelineLevelError("no retrieved content to assemble into a context")
    return CONTEXT_SEPARATOR.join(blocks)


# ── Answer ────────────────────────────────────────────────────────────

ANSWER_SYSTEM = """\
You are an intelligent assistant answering questions from a private
document collection.

You are given the user's question and a set of retrieved context passages,
each labelled "Result N" with its source reference.

Guidelines:
- Refine and reorganise the context into a concise, high-quality answer.
- Use only information present in the passages.
- Cite the passages you rely on by their source reference, e.g.
  [guide.pdf§3].
- If the passages do not answer the question, say so plainly.
"""


def build_answer_prompt(query: str, context: str) -> list[BaseMessage]:
    """Build the chat messages for the final answer."""
    return [
        SystemMessage(content=ANSWER_SYSTEM),
        HumanMessage(
            content=(
                f"User query: {query}\n\n"
                f"Here are retrieved context documents:\n{context}\n\n"
                "Answer the query using the context above."
            )
        ),
    ]
