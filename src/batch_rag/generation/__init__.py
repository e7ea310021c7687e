"""
Generation — turn retrieved chunks into a grounded answer.

Public API
----------
- :class:`Generator` — retrieve → assemble context → call the chat model.
- :class:`Answer` — the generated text plus the sources it was grounded on.
- :func:`get_llm` — configured chat model factory.
"""

from batch_rag.generation.generator import Answer, Generator
from batch_rag.generation.llm import get_llm

__all__ = ["Answer", "Generator", "get_llm"]
