"""
Ingestion — document loading, chunking, embedding and indexing.

This module turns a source (PDF, Markdown, text file or a directory of
them) into embedded chunks stored in a vector database.  Chunking and
embedding run through the concurrent batch pipeline in
:mod:`batch_rag.batching`; loading and indexing are single calls.
"""
