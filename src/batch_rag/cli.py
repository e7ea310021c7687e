"""Command-line entry point.

Usage
-----
    batch-rag upload data/document.pdf
    batch-rag query "What is Milvus?"
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading

from batch_rag.errors import BatchRagError, PipelineCancelled

logger = logging.getLogger("batch_rag")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="batch-rag", description="Batch RAG ingestion and query")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    upload = sub.add_parser("upload", help="Ingest a file or directory")
    upload.add_argument("source", help="Path to a PDF, Markdown or text file, or a directory")

    query = sub.add_parser("query", help="Ask a question about the ingested documents")
    query.add_argument("text", help="The question")
    query.add_argument("-k", type=int, default=None, help="Number of passages to retrieve")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s",
    )

    from batch_rag.client import RagClient

    client: RagClient | None = None
    try:
        client = RagClient.from_settings()
        if args.command == "upload":
            cancel = threading.Event()
            # First Ctrl-C cancels the run; waits inside the pipeline return promptly.
            signal.signal(signal.SIGINT, lambda *_: cancel.set())
            result = client.upload(args.source, cancel=cancel)
            print(f"Indexed {result.chunks_indexed} chunks from {result.documents_loaded} documents")
            if result.dropped_batches:
                print(f"{result.dropped_batches} batches were dropped; see the log for details")
        else:
            answer = client.query(args.text, k=args.k)
            print(answer.text)
            if answer.sources:
                print("\nSources: " + ", ".join(answer.sources))
    except PipelineCancelled:
        logger.warning("Cancelled")
        return 130
    except (BatchRagError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    finally:
        if client is not None:
            client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
