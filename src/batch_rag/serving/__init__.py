"""
Serving — FastAPI application for upload and query.

Run with ``uvicorn batch_rag.serving.app:app``.
"""
