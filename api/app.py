# Path: api/app.py
# Purpose: Expose a FastAPI application for chat-driven and paginated image search.
# Layer: api.
# Details: Thin HTTP adapter over SearchPipeline; maps fatal search errors onto HTTP status codes.

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from inkfinder.errors import EmbeddingServiceError, MissingEmbeddingError
from inkfinder.models.domain import SearchPage, SimilarityIntent
from inkfinder.search.pipeline import SearchPipeline

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    text: str = Field(..., min_length=1)


class SearchRequest(BaseModel):
    intent: Dict[str, Any] = Field(..., description="searchParams-style mapping with a 'type' key.")
    page: int = Field(default=0, ge=0)
    page_size: Optional[int] = Field(default=None, ge=1, alias="pageSize")
    threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    model_config = {"populate_by_name": True}


def _page_payload(page: SearchPage) -> Dict[str, Any]:
    return {
        "results": [record.to_dict() for record in page.records],
        "totalCount": page.total_count,
        "page": page.pagination.page,
        "pageSize": page.pagination.page_size,
        "error": str(page.error) if page.error is not None else None,
    }


def create_app(pipeline: Optional[SearchPipeline] = None):  # type: ignore[override]
    """Create a FastAPI app instance configured with the provided search pipeline."""

    from fastapi import FastAPI, File, Form, HTTPException, UploadFile
    from fastapi.concurrency import run_in_threadpool

    app = FastAPI(title="inkfinder API", version="0.1.0")

    def require_pipeline() -> SearchPipeline:
        if pipeline is None:
            raise HTTPException(status_code=500, detail="Search pipeline is not configured.")
        return pipeline

    def translate(exc: Exception) -> HTTPException:
        status = 404 if isinstance(exc, MissingEmbeddingError) else 502
        logger.warning(f"Similarity search failed with {status}: {exc}")
        return HTTPException(status_code=status, detail=str(exc))

    @app.get("/health")
    def health() -> Dict[str, str]:
        """Return a simple health status payload."""

        return {"status": "ok"}

    @app.post("/chat")
    def chat(payload: ChatRequest) -> Dict[str, Any]:
        """Route a chat message into image search when it looks like one."""

        service = require_pipeline()
        if not service.looks_like_image_search(payload.text):
            return {"isImageSearch": False, "searchParams": None, "results": [], "response": None}
        try:
            outcome = service.process_image_search_request(payload.text)
        except (MissingEmbeddingError, EmbeddingServiceError) as exc:
            raise translate(exc) from exc
        return {"isImageSearch": True, **outcome.to_dict()}

    @app.post("/search")
    def search(payload: SearchRequest) -> Dict[str, Any]:
        """Run one page of a search for an explicit intent."""

        service = require_pipeline()
        try:
            page = service.search(
                payload.intent, page=payload.page, page_size=payload.page_size, threshold=payload.threshold
            )
        except (MissingEmbeddingError, EmbeddingServiceError) as exc:
            raise translate(exc) from exc
        return _page_payload(page)

    @app.post("/search/similar")
    async def search_similar(
        image: UploadFile = File(...),
        limit: int = Form(20),
        threshold: Optional[float] = Form(None),
    ) -> Dict[str, Any]:
        """Find images similar to an uploaded image."""

        service = require_pipeline()
        data = await image.read()
        if not data:
            raise HTTPException(status_code=400, detail="Uploaded image is empty.")
        intent = SimilarityIntent(raw_image=data, limit=limit, threshold=threshold)
        try:
            page = await run_in_threadpool(service.search, intent, page=0, page_size=limit)
        except (MissingEmbeddingError, EmbeddingServiceError) as exc:
            raise translate(exc) from exc
        return _page_payload(page)

    @app.get("/folders")
    def folders() -> Dict[str, Any]:
        """List the folder hierarchy derived from stored image paths."""

        return {"folders": [node.to_dict() for node in require_pipeline().folder_hierarchy()]}

    @app.get("/body-parts")
    def body_parts() -> Dict[str, Any]:
        """Return analysed image counts per body part."""

        return {"counts": require_pipeline().body_part_counts()}

    return app
