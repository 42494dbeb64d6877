"""API router exposing document upload, context and clear endpoints."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from pdfquiz.config import ExtractionOptions
from pdfquiz.errors import EmbeddingServiceUnavailable, IngestionError
from pdfquiz.services.rag import IngestResult, RAGService, get_rag_service
from pdfquiz.vectorstore import VectorStoreUnavailableError

LOGGER = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])


class IngestResponse(BaseModel):
    """Response body returned from the upload endpoints."""

    status: str
    namespace: str
    file_name: str
    chunk_count: int
    pages_indexed: list[int]
    skipped_pages: list[int]
    ocr_pages: list[int]
    language: Optional[str] = None
    visibility_confirmed: bool
    sample_text: str
    duration_seconds: float


class ContextRequest(BaseModel):
    """Request body accepted by the context endpoint."""

    query: str = Field(..., min_length=1, description="User message to ground against the uploaded document.")
    top_k: int = Field(3, ge=1, le=20, description="How many chunks should be considered.")
    chat_history: list[tuple[str, str]] = Field(
        default_factory=list,
        description="Recent (sender, content) pairs, oldest first.",
    )


class ContextResponse(BaseModel):
    context: str
    grounded: bool
    system_prompt: str


class ClearResponse(BaseModel):
    status: str
    namespace: str


def parse_page_selection(raw: Optional[str]) -> Optional[List[int]]:
    """Parse a ``"1,2,5"`` form field into page numbers."""

    if raw is None or not raw.strip():
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        raise ValueError(f"Invalid page selection: {raw!r}") from exc


def _extraction_options(
    defaults: ExtractionOptions,
    *,
    min_text_length: Optional[int],
    ocr_language: Optional[str],
    enable_ocr: Optional[bool],
    skip_image_only_pages: Optional[bool],
) -> ExtractionOptions:
    overrides = {
        "min_text_length": min_text_length,
        "ocr_language": ocr_language,
        "enable_ocr": enable_ocr,
        "skip_image_only_pages": skip_image_only_pages,
    }
    return replace(defaults, **{key: value for key, value in overrides.items() if value is not None})


def _serialise(result: IngestResult) -> IngestResponse:
    return IngestResponse(
        status="ok",
        namespace=result.namespace,
        file_name=result.file_name,
        chunk_count=result.chunk_count,
        pages_indexed=result.pages_indexed,
        skipped_pages=result.skipped_pages,
        ocr_pages=result.ocr_pages,
        language=result.language,
        visibility_confirmed=result.visibility_confirmed,
        sample_text=result.sample_text,
        duration_seconds=result.duration_seconds,
    )


def _run_ingest(
    rag_service: RAGService,
    upload: UploadFile,
    chat_id: Optional[str],
    *,
    min_text_length: Optional[int],
    ocr_language: Optional[str],
    enable_ocr: Optional[bool],
    skip_image_only_pages: Optional[bool],
    pages: Optional[str] = None,
) -> IngestResponse:
    file_name = upload.filename or "document.pdf"
    data = upload.file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    try:
        options = _extraction_options(
            rag_service.config.extraction,
            min_text_length=min_text_length,
            ocr_language=ocr_language,
            enable_ocr=enable_ocr,
            skip_image_only_pages=skip_image_only_pages,
        )
        selection = parse_page_selection(pages)
        result = rag_service.ingest(data, chat_id, file_name, options, page_selection=selection)
    except EmbeddingServiceUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except IngestionError as exc:
        raise HTTPException(
            status_code=422,
            detail={"message": exc.user_message, "reason": exc.reason},
        ) from exc
    except VectorStoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _serialise(result)


@router.post("/chats/{chat_id}/documents", response_model=IngestResponse)
def upload_chat_document(
    chat_id: str,
    file: UploadFile = File(...),
    min_text_length: Optional[int] = Form(None),
    ocr_language: Optional[str] = Form(None),
    enable_ocr: Optional[bool] = Form(None),
    skip_image_only_pages: Optional[bool] = Form(None),
    rag_service: RAGService = Depends(get_rag_service),
) -> IngestResponse:
    """Index a PDF into the conversation's own namespace."""

    return _run_ingest(
        rag_service,
        file,
        chat_id,
        min_text_length=min_text_length,
        ocr_language=ocr_language,
        enable_ocr=enable_ocr,
        skip_image_only_pages=skip_image_only_pages,
    )


@router.post("/documents", response_model=IngestResponse)
def upload_shared_document(
    file: UploadFile = File(...),
    pages: Optional[str] = Form(None, description="Comma separated page numbers, at most 10."),
    min_text_length: Optional[int] = Form(None),
    ocr_language: Optional[str] = Form(None),
    enable_ocr: Optional[bool] = Form(None),
    skip_image_only_pages: Optional[bool] = Form(None),
    rag_service: RAGService = Depends(get_rag_service),
) -> IngestResponse:
    """Index a PDF (optionally only some pages) into the shared namespace."""

    return _run_ingest(
        rag_service,
        file,
        None,
        min_text_length=min_text_length,
        ocr_language=ocr_language,
        enable_ocr=enable_ocr,
        skip_image_only_pages=skip_image_only_pages,
        pages=pages,
    )


@router.post("/chats/{chat_id}/context", response_model=ContextResponse)
def build_chat_context(
    chat_id: str,
    request: ContextRequest,
    rag_service: RAGService = Depends(get_rag_service),
) -> ContextResponse:
    """Return the page-cited context and system prompt for a user message."""

    if not request.query.strip():
        raise HTTPException(status_code=422, detail="Query must not be empty")

    prompt = rag_service.build_prompt(
        request.query,
        chat_id,
        top_k=request.top_k,
        chat_history=request.chat_history,
    )
    return ContextResponse(context=prompt.context, grounded=prompt.grounded, system_prompt=prompt.system_prompt)


@router.delete("/chats/{chat_id}/documents", response_model=ClearResponse)
def clear_chat_documents(
    chat_id: str,
    rag_service: RAGService = Depends(get_rag_service),
) -> ClearResponse:
    """Remove every indexed chunk of a conversation."""

    try:
        rag_service.clear_context(chat_id)
    except VectorStoreUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return ClearResponse(status="cleared", namespace=rag_service.namespace(chat_id))


__all__ = ["router", "parse_page_selection"]
