"""
FastAPI server for statement and invoice extraction.
"""

from __future__ import annotations

import logging
import mimetypes
import os
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile

from ..core import AIServiceError, FXConfig, GeminiConfig, LedgerPipeline, PipelineConfig
from ..models import DocumentPage

logger = logging.getLogger(__name__)

app = FastAPI(title="Statement Ledger", version="0.1.0")


def _load_gemini_config() -> Optional[GeminiConfig]:
    api_key = os.getenv("GEMINI_API_KEY")
    project_id = os.getenv("GEMINI_PROJECT_ID")
    model = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

    if api_key:
        return GeminiConfig(api_key=api_key, model=model)

    if project_id:
        return GeminiConfig(
            model=model,
            project_id=project_id,
            location=os.getenv("GEMINI_LOCATION", "us-central1"),
            credentials_path=os.getenv("GEMINI_CREDENTIALS_PATH") or None,
            use_vertex=True
        )

    return None


def get_pipeline() -> LedgerPipeline:
    gemini_config = _load_gemini_config()
    if not gemini_config:
        raise HTTPException(
            status_code=400,
            detail="Missing Gemini config. Set GEMINI_API_KEY or GEMINI_PROJECT_ID."
        )

    config = PipelineConfig(
        gemini_config=gemini_config,
        fx_config=FXConfig(api_key=os.getenv("EXCHANGE_RATE_API_KEY") or None),
        reporting_currency=os.getenv("LEDGER_REPORTING_CURRENCY", "AED"),
        page_delay=float(os.getenv("LEDGER_PAGE_DELAY", "10")),
    )
    return LedgerPipeline(config)


async def _read_pages(files: List[UploadFile]) -> List[DocumentPage]:
    pages = []
    for upload in files:
        if not upload.filename:
            raise HTTPException(status_code=400, detail="No file provided")

        content = await upload.read()
        if not content:
            raise HTTPException(status_code=400, detail=f"Uploaded file is empty: {upload.filename}")

        mime_type = upload.content_type
        if not mime_type or mime_type == "application/octet-stream":
            mime_type, _ = mimetypes.guess_type(upload.filename)

        pages.append(DocumentPage(
            content=content,
            mime_type=mime_type or "application/pdf",
            source_file=upload.filename
        ))
    return pages


@app.get("/api/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/api/statements")
async def process_statement(
    files: List[UploadFile] = File(...),
    start_date: Optional[str] = Form(None),
    end_date: Optional[str] = Form(None),
    pipeline: LedgerPipeline = Depends(get_pipeline),
) -> Dict[str, object]:
    pages = await _read_pages(files)

    try:
        result = await pipeline.process_statement(pages, start_date or None, end_date or None)
    except AIServiceError as e:
        logger.error(f"Statement extraction failed ({e.kind.value}): {e}")
        raise HTTPException(status_code=502, detail=f"Statement extraction failed: {e}")

    return result.to_dict()


@app.post("/api/invoices")
async def process_invoices(
    files: List[UploadFile] = File(...),
    company_name: Optional[str] = Form(None),
    company_trn: Optional[str] = Form(None),
    pipeline: LedgerPipeline = Depends(get_pipeline),
) -> Dict[str, object]:
    pages = await _read_pages(files)

    try:
        result = await pipeline.process_invoices(pages, company_name or None, company_trn or None)
    except AIServiceError as e:
        logger.error(f"Invoice extraction failed ({e.kind.value}): {e}")
        raise HTTPException(status_code=502, detail=f"Invoice extraction failed: {e}")

    return result.to_dict()
