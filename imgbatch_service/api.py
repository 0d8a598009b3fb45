"""
FastAPI layer exposing the batch engine.

Endpoints:
 - GET /health
 - POST /upload
 - GET /status/{request_id}
 - GET /download/{request_id}
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel

from . import config
from .engine import BatchEngine
from .errors import JobNotFoundError
from .registry import Job, JobRegistry

logger = logging.getLogger(__name__)


class UploadResponse(BaseModel):
    message: str
    requestId: str


class StatusResponse(BaseModel):
    requestId: str
    status: str
    processedFile: Optional[str] = None


def _get_job(request: Request, request_id: str) -> Job:
    registry: JobRegistry = request.app.state.registry
    try:
        return registry.get(request_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Invalid request ID") from exc


def create_app(settings: Optional[config.Settings] = None) -> FastAPI:
    settings = settings or config.get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
    config.ensure_directories(settings)

    app = FastAPI(title="Image Batch Compression Service", version="0.1.0")
    app.state.settings = settings
    app.state.registry = JobRegistry()
    app.state.engine = BatchEngine(app.state.registry, settings)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/upload", response_model=UploadResponse)
    async def upload(request: Request, file: Optional[UploadFile] = File(None)):
        if file is None or not file.filename:
            raise HTTPException(status_code=400, detail="No file uploaded.")

        filename = Path(file.filename).name
        staged = settings.uploads_dir / filename
        try:
            await asyncio.to_thread(staged.write_bytes, await file.read())
        except OSError as exc:
            logger.exception("Failed to stage upload %s: %s", filename, exc)
            raise HTTPException(status_code=500, detail="Could not store upload") from exc

        engine: BatchEngine = request.app.state.engine
        handle = engine.submit(staged, filename)
        return UploadResponse(
            message="File uploaded successfully. Processing in progress.",
            requestId=handle,
        )

    @app.get("/status/{request_id}", response_model=StatusResponse)
    def status(request: Request, request_id: str):
        job = _get_job(request, request_id)
        return StatusResponse(
            requestId=request_id,
            status=job.status.value,
            processedFile=job.output_location,
        )

    @app.get("/download/{request_id}")
    def download(request: Request, request_id: str):
        job = _get_job(request, request_id)
        if not job.output_location:
            raise HTTPException(status_code=404, detail="Result not available")
        path = Path(job.output_location)
        if not path.exists():
            raise HTTPException(status_code=404, detail="Result file missing")
        return FileResponse(path, media_type="text/csv", filename=path.name)

    return app


app = create_app()
