"""FastAPI HTTP surface for uploads, the record catalog, and generated audio.

Uploads run the blocking document pipeline in a worker thread. When a run
outlasts one heartbeat interval, the response switches to a streamed body that
emits whitespace keep-alive lines until the final JSON document is ready, so
proxies with idle timeouts keep the connection open.
"""

from __future__ import annotations

import asyncio
import json
import shutil
import uuid
from pathlib import Path
from typing import AsyncIterator, BinaryIO

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import ChaptervoiceConfig
from ..errors import NotFoundError, PipelineStageError
from ..io.filename import normalize_upload_filename
from ..io.records import RecordStore
from ..models.datatypes import DocumentRequest
from ..parsing import parse_positive_float, parse_positive_int
from ..pipeline.document import DocumentPipeline
from ..pipeline.runtime import build_document_pipeline
from ..telemetry.logger import RunLogger

HEARTBEAT_LINE = " \n"


def _error_message(exc: Exception) -> str:
    """Return the user-facing message of a run failure."""

    if isinstance(exc, PipelineStageError):
        return exc.detail
    return str(exc) or type(exc).__name__


def _save_upload(source: BinaryIO, target: Path) -> None:
    with target.open("wb") as handle:
        shutil.copyfileobj(source, handle)


def create_app(
    config: ChaptervoiceConfig,
    pipeline: DocumentPipeline | None = None,
    store: RecordStore | None = None,
) -> FastAPI:
    """Create the HTTP application.

    Args:
        config: Service configuration; directories are created when missing.
        pipeline: Document pipeline; built from provider credentials per upload
            when omitted, so the server starts without credentials.
        store: Record catalog; opened under `config.data_dir` when omitted.
    """

    run_logger = RunLogger()
    config.output_dir.mkdir(parents=True, exist_ok=True)
    config.upload_dir.mkdir(parents=True, exist_ok=True)
    records = store if store is not None else RecordStore(config.data_dir, run_logger=run_logger)

    app = FastAPI(title="Chaptervoice")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            message = f"Not found: {request.method} {request.url.path}"
        else:
            message = str(exc.detail)
        return JSONResponse({"error": message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse({"error": "Invalid request parameters."}, status_code=400)

    def discard_upload(path: Path) -> None:
        """Delete an upload left behind by a run that failed before extraction."""

        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            run_logger.log_cleanup_failure("extract", path, type(exc).__name__)

    def run_document(request: DocumentRequest) -> tuple[int, dict[str, object]]:
        """Run one document and store its record; never raises."""

        try:
            active = pipeline if pipeline is not None else build_document_pipeline(
                config, run_logger=run_logger
            )
            result = active.run(request)
            record = records.add_record(result)
        except Exception as exc:
            if request.source_path is not None:
                discard_upload(request.source_path)
            return 500, {"error": _error_message(exc)}
        return 200, {"id": record.id}

    async def heartbeat_stream(outcome: asyncio.Future) -> AsyncIterator[str]:
        """Yield keep-alive lines until the run finishes, then its JSON payload."""

        yield HEARTBEAT_LINE
        while True:
            done, _ = await asyncio.wait({outcome}, timeout=config.heartbeat_seconds)
            if done:
                break
            yield HEARTBEAT_LINE
        _, payload = outcome.result()
        yield json.dumps(payload, ensure_ascii=False)

    @app.post("/upload")
    async def upload(
        file: UploadFile | None = File(None),
        text: str | None = Form(None),
        voice: str | None = Form(None),
        role: str | None = Form(None),
        speed: str | None = Form(None),
        min_minutes: str | None = Form(None, alias="minMinutes"),
        wpm: str | None = Form(None),
    ):
        try:
            request = DocumentRequest(
                voice=config.voice_profile(
                    voice=voice,
                    role=role,
                    speed=parse_positive_float(speed, "speed") if speed else None,
                ),
                min_chapter_minutes=(
                    parse_positive_int(min_minutes, "minMinutes")
                    if min_minutes
                    else config.min_chapter_minutes
                ),
                words_per_minute=parse_positive_int(wpm, "wpm") if wpm else config.words_per_minute,
                max_tts_chars=config.max_tts_chars,
                text=text if text and text.strip() else None,
            )
        except ValueError as exc:
            return JSONResponse({"error": str(exc)}, status_code=400)

        if request.text is None:
            if file is None or not file.filename:
                return JSONResponse({"error": "No file or text provided."}, status_code=500)
            original_name = normalize_upload_filename(file.filename)
            upload_path = config.upload_dir / f"{uuid.uuid4().hex}{Path(original_name).suffix}"
            await run_in_threadpool(_save_upload, file.file, upload_path)
            request = DocumentRequest(
                voice=request.voice,
                min_chapter_minutes=request.min_chapter_minutes,
                words_per_minute=request.words_per_minute,
                max_tts_chars=request.max_tts_chars,
                source_path=upload_path,
                original_name=original_name,
            )

        loop = asyncio.get_running_loop()
        outcome = loop.run_in_executor(None, run_document, request)
        done, _ = await asyncio.wait({outcome}, timeout=config.heartbeat_seconds)
        if done:
            status_code, payload = outcome.result()
            return JSONResponse(payload, status_code=status_code)
        return StreamingResponse(heartbeat_stream(outcome), media_type="application/json")

    @app.get("/records")
    def list_records() -> JSONResponse:
        return JSONResponse({"items": [item.to_payload() for item in records.list_records()]})

    @app.get("/records/{record_id}")
    def get_record(record_id: str) -> JSONResponse:
        try:
            record = records.get_record(record_id)
        except NotFoundError:
            return JSONResponse({"error": "Not found"}, status_code=404)
        return JSONResponse(record.to_payload())

    @app.delete("/records/{record_id}")
    def delete_record(record_id: str) -> JSONResponse:
        try:
            records.delete_record(record_id)
        except NotFoundError:
            return JSONResponse({"error": "Not found"}, status_code=404)
        return JSONResponse({"ok": True})

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"ok": True})

    app.mount(
        config.public_output_prefix.rstrip("/") or "/output",
        StaticFiles(directory=str(config.output_dir)),
        name="output",
    )
    return app
