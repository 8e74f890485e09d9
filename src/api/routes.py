"""REST endpoints for the audio client.

- ``GET /api/`` version probe
- ``POST /api/upload`` multipart audio upload (field ``file``)
- ``POST /api/songdata`` analysis result for a track id
- ``POST /api/getsong`` placeholder, returns an empty success
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException

from src.analysis.fetcher import AnalysisFetchError
from src.models import AuditEvent, AuditEventType, RiskLevel, SongDataRequest, VersionInfo
from src.uploads.storage import UploadError

if TYPE_CHECKING:
    from src.analysis.fetcher import AnalysisFetcher
    from src.audit.logger import AuditLogger
    from src.uploads.storage import UploadStore

logger = logging.getLogger(__name__)

API_VERSION = "1.0"


def create_api_router(
    fetcher: AnalysisFetcher,
    upload_store: UploadStore,
    audit_logger: AuditLogger | None = None,
) -> APIRouter:
    """Create the ``/api`` router."""
    router = APIRouter(prefix="/api")

    @router.get("/")
    async def version() -> dict[str, str]:
        return VersionInfo(version=API_VERSION).model_dump()

    @router.post("/upload")
    async def upload(request: Request) -> JSONResponse:
        """Store the ``file`` field and return its descriptor."""
        try:
            form = await request.form()
        except HTTPException as e:
            return _upload_failed(UploadError("MALFORMED_MULTIPART", str(e.detail)))

        file = form.get("file")
        if not isinstance(file, UploadFile):
            return _upload_failed(
                UploadError("LIMIT_UNEXPECTED_FILE", "Expected a file in field 'file'"),
            )

        try:
            stored = await run_in_threadpool(
                upload_store.save, file.file, file.filename, file.content_type,
            )
        except UploadError as e:
            return _upload_failed(e)
        finally:
            await file.close()

        if audit_logger:
            audit_logger.log(AuditEvent(
                event_type=AuditEventType.FILE_UPLOAD,
                source_ip=request.client.host if request.client else None,
                action="upload",
                result="success",
                risk_level=RiskLevel.INFO,
                details={"file_id": stored.file_id, "size": stored.size},
            ))
        return JSONResponse(stored.model_dump())

    def _upload_failed(error: UploadError) -> JSONResponse:
        logger.warning("Upload failed: %s (%s)", error.message, error.code)
        if audit_logger:
            audit_logger.log(AuditEvent(
                event_type=AuditEventType.FILE_UPLOAD,
                action="upload",
                result="failure",
                risk_level=RiskLevel.LOW,
                details=error.to_dict(),
            ))
        return JSONResponse({"error": error.to_dict()}, status_code=500)

    @router.post("/songdata")
    async def songdata(body: SongDataRequest) -> JSONResponse:
        """Run the analysis query for ``id`` and return the raw result."""
        try:
            result = await fetcher.fetch_analysis(body.id)
        except AnalysisFetchError as e:
            logger.warning("songdata fetch failed: %s", e)
            return JSONResponse(
                {"error": {"message": str(e), "track_id": e.track_id}},
                status_code=500,
            )
        return JSONResponse(result)

    @router.post("/getsong")
    async def getsong() -> Response:
        # Retrieval was never finished upstream; keep the empty success contract
        logger.info("getsong called; retrieval is not implemented")
        return Response(status_code=200)

    return router
