"""HTTP API for uploading, listing, rendering and inspecting DICOM files."""

import logging
import time
import uuid
from io import BytesIO
from typing import List, Optional

from fastapi import APIRouter, FastAPI, File, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from .attributes import elements_to_json, parse_tags
from .constants import API_PREFIX, TAG_QUERY_PARAM
from .dicom_file import DicomFile
from .errors import (
    DecodeError,
    DicomViewerError,
    MalformedTagError,
    NoImagesError,
    NotFoundError,
    PixelDataError,
)
from .image_utils import encode_png
from .storage import FileStore, open_store

logger = logging.getLogger(__name__)

# Checked in order; first match wins
ERROR_STATUS_CODES = (
    (NotFoundError, 404),
    (MalformedTagError, 400),
    (DecodeError, 422),
    (PixelDataError, 422),
    (NoImagesError, 422),
)

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


def status_for_error(error: Exception) -> int:
    for error_type, status in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status
    return 500


def parse_bool(value: Optional[str], default: bool = True) -> bool:
    """Parse a query flag, returning ``default`` for anything unrecognized."""
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


def _error_response(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def create_router(store: FileStore) -> APIRouter:
    """Build the ``/api/v1/files`` routes backed by ``store``."""
    router = APIRouter(prefix=API_PREFIX)

    @router.post("")
    def create_file(file: UploadFile = File(...)):
        data = file.file.read()
        file_id = str(uuid.uuid4())
        store.create(DicomFile(file_id, len(data), BytesIO(data)))
        logger.info(f"Stored upload {file.filename!r} as {file_id} ({len(data)} bytes)")
        return {"fileId": file_id}

    @router.get("")
    def list_files():
        return {"fileIds": store.list()}

    @router.get("/{file_id}")
    def get_file(file_id: str):
        dicom_file = store.get(file_id)
        return Response(
            content=dicom_file.read_bytes(),
            media_type="application/dicom",
            headers={"Content-Disposition": f'attachment; filename="{file_id}"'},
        )

    @router.get("/{file_id}/png")
    def get_png(
        file_id: str,
        remap: Optional[str] = None,
        frame: int = Query(0, ge=0),
    ):
        dicom_file = store.get(file_id)
        should_remap = parse_bool(remap)
        if frame == 0:
            image = dicom_file.image(remap=should_remap)
        else:
            images = dicom_file.images(remap=should_remap)
            if frame >= len(images):
                return _error_response(
                    404, f"frame {frame} not found, file has {len(images)} frame(s)"
                )
            image = images[frame]
        return Response(content=encode_png(image), media_type="image/png")

    @router.get("/{file_id}/attributes")
    def search_attributes(
        file_id: str,
        tags: List[str] = Query(default=[], alias=TAG_QUERY_PARAM),
    ):
        dicom_tags = parse_tags(tags)
        dicom_file = store.get(file_id)

        if dicom_tags:
            elements = dicom_file.find_elements(dicom_tags)
        else:
            elements = dicom_file.all_elements()

        bulk_uri = f"{API_PREFIX}/{file_id}"
        return {"elementsByTag": elements_to_json(elements, lambda element: bulk_uri)}

    return router


def create_app(store: Optional[FileStore] = None) -> FastAPI:
    """
    Create the application.

    Parameters
    ----------
    store : FileStore, optional
        Backend for stored files. Defaults to local storage.
    """
    app = FastAPI(title="dicom-viewer")
    app.state.store = store if store is not None else open_store()

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f'"{request.method} {request.url.path}" {response.status_code} in {elapsed_ms:.1f}ms'
        )
        return response

    @app.exception_handler(DicomViewerError)
    async def handle_viewer_error(request: Request, exc: DicomViewerError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return _error_response(status_for_error(exc), str(exc))

    app.include_router(create_router(app.state.store))
    return app
