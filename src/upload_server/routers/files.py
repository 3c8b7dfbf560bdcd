import logging
from pathlib import PureWindowsPath
from typing import AsyncIterator
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from upload_server.adapters.storage import StorageController
from upload_server.config.settings import Settings
from upload_server.dependencies import get_app_settings, get_storage_controller
from upload_server.errors import FileNotFound, MalformedUpload
from upload_server.schemas import (
    FileDownloadQuery,
    GetFilesResponse,
    UploadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MULTIPART_MEDIA_TYPE = "multipart/form-data"


async def _iter_upload_file(upload: UploadFile, chunk_size: int) -> AsyncIterator[bytes]:
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        yield chunk


async def _iter_bytes(data: bytes) -> AsyncIterator[bytes]:
    yield data


async def _stream_file(file_handle, chunk_size: int) -> AsyncIterator[bytes]:
    """Yield the file in chunks and close it however the stream ends."""
    try:
        while True:
            chunk = await file_handle.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        await file_handle.close()


def _content_disposition(filename: str) -> str:
    display_name = PureWindowsPath(filename).name
    ascii_name = (
        display_name.encode("ascii", "replace").decode("ascii")
        .replace('"', "_")
        .replace("\\", "_")
    )
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(display_name)}"


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"description": "The upload was malformed or used a reserved name."},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"description": "The file could not be written."},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "The upload counter is exhausted."},
    },
)
async def post_upload(
    request: Request,
    controller: StorageController = Depends(get_storage_controller),
    settings: Settings = Depends(get_app_settings),
) -> UploadResponse:
    """
    Store every part of a multipart upload.

    File parts are stored under their client filename, stripped to its final
    path segment. Parts without a filename are stored as `file_upload_<id>`.
    """
    media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if media_type != MULTIPART_MEDIA_TYPE:
        raise MalformedUpload("Expected a multipart/form-data upload")

    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException) as err:
        raise MalformedUpload() from err

    try:
        items = form.multi_items()
        if not items:
            raise MalformedUpload("No file provided")

        stored = []
        for _, value in items:
            if isinstance(value, UploadFile):
                content = _iter_upload_file(value, settings.download_chunk_size)
                file_data = await controller.upload(value.filename, content)
            else:
                file_data = await controller.upload(None, _iter_bytes(value.encode("utf-8")))
            logger.info(f"File '{file_data.filename}' saved successfully!")
            stored.append(file_data)
    finally:
        await form.close()

    return UploadResponse(message="File uploaded successfully!", files=stored)


@router.get(
    "/download",
    responses={
        status.HTTP_404_NOT_FOUND: {
            "description": "No stored file with the given `filename`, or the name is invalid.",
        },
        status.HTTP_200_OK: {
            "description": "The file content.",
            "content": {
                "application/octet-stream": {
                    "schema": {"type": "string", "format": "binary"},
                },
            },
        },
    },
)
async def get_download_file(
    query: FileDownloadQuery = Depends(),
    controller: StorageController = Depends(get_storage_controller),
    settings: Settings = Depends(get_app_settings),
) -> StreamingResponse:
    """Stream a stored file back as an attachment."""
    file_handle = await controller.resolve_for_download(query.filename)
    if file_handle is None:
        raise FileNotFound(query.filename)

    logger.info(f"File '{query.filename}' found, starting download!")
    return StreamingResponse(
        _stream_file(file_handle, settings.download_chunk_size),
        media_type="application/octet-stream",
        headers={"Content-Disposition": _content_disposition(query.filename)},
        background=BackgroundTask(file_handle.close),
    )


@router.get("/v1/files", response_model=GetFilesResponse)
async def get_files(
    controller: StorageController = Depends(get_storage_controller),
) -> GetFilesResponse:
    """List stored files."""
    files = await controller.list_files()
    return GetFilesResponse(files=files, upload_count=controller.upload_count)
