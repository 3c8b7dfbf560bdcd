from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from upload_server.adapters.storage import StorageController
from upload_server.dependencies import get_storage_controller
from upload_server.templates import render_file_display, render_upload

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def get_file_display_page(
    controller: StorageController = Depends(get_storage_controller),
) -> HTMLResponse:
    """Page listing every stored file with a download link."""
    files = await controller.list_files()
    return HTMLResponse(render_file_display(files))


@router.get("/upload", response_class=HTMLResponse)
async def get_upload_file_page() -> HTMLResponse:
    return HTMLResponse(render_upload())
