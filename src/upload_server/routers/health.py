from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from upload_server import __version__
from upload_server.adapters.storage import StorageController
from upload_server.dependencies import get_storage_controller

router = APIRouter()


@router.get("/version", response_class=PlainTextResponse)
async def get_version() -> str:
    return __version__


@router.get("/info", response_class=PlainTextResponse)
async def get_info(
    controller: StorageController = Depends(get_storage_controller),
) -> str:
    """Human readable upload count and storage location."""
    return controller.get_info()


@router.get("/health")
async def health_check(
    controller: StorageController = Depends(get_storage_controller),
):
    """
    Health check endpoint for monitoring API status and component readiness.

    Reports whether the storage directory is present and the instance lock held.
    """
    health_status = {
        "status": "ok",
        "version": __version__,
        "components": {
            "api": "ready",
            "storage": "ready",
            "instance_lock": "held",
        },
        "upload_count": controller.upload_count,
        "ready": False,
    }

    if not controller.storage_path.is_dir():
        health_status["components"]["storage"] = "error: storage directory missing"
        health_status["status"] = "degraded"

    if not controller.instance_lock.held:
        health_status["components"]["instance_lock"] = "released"
        health_status["status"] = "degraded"

    health_status["ready"] = health_status["status"] == "ok"
    return health_status
