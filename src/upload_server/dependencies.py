from fastapi import Request

from upload_server.adapters.storage import StorageController
from upload_server.config.settings import Settings


def get_storage_controller(request: Request) -> StorageController:
    """Storage controller dependency."""
    return request.app.state.controller


def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with."""
    return request.app.state.settings
