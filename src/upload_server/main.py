from contextlib import asynccontextmanager
from textwrap import dedent
import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from upload_server import __version__
from upload_server.adapters.storage import StorageController
from upload_server.config.settings import Settings, get_settings
from upload_server.errors import (
    UploadServerError,
    handle_broad_exceptions,
    handle_upload_server_errors,
)
from upload_server.middleware import log_requests
from upload_server.routers.files import router as files_router
from upload_server.routers.health import router as health_router
from upload_server.routers.pages import router as pages_router
from upload_server.templates import render_not_found

# Set up logging
logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    controller: StorageController | None = None,
) -> FastAPI:
    """
    Create a FastAPI application.

    Constructs the storage controller from `settings` unless one is given.
    Raises InitializationFailed if the storage directory cannot be locked.
    The controller is released when the application shuts down.
    """
    settings = settings or get_settings()
    controller = controller or StorageController(settings.storage_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        controller.close()

    app = FastAPI(
        title="Upload Server",
        summary="Store files on local disk and stream them back",
        version=__version__,
        description=dedent(
            """\
        Single-instance upload server. Upload with `POST /upload`, list stored
        files with `GET /v1/files` and fetch them with `GET /download?filename=`.
        """
        ),
        docs_url="/docs",
        lifespan=lifespan,
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings
    app.state.controller = controller

    app.include_router(files_router, tags=["files"])
    app.include_router(pages_router, tags=["pages"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(
        exc_class_or_status_code=UploadServerError,
        handler=handle_upload_server_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=StarletteHTTPException,
        handler=handle_not_found_page,
    )
    app.middleware("http")(handle_broad_exceptions)
    app.middleware("http")(log_requests)

    return app


async def handle_not_found_page(request: Request, exc: StarletteHTTPException):
    """Serve the HTML 404 page for unknown routes."""
    if exc.status_code == 404:
        return HTMLResponse(render_not_found(), status_code=404)
    return await http_exception_handler(request, exc)


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"
