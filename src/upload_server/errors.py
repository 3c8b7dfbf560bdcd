"""Error taxonomy for the upload server and its FastAPI handlers."""
import logging
import traceback

from fastapi import Request, status
from fastapi.responses import PlainTextResponse, Response

logger = logging.getLogger(__name__)


class UploadServerError(Exception):
    """Base class for every failure raised by the upload server."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error!"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.message)
        self.detail = detail or self.message


######################
# --- Startup --- #
######################


class InitializationFailed(UploadServerError):
    """The storage controller could not be brought up."""


class DirectoryUnavailable(InitializationFailed):
    """The storage directory could not be created or accessed."""


class AlreadyLocked(InitializationFailed):
    """Another holder owns the lock on the storage directory."""


######################
# --- Requests --- #
######################


class CounterOverflow(UploadServerError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Upload counter exhausted!"


class UploadFailed(UploadServerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "File upload failed!"


class MalformedUpload(UploadServerError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Malformed upload!"


class ListFailed(UploadServerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Could not list stored files!"


class InvalidFilename(UploadServerError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid filename!"


class FileNotFound(UploadServerError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, filename: str):
        super().__init__(f"File '{filename}' not found on the server!")
        self.filename = filename


def _is_verbose(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.verbose)


async def handle_upload_server_errors(request: Request, exc: UploadServerError) -> Response:
    """Translate a request-scoped error into its status-coded response."""
    logger.warning(exc.detail)
    if _is_verbose(request):
        logger.warning("".join(traceback.format_exception(exc)))

    return PlainTextResponse(exc.detail, status_code=exc.status_code)


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that propagates during the request."""
    try:
        return await call_next(request)
    except Exception as err:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {err}")
        return PlainTextResponse(
            "Internal server error!",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
