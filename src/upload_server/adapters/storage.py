"""
Storage controller: the single owner of the storage directory.

All reads and writes against the storage directory go through
`StorageController`. The HTTP layer hands it upload streams and download
names and never touches the filesystem itself.
"""

import logging
import os
import threading
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import AsyncIterable, List, Optional, Union

import aiofiles
import aiofiles.os
from aiofiles.threadpool.binary import AsyncBufferedReader
from pydantic import ValidationError

from upload_server.adapters.instance_lock import LOCK_FILENAME, InstanceLock
from upload_server.errors import (
    CounterOverflow,
    InvalidFilename,
    ListFailed,
    UploadFailed,
)
from upload_server.schemas import Filedata

logger = logging.getLogger(__name__)

MAX_UPLOAD_COUNT = 2**64 - 1
DEFAULT_FILENAME_TEMPLATE = "file_upload_{file_id}"


def _is_lock_marker(name: str) -> bool:
    return name.casefold() == LOCK_FILENAME


def sanitize_filename(name_hint: Optional[str], default_filename: str) -> str:
    """
    Reduce a client supplied name to its final path segment.

    Directory components, drive/volume prefixes and root markers are dropped,
    with both `/` and `\\` treated as separators. Falls back to
    `default_filename` when nothing usable remains.
    """
    if name_hint is None:
        return default_filename

    candidate = name_hint.strip()
    if not candidate or "\x00" in candidate:
        return default_filename

    base_name = PureWindowsPath(candidate).name.strip()
    if base_name in ("", ".", ".."):
        return default_filename
    return base_name


def validate_download_name(filename: str) -> None:
    """
    Check that `filename` names a direct child of the storage directory.

    Raises:
        InvalidFilename: the name is empty, escapes the directory, is absolute,
            carries a drive prefix or names the lock marker.
    """
    if not filename or "\x00" in filename:
        raise InvalidFilename()

    posix_path = PurePosixPath(filename)
    windows_path = PureWindowsPath(filename)
    if posix_path.is_absolute() or windows_path.drive or windows_path.root:
        raise InvalidFilename()
    if ".." in posix_path.parts or ".." in windows_path.parts:
        raise InvalidFilename()
    if len(windows_path.parts) == 1 and _is_lock_marker(windows_path.parts[0]):
        raise InvalidFilename()


class StorageController:
    """Owns the storage directory, its instance lock and the upload counter."""

    def __init__(self, storage_path: Union[str, Path]):
        self.storage_path = Path(storage_path)
        self.instance_lock = InstanceLock.acquire(self.storage_path)
        self._upload_count = 0
        self._count_lock = threading.Lock()

    @property
    def upload_count(self) -> int:
        with self._count_lock:
            return self._upload_count

    def get_info(self) -> str:
        return f"Uploaded {self.upload_count} files to '{self.storage_path}'"

    def _reserve_upload_id(self) -> int:
        with self._count_lock:
            file_id = self._upload_count + 1
            if file_id > MAX_UPLOAD_COUNT:
                raise CounterOverflow()
            self._upload_count = file_id
        return file_id

    async def upload(self, name_hint: Optional[str], content: AsyncIterable[bytes]) -> Filedata:
        """
        Store `content` under the sanitized form of `name_hint`.

        The upload id is reserved before anything touches the disk and stays
        consumed even if the write fails. Uploads that sanitize to the same
        name race; the last writer to finish wins.

        Raises:
            CounterOverflow: the upload counter is exhausted.
            InvalidFilename: the name collides with the lock marker.
            UploadFailed: the destination file could not be created or written.
        """
        file_id = self._reserve_upload_id()
        default_filename = DEFAULT_FILENAME_TEMPLATE.format(file_id=file_id)
        filename = sanitize_filename(name_hint, default_filename)
        if _is_lock_marker(filename):
            raise InvalidFilename(f"File name '{filename}' is reserved")

        file_path = self.storage_path / filename
        try:
            async with aiofiles.open(file_path, "wb") as file_handle:
                async for chunk in content:
                    await file_handle.write(chunk)
                await file_handle.flush()
        except OSError as err:
            logger.error(f"Error writing upload {file_id} to '{file_path}': {err}")
            raise UploadFailed() from err

        return Filedata(filename=filename)

    def _scan_storage_dir(self) -> List[Filedata]:
        files = []
        with os.scandir(self.storage_path) as entries:
            for entry in entries:
                if entry.is_dir() or _is_lock_marker(entry.name):
                    continue
                try:
                    files.append(Filedata.from_dir_entry(entry))
                except ValidationError as err:
                    logger.warning(f"Skipping unlistable entry {entry.name!r} in '{self.storage_path}': {err}")
        return files

    async def list_files(self) -> List[Filedata]:
        """Return every stored file; subdirectories and the lock marker are skipped."""
        try:
            files = await aiofiles.os.wrap(self._scan_storage_dir)()
        except OSError as err:
            logger.error(f"Error listing '{self.storage_path}': {err}")
            raise ListFailed() from err

        files.sort(key=lambda filedata: filedata.filename)
        return files

    async def resolve_for_download(self, filename: str) -> Optional[AsyncBufferedReader]:
        """
        Open a stored file for reading.

        Returns None when the name is invalid or the file cannot be opened.
        The caller owns the returned handle and must close it.
        """
        try:
            validate_download_name(filename)
        except InvalidFilename:
            logger.debug(f"Rejected download name {filename!r}")
            return None

        file_path = self.storage_path / filename
        try:
            return await aiofiles.open(file_path, "rb")
        except OSError as err:
            logger.debug(f"Could not open '{file_path}' for download: {err}")
            return None

    def close(self) -> None:
        """Release the instance lock. Safe to call more than once."""
        self.instance_lock.release()
