"""
Exclusive, process-lifetime lock on a storage directory.

The lock is an OS-level advisory lock held on a marker file inside the
directory. It lives as long as the open file descriptor, so the OS drops it
when the owning process exits, whether orderly or not.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

from upload_server.errors import AlreadyLocked, DirectoryUnavailable

if os.name == "nt":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

LOCK_FILENAME = ".lock"


def _try_lock(fd: int) -> None:
    """Take a non-blocking exclusive lock on `fd`, raising OSError if held elsewhere."""
    if os.name == "nt":
        msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)


def _unlock(fd: int) -> None:
    if os.name == "nt":
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)


class InstanceLock:
    """Held lock on `storage_path`; obtain one with `InstanceLock.acquire`."""

    def __init__(self, storage_path: Path, fd: int):
        self.storage_path = storage_path
        self.lock_path = storage_path / LOCK_FILENAME
        self._fd: Optional[int] = fd

    @classmethod
    def acquire(cls, storage_path: Union[str, Path]) -> "InstanceLock":
        """
        Create `storage_path` if missing and lock its marker file.

        Raises:
            DirectoryUnavailable: the directory or marker file cannot be created or opened.
            AlreadyLocked: another holder currently owns the lock.
        """
        storage_path = Path(storage_path)
        try:
            storage_path.mkdir(parents=True, exist_ok=True)
            fd = os.open(storage_path / LOCK_FILENAME, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as err:
            raise DirectoryUnavailable(
                f"Storage directory '{storage_path}' is unavailable: {err}"
            ) from err

        try:
            _try_lock(fd)
        except OSError as err:
            os.close(fd)
            raise AlreadyLocked(
                f"Storage directory '{storage_path}' is locked by another instance"
            ) from err

        logger.info(f"Acquired instance lock on '{storage_path}'")
        return cls(storage_path, fd)

    @property
    def held(self) -> bool:
        return self._fd is not None

    def release(self) -> None:
        """Release the lock. Safe to call more than once."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            _unlock(fd)
        finally:
            os.close(fd)
        logger.info(f"Released instance lock on '{self.storage_path}'")

    def __enter__(self) -> "InstanceLock":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    def __del__(self):
        # closing the descriptor is what drops the OS lock
        if getattr(self, "_fd", None) is not None:
            os.close(self._fd)
            self._fd = None
