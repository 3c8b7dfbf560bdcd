import os
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from upload_server.adapters.instance_lock import LOCK_FILENAME, InstanceLock
from upload_server.adapters.storage import StorageController
from upload_server.errors import AlreadyLocked, DirectoryUnavailable, InitializationFailed

SRC_DIR = Path(__file__).resolve().parents[3] / "src"

CHILD_LOCK_SCRIPT = """
import sys
from upload_server.adapters.instance_lock import InstanceLock
from upload_server.errors import AlreadyLocked

try:
    InstanceLock.acquire(sys.argv[1])
except AlreadyLocked:
    sys.exit(3)
"""


def test_acquire_creates_directory_and_marker(tmp_path: Path):
    storage_path = tmp_path / "nested" / "uploads"

    with InstanceLock.acquire(storage_path) as lock:
        assert lock.held
        assert storage_path.is_dir()
        assert (storage_path / LOCK_FILENAME).is_file()

    assert not lock.held


def test_second_acquire_fails_with_already_locked(tmp_path: Path):
    lock = InstanceLock.acquire(tmp_path)
    try:
        with pytest.raises(AlreadyLocked):
            InstanceLock.acquire(tmp_path)
    finally:
        lock.release()


def test_release_allows_reacquire(tmp_path: Path):
    InstanceLock.acquire(tmp_path).release()

    lock = InstanceLock.acquire(tmp_path)
    assert lock.held
    lock.release()
    lock.release()  # idempotent


def test_unavailable_directory(tmp_path: Path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_bytes(b"")

    with pytest.raises(DirectoryUnavailable):
        InstanceLock.acquire(blocker / "uploads")

    with pytest.raises(DirectoryUnavailable):
        InstanceLock.acquire(blocker)


def test_startup_errors_are_initialization_failures():
    assert issubclass(AlreadyLocked, InitializationFailed)
    assert issubclass(DirectoryUnavailable, InitializationFailed)


def test_concurrent_construct_exactly_one_succeeds(tmp_path: Path):
    storage_path = tmp_path / "uploads"

    def construct():
        try:
            return StorageController(storage_path)
        except AlreadyLocked as err:
            return err

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda _: construct(), range(2)))

    controllers = [r for r in results if isinstance(r, StorageController)]
    failures = [r for r in results if isinstance(r, AlreadyLocked)]
    assert len(controllers) == 1
    assert len(failures) == 1
    controllers[0].close()


def test_other_process_cannot_lock(tmp_path: Path):
    env = {**os.environ, "PYTHONPATH": os.pathsep.join(filter(None, [str(SRC_DIR), os.environ.get("PYTHONPATH")]))}

    with InstanceLock.acquire(tmp_path):
        locked = subprocess.run([sys.executable, "-c", CHILD_LOCK_SCRIPT, str(tmp_path)], env=env)
    assert locked.returncode == 3

    unlocked = subprocess.run([sys.executable, "-c", CHILD_LOCK_SCRIPT, str(tmp_path)], env=env)
    assert unlocked.returncode == 0
