"""Lock files guarding writes to record files."""

import asyncio
import os
import time
from pathlib import Path


class FileLockError(Exception):
    """File locking error."""

    pass


class FileLocker:
    """Context manager holding ``<file>.lock`` while a record file is written.

    The lock file is created with O_EXCL so only one holder can exist.
    Locks older than twice the timeout are treated as abandoned.
    """

    poll_interval = 0.05

    def __init__(self, file_path: Path, timeout: float = 5.0):
        self.file_path = file_path
        self.lock_path = Path(str(file_path) + ".lock")
        self.timeout = timeout
        self.acquired = False

    def __enter__(self) -> "FileLocker":
        deadline = time.monotonic() + self.timeout
        while not self._try_acquire():
            if time.monotonic() > deadline:
                raise FileLockError(
                    f"Could not acquire lock on {self.file_path} after {self.timeout}s"
                )
            time.sleep(self.poll_interval)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._release()
        return False

    async def __aenter__(self) -> "FileLocker":
        deadline = time.monotonic() + self.timeout
        while not await asyncio.to_thread(self._try_acquire):
            if time.monotonic() > deadline:
                raise FileLockError(
                    f"Could not acquire lock on {self.file_path} after {self.timeout}s"
                )
            await asyncio.sleep(self.poll_interval)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._release()
        return False

    def _try_acquire(self) -> bool:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._clear_stale()
        try:
            fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            return False
        except OSError as e:
            raise FileLockError(f"Could not create lock {self.lock_path}: {e}") from e
        os.close(fd)
        self.acquired = True
        return True

    def _clear_stale(self) -> None:
        try:
            age = time.time() - self.lock_path.stat().st_mtime
        except FileNotFoundError:
            return
        if age > self.timeout * 2:
            self.lock_path.unlink(missing_ok=True)

    def _release(self) -> None:
        if self.acquired:
            self.lock_path.unlink(missing_ok=True)
            self.acquired = False
