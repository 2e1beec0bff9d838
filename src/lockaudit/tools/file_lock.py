"""Process-wide file lock around the on-disk package cache.

Two audits running on the same machine share the index cache and the
downloaded advisory database; whoever holds this lock may write them.
Uses fcntl on Unix and msvcrt on Windows.

Provides:
- FileLock: Cooperative lock usable with ``with`` or ``async with``
"""

import asyncio
import os
import platform
import time
from pathlib import Path

import structlog

logger = structlog.get_logger()


class FileLock:
    """Exclusive lock on a lock file.

    Example:
        >>> async with FileLock(config.lock_path):
        ...     await fetch_index()

    Args:
        lock_path: Path to the lock file (parent directories are created)
        timeout: Seconds to wait for the lock, None waits forever
        poll_interval: Seconds between attempts while waiting
    """

    def __init__(self, lock_path: str | Path, timeout: float | None = None, poll_interval: float = 0.1):
        self.lock_path = Path(lock_path)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._lock_fd: int | None = None

    @property
    def is_locked(self) -> bool:
        return self._lock_fd is not None

    def _try_lock(self) -> bool:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.lock_path, os.O_CREAT | os.O_WRONLY)
        try:
            if platform.system() == "Windows":
                import msvcrt

                msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
            else:
                import fcntl

                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            # Held by another process
            os.close(fd)
            return False

        self._lock_fd = fd
        return True

    def _deadline(self) -> float | None:
        return None if self.timeout is None else time.monotonic() + self.timeout

    def _expired(self, deadline: float | None) -> bool:
        return deadline is not None and time.monotonic() >= deadline

    def acquire(self) -> None:
        """Block until the lock is held.

        Raises:
            TimeoutError: If ``timeout`` elapses first
        """
        deadline = self._deadline()
        while not self._try_lock():
            if self._expired(deadline):
                raise TimeoutError(f"timed out waiting for lock {self.lock_path}")
            time.sleep(self.poll_interval)
        logger.debug("file_lock_acquired", path=str(self.lock_path))

    async def acquire_async(self) -> None:
        """Like acquire(), but yields to the event loop while waiting."""
        deadline = self._deadline()
        while not self._try_lock():
            if self._expired(deadline):
                raise TimeoutError(f"timed out waiting for lock {self.lock_path}")
            await asyncio.sleep(self.poll_interval)
        logger.debug("file_lock_acquired", path=str(self.lock_path))

    def release(self) -> None:
        """Release the lock. Safe to call when not held."""
        if self._lock_fd is None:
            return

        fd, self._lock_fd = self._lock_fd, None
        try:
            if platform.system() == "Windows":
                import msvcrt

                msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
            else:
                import fcntl

                fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug("file_lock_released", path=str(self.lock_path))

    def __enter__(self) -> "FileLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False

    async def __aenter__(self) -> "FileLock":
        await self.acquire_async()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
