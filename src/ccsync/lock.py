"""Lock file for the sync directory.

Prevents a cron-driven auto-sync from running on top of a manual one.
The lock file holds the owner's PID. A lock older than
``Settings.lock_stale_seconds`` (1 hour by default) is treated as left
behind by a crashed run and removed.
"""

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path

from .errors import LockError

logger = logging.getLogger(__name__)


def lock_age(lock_file: Path) -> float | None:
    """Seconds since the lock file was last modified, or None if absent."""
    try:
        return time.time() - lock_file.stat().st_mtime
    except FileNotFoundError:
        return None


def acquire_lock(lock_file: Path, stale_after: int = 3600) -> None:
    """Create the lock file, removing a stale one first.

    Raises:
        LockError: A fresh lock file already exists.
    """
    age = lock_age(lock_file)
    if age is not None:
        if age > stale_after:
            logger.warning(f"Removing stale lock file (older than {stale_after // 60} minutes)")
            lock_file.unlink(missing_ok=True)
        else:
            raise LockError(
                f"Sync already in progress. If this is incorrect, remove: {lock_file}"
            )

    lock_file.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(lock_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
    except FileExistsError as e:
        raise LockError(f"Sync already in progress. If this is incorrect, remove: {lock_file}") from e
    with os.fdopen(fd, "w") as f:
        f.write(f"{os.getpid()}\n")
    logger.debug(f"Acquired {lock_file}")


def release_lock(lock_file: Path) -> None:
    lock_file.unlink(missing_ok=True)


@contextmanager
def sync_lock(lock_file: Path, stale_after: int = 3600):
    """Hold the sync lock for the duration of the block."""
    acquire_lock(lock_file, stale_after)
    try:
        yield lock_file
    finally:
        release_lock(lock_file)
