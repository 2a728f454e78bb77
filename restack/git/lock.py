"""Exclusive per-repository lock for restack executions.

Contains:
- RepositoryLock: Context manager combining an in-process mutex with a
  lock file in the git directory
"""

import logging
import os
import threading
from pathlib import Path

from restack.exceptions import RestackInProgressError

LOG = logging.getLogger(__name__)

LOCK_FILE_NAME = "restack.lock"

_PROCESS_LOCKS: dict[str, threading.Lock] = {}
_PROCESS_LOCKS_GUARD = threading.Lock()


def _process_lock_for(git_dir: Path) -> threading.Lock:
    key = str(git_dir.resolve())
    with _PROCESS_LOCKS_GUARD:
        if key not in _PROCESS_LOCKS:
            _PROCESS_LOCKS[key] = threading.Lock()
        return _PROCESS_LOCKS[key]


class RepositoryLock:
    """Serialize restack executions against one repository.

    Threads of this process are excluded by a mutex keyed on the git
    directory; other processes by ``<git-dir>/restack.lock``, created
    with O_CREAT | O_EXCL and removed on release.
    """

    def __init__(self, git_dir: Path):
        self.git_dir = Path(git_dir)
        self.lock_file = self.git_dir / LOCK_FILE_NAME
        self._mutex = _process_lock_for(self.git_dir)
        self._held = False

    def acquire(self) -> None:
        """Take the lock or raise RestackInProgressError."""
        if not self._mutex.acquire(blocking=False):
            raise RestackInProgressError("Another restack is already running in this process.")

        try:
            fd = os.open(self.lock_file, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            self._mutex.release()
            raise RestackInProgressError(
                f"Another restack holds {self.lock_file}. "
                "If no restack is running, remove the file and retry."
            )
        except OSError:
            self._mutex.release()
            raise

        with os.fdopen(fd, "w") as f:
            f.write(f"{os.getpid()}\n")
        self._held = True
        LOG.debug("Acquired repository lock %s", self.lock_file)

    def release(self) -> None:
        """Release the lock if held."""
        if not self._held:
            return
        try:
            self.lock_file.unlink(missing_ok=True)
        finally:
            self._held = False
            self._mutex.release()
            LOG.debug("Released repository lock %s", self.lock_file)

    @property
    def held(self) -> bool:
        return self._held

    def __enter__(self) -> "RepositoryLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
