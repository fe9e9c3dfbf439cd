"""Advisory per-package publish lock.

The backend rejects (or muddles) a second edit opened while another is in
flight, so only one run per package may be past validation at a time. The
lock is an OS file lock: it disappears with the process, so a crashed run
never leaves a stale lock behind.
"""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from playpub.core.result import Err, Ok, Result
from playpub.publish.errors import ConfigurationError, PublishLocked

__all__ = ["lock_path_for", "package_lock"]

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


def lock_path_for(lock_dir: Path, package_name: str) -> Path:
    return lock_dir / f"{_UNSAFE.sub('_', package_name)}.lock"


def _try_lock(fd: int) -> bool:
    if sys.platform == "win32":
        import msvcrt

        try:
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        except OSError:
            return False
        return True

    import fcntl

    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return False
    return True


def _unlock(fd: int) -> None:
    if sys.platform == "win32":
        import msvcrt

        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
        return

    import fcntl

    fcntl.flock(fd, fcntl.LOCK_UN)


@contextmanager
def package_lock(
    lock_dir: Path, package_name: str
) -> Iterator[Result[Path, PublishLocked | ConfigurationError]]:
    """Hold the publish lock for ``package_name`` while the block runs.

    Yields Ok(lock_path) when acquired, Err(PublishLocked) when another
    process holds it, and Err(ConfigurationError) when the lock file cannot
    be created. The caller must not publish on Err.
    """
    path = lock_path_for(lock_dir, package_name)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
    except OSError as e:
        yield Err(
            ConfigurationError(
                message=f"cannot create publish lock {path}: {e}",
                hint="set [publish] lock_dir to a writable directory",
            )
        )
        return

    try:
        if not _try_lock(fd):
            yield Err(PublishLocked(package_name=package_name, lock_path=path))
            return

        try:
            os.ftruncate(fd, 0)
            os.write(fd, f"{os.getpid()}\n".encode("ascii"))
            yield Ok(path)
        finally:
            _unlock(fd)
    finally:
        os.close(fd)
