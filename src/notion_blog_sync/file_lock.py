"""Process-local locks that serialize access to one stored object file."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Iterator

_OBJECT_LOCKS: dict[Path, Lock] = {}
_REGISTRY_GUARD = Lock()


def object_lock(path: Path) -> Lock:
    """Return the shared lock for ``path``, creating it on first use."""
    resolved = path.resolve()
    with _REGISTRY_GUARD:
        return _OBJECT_LOCKS.setdefault(resolved, Lock())


@contextmanager
def locked_path(path: Path) -> Iterator[None]:
    """Hold the object lock for ``path`` while the body runs.

    Only writers in this process are serialized; other processes writing the
    same directory still race (last writer wins).
    """
    with object_lock(path):
        yield
