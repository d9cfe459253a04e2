# ducky: Filesystem helpers for conversation records: atomic JSON writes, hashing, timestamps and advisory locks.

import contextlib
import hashlib
import json
import pathlib
import time
from typing import Any, Iterator

try:
    import fcntl
except ImportError:  # pragma: no cover - non-POSIX platforms
    fcntl = None


def now_ts() -> float:
    """Return the current UNIX timestamp in seconds (float)."""
    return time.time()


def sha256_text(text: str) -> str:
    """Compute a hex sha256 digest of a UTF-8 string."""
    h = hashlib.sha256()
    h.update(text.encode("utf-8"))
    return h.hexdigest()


def read_json(path: pathlib.Path) -> Any:
    """Read and parse a JSON file. Errors propagate to the caller."""
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: pathlib.Path, obj: Any) -> None:
    """Atomically write a JSON object to path (UTF-8, pretty-printed)."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(obj, f, indent=2, ensure_ascii=False)
        tmp.replace(path)
    finally:
        if tmp.exists():
            tmp.unlink()


@contextlib.contextmanager
def locked(path: pathlib.Path) -> Iterator[None]:
    """
    Hold an exclusive advisory lock on `path` (created if missing) for the block.

    Blocks until the lock is available. Without fcntl the block runs unlocked.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a") as fh:
        if fcntl is not None:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            if fcntl is not None:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
