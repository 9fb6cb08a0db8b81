"""Shared helpers: timestamps, atomic JSON writes, cycle locks."""

import contextlib
import fcntl
import json
import logging
import os
import tempfile
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from homesoc.errors import PersistError

logger = logging.getLogger(__name__)


def _default_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


# Mode a plain open(path, "w") would give under the process umask
FILE_MODE = _default_file_mode()


def utc_timestamp(now: datetime | None = None) -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision.

    Example: ``2026-10-17T08:30:00.000Z``
    """
    now = now or datetime.now(UTC)
    return now.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def dump_json(data: Any) -> str:
    """Serialize data the way every persisted homesoc file is written."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def atomic_write_json(path: Path, data: Any) -> None:
    """Write JSON so readers only ever see the old or the new file.

    The payload goes to a temp file in the target directory, is fsynced,
    then renamed over the target. The result gets the umask-default mode,
    not the owner-only mode of a fresh temp file.

    Args:
        path: Destination file
        data: JSON-serializable payload

    Raises:
        PersistError: If the directory or file cannot be written
    """
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(dump_json(data))
            tmp.flush()
            os.fchmod(tmp.fileno(), FILE_MODE)
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
        tmp_name = None
    except (OSError, TypeError, ValueError) as e:
        raise PersistError(f"Failed to write {path}: {e}") from e
    finally:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)


@contextlib.contextmanager
def cycle_lock(lock_path: Path) -> Iterator[bool]:
    """Try to take an exclusive, non-blocking lock for one cycle.

    Yields True when this caller owns the cycle, False when another
    cycle of the same kind is still running. Busy cycles are skipped,
    never queued.
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, "a") as f:
        try:
            fcntl.flock(f, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            logger.debug(f"Lock {lock_path} is held by another cycle")
            yield False
            return
        try:
            yield True
        finally:
            fcntl.flock(f, fcntl.LOCK_UN)
