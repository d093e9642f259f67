import logging
import os
import uuid
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


def remove_file(path: str) -> None:
    """Deletes ``path``; a file that is already gone is fine."""
    try:
        os.remove(path)
    except FileNotFoundError:
        return
    logger.debug("Removed temp file %s", path)


@contextmanager
def temp_artifact(directory: str, prefix: str, suffix: str = ".mp4") -> Iterator[str]:
    """
    Reserves a request-unique path under ``directory`` and deletes whatever
    ends up there when the block exits, however it exits.

    The file itself is not created; callers write to the yielded path.
    """
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, f"{prefix}-{uuid.uuid4().hex}{suffix}")
    try:
        yield path
    finally:
        remove_file(path)


@contextmanager
def tracked_path(path: str) -> Iterator[str]:
    """Guarantees removal of a path produced by someone else (e.g. ffmpeg output)."""
    try:
        yield path
    finally:
        remove_file(path)
