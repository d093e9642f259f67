import logging
import mimetypes
import os
import secrets
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


def media_type_to_ext(media_type: str) -> str:
    parts = media_type.split("/")
    if len(parts) != 2 or not parts[1]:
        return ".bin"
    return "." + parts[1]


class ThumbnailStore:
    """Thumbnail images kept as files under the local asset root."""

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def ensure_root(self) -> None:
        os.makedirs(self.root, exist_ok=True)

    def path_for(self, filename: str) -> str:
        path = os.path.abspath(os.path.join(self.root, filename))
        if os.path.dirname(path) != self.root:
            raise ValueError(f"Invalid asset filename: {filename}")
        return path

    def save(self, data: bytes, media_type: str) -> str:
        """Writes ``data`` under a random name and returns that name."""
        self.ensure_root()
        filename = secrets.token_urlsafe(32) + media_type_to_ext(media_type)
        with open(self.path_for(filename), "wb") as buffer:
            buffer.write(data)
        logger.info("Stored thumbnail %s (%d bytes)", filename, len(data))
        return filename

    def load(self, filename: str) -> Optional[Tuple[bytes, str]]:
        try:
            path = self.path_for(filename)
        except ValueError:
            return None
        if not os.path.isfile(path):
            return None
        with open(path, "rb") as f:
            data = f.read()
        media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        return data, media_type
