"""Upload storage for audio files.

Stored names are generated (``<uuid4 hex><ext>``); the client-supplied name
is kept only as metadata, so it can never steer the write outside the
upload directory.
"""

from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import BinaryIO

from src.models import UploadedFile

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024
_SAFE_SUFFIX = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


class UploadError(Exception):
    """Raised when an upload cannot be accepted or stored."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


def safe_suffix(filename: str) -> str:
    """Extension of the client filename, lowercased, or '' if it looks unsafe."""
    base = PureWindowsPath(PurePosixPath(filename).name).name
    suffix = PurePosixPath(base).suffix.lower()
    return suffix if _SAFE_SUFFIX.match(suffix) else ""


class UploadStore:
    """Writes uploaded streams under a single directory."""

    def __init__(self, upload_dir: str, max_bytes: int) -> None:
        self.upload_dir = Path(upload_dir)
        self._max_bytes = max_bytes

    def save(
        self,
        stream: BinaryIO,
        original_name: str | None,
        content_type: str | None = None,
    ) -> UploadedFile:
        if not original_name:
            raise UploadError("MISSING_FILENAME", "Uploaded file has no filename")

        file_id = uuid.uuid4().hex
        target = self.upload_dir / f"{file_id}{safe_suffix(original_name)}"

        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            size = 0
            with open(target, "wb") as f:
                while chunk := stream.read(_CHUNK_SIZE):
                    size += len(chunk)
                    if size > self._max_bytes:
                        raise UploadError(
                            "LIMIT_FILE_SIZE",
                            f"File exceeds the {self._max_bytes} byte limit",
                        )
                    f.write(chunk)
        except UploadError:
            target.unlink(missing_ok=True)
            raise
        except OSError as e:
            raise UploadError("STORAGE_ERROR", str(e)) from e

        logger.info("Stored upload %r as %s (%d bytes)", original_name, target, size)
        return UploadedFile(
            file_id=file_id,
            original_name=original_name,
            stored_path=str(target),
            size=size,
            content_type=content_type,
        )
