import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from fastapi import HTTPException, UploadFile, status

from app.core.config import settings
from app.core.security import generate_secure_filename, validate_file_extension

logger = logging.getLogger(__name__)

MATERIAL_EXTENSIONS = ["pdf", "doc", "docx"]
AVATAR_EXTENSIONS = ["jpg", "jpeg", "png", "gif", "webp"]


@dataclass(frozen=True)
class LocalStorage:
    """Object storage on the local disk, served by the /uploads static mount."""

    root: Path

    def _path(self, key: str) -> Path:
        safe_key = key.lstrip("/").replace("\\", "/")
        if ".." in Path(safe_key).parts:
            raise ValueError(f"Invalid storage key: {key}")
        return self.root / safe_key

    def put_bytes(self, key: str, data: bytes) -> None:
        p = self._path(key)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def public_url(self, key: str) -> str:
        return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/uploads/{key.lstrip('/')}"

    def key_from_url(self, url: Optional[str]) -> Optional[str]:
        prefix = f"{settings.PUBLIC_BASE_URL.rstrip('/')}/uploads/"
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):]

    @contextmanager
    def staged(self, key: str, data: bytes) -> Iterator[str]:
        """Write an object and remove it again if the block raises.

        The block is expected to insert and commit the metadata row, so a
        failed insert never leaves an orphaned file behind.
        """
        self.put_bytes(key, data)
        try:
            yield self.public_url(key)
        except Exception:
            logger.warning("Removing %s after failed metadata insert", key)
            self.delete(key)
            raise


def get_storage() -> LocalStorage:
    return LocalStorage(Path(settings.UPLOAD_DIR))


def build_key(bucket: str, owner_id, filename: Optional[str]) -> str:
    return f"{bucket}/{owner_id}/{generate_secure_filename(filename)}"


def file_extension(filename: Optional[str]) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


async def read_upload(file: UploadFile, allowed_extensions: Optional[List[str]] = None) -> bytes:
    """Read an uploaded file, enforcing type and size limits."""
    if allowed_extensions and not validate_file_extension(file.filename, allowed_extensions):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File type not allowed. Allowed types: {', '.join(allowed_extensions)}",
        )

    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")

    max_size = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(data) > max_size:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE_MB}MB",
        )
    return data
