"""
Bucket/object storage on the local filesystem.

Objects live at ``<storage_directory>/<bucket>/<path>`` and are served by the
storage router, so every object has a stable public URL. Removal can be staged
(moved aside) so a caller can still restore the object if a later step fails.
"""
import os
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from core.config import settings
from core.exceptions import ResourceNotFoundException, StorageException
from core.logging import get_logger

logger = get_logger("storage")

TRASH_DIR = ".trash"


@dataclass
class StagedRemoval:
    bucket: str
    path: str
    trash_path: Path


class LocalObjectStorage:
    def __init__(self, root: Optional[str] = None, public_base_url: Optional[str] = None):
        self.root = Path(root or settings.storage_directory)
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")

    def _object_path(self, bucket: str, path: str) -> Path:
        if not bucket or bucket.startswith(".") or "/" in bucket or "\\" in bucket:
            raise StorageException(f"Invalid bucket: {bucket}")
        base = (self.root / bucket).resolve()
        target = (base / path).resolve()
        if base not in target.parents:
            raise StorageException(f"Invalid object path: {path}")
        return target

    def upload(self, bucket: str, path: str, content: bytes) -> str:
        """Write an object and return its path inside the bucket."""
        target = self._object_path(bucket, path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as f:
                f.write(content)
        except OSError as e:
            logger.error("Object upload failed", bucket=bucket, path=path, error=str(e))
            raise StorageException("Impossible d'enregistrer le fichier") from e
        logger.info("Object stored", bucket=bucket, path=path, size=len(content))
        return path

    def exists(self, bucket: str, path: str) -> bool:
        return self._object_path(bucket, path).is_file()

    def local_path(self, bucket: str, path: str) -> Path:
        target = self._object_path(bucket, path)
        if not target.is_file():
            raise ResourceNotFoundException("Fichier introuvable")
        return target

    def read(self, bucket: str, path: str) -> bytes:
        return self.local_path(bucket, path).read_bytes()

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/storage/{bucket}/{path}"

    def remove(self, bucket: str, path: str) -> bool:
        target = self._object_path(bucket, path)
        if not target.exists():
            return False
        os.remove(target)
        logger.info("Object removed", bucket=bucket, path=path)
        return True

    def stage_removal(self, bucket: str, path: str) -> Optional[StagedRemoval]:
        """
        Move an object out of its bucket without destroying it.

        Returns None when the object does not exist, so there is nothing to
        restore later.
        """
        source = self._object_path(bucket, path)
        if not source.exists():
            logger.warning("Object to remove is already missing", bucket=bucket, path=path)
            return None

        trash_path = self.root / TRASH_DIR / f"{uuid.uuid4().hex}_{source.name}"
        try:
            trash_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(source), str(trash_path))
        except OSError as e:
            logger.error("Object removal failed", bucket=bucket, path=path, error=str(e))
            raise StorageException("Impossible de supprimer le fichier") from e
        return StagedRemoval(bucket=bucket, path=path, trash_path=trash_path)

    def restore(self, staged: StagedRemoval) -> None:
        target = self._object_path(staged.bucket, staged.path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(staged.trash_path), str(target))
        logger.info("Object restored", bucket=staged.bucket, path=staged.path)

    def purge(self, staged: StagedRemoval) -> None:
        os.remove(staged.trash_path)


_storage: Optional[LocalObjectStorage] = None


def get_storage() -> LocalObjectStorage:
    """FastAPI dependency returning the process-wide storage."""
    global _storage
    if _storage is None:
        _storage = LocalObjectStorage()
    return _storage
