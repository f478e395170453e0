"""
Local File System Storage Implementation

Stores screenshots on the local filesystem.
Useful for development and self-hosted deployments.
"""

import logging
from pathlib import Path
from typing import Optional

from .file_storage import FileStorageProvider, UploadResult

logger = logging.getLogger(__name__)


class LocalFileStorage(FileStorageProvider):
    """
    Local filesystem storage implementation.

    Objects live under ``root_dir`` at their storage path.
    """

    def __init__(self, root_dir: Path, base_url: Optional[str] = None):
        """
        Initialize local file storage.

        Args:
            root_dir: Root directory for file storage
            base_url: Base URL for serving files (e.g., http://localhost:8080/files)
                     If None, file:/// URLs will be used
        """
        self.root_dir = Path(root_dir).resolve()
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/") if base_url else None

    def _resolve(self, storage_path: str) -> Path:
        path = (self.root_dir / storage_path).resolve()
        if self.root_dir not in path.parents:
            raise ValueError(f"Storage path escapes root: {storage_path}")
        return path

    def upload_bytes(
        self,
        data: bytes,
        destination_path: str,
        content_type: str = "application/octet-stream",
    ) -> UploadResult:
        """Write bytes under the storage root."""
        try:
            dest = self._resolve(destination_path)
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(data)
        except (OSError, ValueError) as e:
            logger.error(
                "Local upload failed",
                extra={"path": destination_path, "error": str(e)},
            )
            return UploadResult(success=False, uri="", error=str(e))

        return UploadResult(
            success=True,
            uri=dest.as_uri(),
            public_url=self.public_url(destination_path),
            size=len(data),
        )

    def delete_file(self, storage_path: str) -> bool:
        """Delete file; a missing file is not an error."""
        path = self._resolve(storage_path)
        if not path.exists():
            return False
        path.unlink()
        return True

    def exists(self, storage_path: str) -> bool:
        """Check if file exists."""
        return self._resolve(storage_path).exists()

    def public_url(self, storage_path: str) -> str:
        """Get the served URL, or a file URI when no base URL is configured."""
        if self.base_url:
            return f"{self.base_url}/{storage_path.lstrip('/')}"
        return (self.root_dir / storage_path).as_uri()

    @property
    def provider_name(self) -> str:
        """Provider name."""
        return "local"
