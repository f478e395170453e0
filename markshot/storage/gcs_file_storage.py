"""
Google Cloud Storage Implementation

Stores screenshot thumbnails in the Firebase Storage bucket and hands out
token-less ``?alt=media`` download URLs, which never expire.
"""

import logging
from typing import Optional

from google.api_core.exceptions import NotFound
from google.cloud import storage

from ..core.utils import build_public_url
from .file_storage import FileStorageProvider, UploadResult

logger = logging.getLogger(__name__)

DEFAULT_PUBLIC_BASE_URL = "https://firebasestorage.googleapis.com"


class GCSFileStorage(FileStorageProvider):
    """
    Google Cloud Storage implementation.

    When ``emulator_host`` is set, public URLs point at the Firebase Storage
    emulator (``http://{emulator_host}``) instead of the production endpoint.
    """

    def __init__(
        self,
        bucket_name: str,
        project_id: Optional[str] = None,
        public_base_url: str = DEFAULT_PUBLIC_BASE_URL,
        emulator_host: Optional[str] = None,
    ):
        """
        Initialize GCS storage.

        Args:
            bucket_name: GCS bucket name
            project_id: Optional GCP project ID
            public_base_url: Download endpoint used to build public URLs
            emulator_host: host:port of the Storage emulator, if any
        """
        self.client = storage.Client(project=project_id)
        self.bucket = self.client.bucket(bucket_name)
        self.bucket_name = bucket_name
        if emulator_host:
            public_base_url = f"http://{emulator_host}"
        self.public_base_url = public_base_url.rstrip("/")

    def upload_bytes(
        self,
        data: bytes,
        destination_path: str,
        content_type: str = "application/octet-stream",
    ) -> UploadResult:
        """Upload bytes to GCS."""
        try:
            blob = self.bucket.blob(destination_path)
            blob.upload_from_string(data, content_type=content_type)
        except Exception as e:
            logger.error(
                "GCS upload failed",
                extra={"path": destination_path, "error": str(e)},
            )
            return UploadResult(success=False, uri="", error=str(e))

        return UploadResult(
            success=True,
            uri=f"gs://{self.bucket_name}/{destination_path}",
            public_url=self.public_url(destination_path),
            size=len(data),
        )

    def delete_file(self, storage_path: str) -> bool:
        """Delete object from GCS; a missing object is not an error."""
        blob = self.bucket.blob(storage_path)
        try:
            blob.delete()
        except NotFound:
            logger.debug("GCS object already gone", extra={"path": storage_path})
            return False
        return True

    def exists(self, storage_path: str) -> bool:
        """Check if object exists."""
        blob = self.bucket.blob(storage_path)
        return blob.exists()

    def public_url(self, storage_path: str) -> str:
        """Build the token-less download URL."""
        return build_public_url(self.public_base_url, self.bucket_name, storage_path)

    @property
    def provider_name(self) -> str:
        """Provider name."""
        return "gcs"
