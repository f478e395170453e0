"""
File Storage Abstraction Layer

Provides a unified interface for screenshot object storage.
Implementations: GCSFileStorage, LocalFileStorage.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class UploadResult:
    """Result of an object upload."""
    success: bool
    uri: str  # Full URI (file:///path or gs://bucket/path)
    public_url: Optional[str] = None  # Address stored on the bookmark
    size: int = 0
    error: Optional[str] = None


class FileStorageProvider(ABC):
    """
    Abstract base class for file storage providers.

    All implementations must provide:
    - upload of in-memory bytes
    - idempotent deletion
    - public URL generation
    """

    @abstractmethod
    def upload_bytes(
        self,
        data: bytes,
        destination_path: str,
        content_type: str = "application/octet-stream",
    ) -> UploadResult:
        """
        Upload bytes to storage.

        Args:
            data: Object body
            destination_path: Destination path (relative to storage root)
            content_type: MIME type stored with the object

        Returns:
            UploadResult; ``success`` is False (with ``error``) on failure
        """
        pass

    @abstractmethod
    def delete_file(self, storage_path: str) -> bool:
        """
        Delete an object.

        Returns:
            True if the object was deleted, False if it did not exist.
            Backend failures propagate.
        """
        pass

    @abstractmethod
    def exists(self, storage_path: str) -> bool:
        """Check if an object exists."""
        pass

    @abstractmethod
    def public_url(self, storage_path: str) -> str:
        """Get the long-lived public address for an object."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get provider name (e.g., 'gcs', 'local')."""
        pass
