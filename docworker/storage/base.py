import uuid
from abc import ABC, abstractmethod
from typing import Any


def build_object_key(destination_hint: str, extension: str = "") -> str:
    """Generate a fresh key under a destination prefix: ``{hint}/{uuid4}{.ext}``."""
    prefix = destination_hint.strip("/")
    suffix = f".{extension.lstrip('.')}" if extension else ""
    return f"{prefix}/{uuid.uuid4()}{suffix}" if prefix else f"{uuid.uuid4()}{suffix}"


class BaseStorage(ABC):
    """Contract for object storage adapters.

    All failures surface as ``StorageError``; adapters never leak the
    transport library's exception types.
    """

    bucket: str

    @abstractmethod
    def upload(
        self,
        data: bytes,
        destination_hint: str,
        metadata: dict[str, str] | None = None,
        content_type: str | None = None,
        extension: str = "",
    ) -> str:
        """Store ``data`` under a new key derived from ``destination_hint``.

        Returns:
            The generated object key.
        """

    @abstractmethod
    def download(self, key: str) -> bytes:
        """Read an object's bytes. Raises StorageError.file_not_found if absent."""

    @abstractmethod
    def delete(self, key: str) -> bool: ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def signed_url(self, key: str, ttl_seconds: int) -> str:
        """Return a time-limited URL for reading the object."""

    @abstractmethod
    def copy(self, source_key: str, destination_key: str) -> bool: ...

    @abstractmethod
    def metadata(self, key: str) -> dict[str, Any] | None:
        """Return object metadata, or None when the object does not exist."""
