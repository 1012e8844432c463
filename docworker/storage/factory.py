from pathlib import Path

from docworker.config.settings import Settings
from docworker.storage.base import BaseStorage
from docworker.storage.local_adapter import LocalStorageAdapter
from docworker.storage.s3_adapter import S3StorageAdapter


class StorageFactory:
    """Creates the storage adapter based on settings."""

    BACKENDS = ("s3", "local")

    @classmethod
    def create(cls, settings: Settings) -> BaseStorage:
        backend = settings.storage_backend.lower()
        if backend == "s3":
            return S3StorageAdapter.from_settings(settings)
        if backend == "local":
            return LocalStorageAdapter(Path(settings.storage_local_root), settings.storage_bucket)
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
