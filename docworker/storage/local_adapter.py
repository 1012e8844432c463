import json
import mimetypes
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from docworker.logging.logger import Log
from docworker.storage.base import BaseStorage, build_object_key
from docworker.storage.exceptions import StorageError

_METADATA_SUFFIX = ".meta.json"


class LocalStorageAdapter(BaseStorage):
    """Stores objects as files under ``{root}/{bucket}/{key}``.

    User metadata is kept in a sidecar JSON file next to the object.
    """

    def __init__(self, root: Path, bucket: str) -> None:
        self.bucket = bucket
        self._base = root / bucket

    def upload(
        self,
        data: bytes,
        destination_hint: str,
        metadata: dict[str, str] | None = None,
        content_type: str | None = None,
        extension: str = "",
    ) -> str:
        if not data:
            raise StorageError.invalid_file("File upload failed or file is empty")

        key = build_object_key(destination_hint, extension)
        path = self._resolve(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            self._sidecar(path).write_text(
                json.dumps({"content_type": content_type, "metadata": metadata or {}}),
                encoding="utf-8",
            )
        except OSError as exc:
            raise StorageError.upload_failed(key, str(exc)) from exc

        Log.info(f"Stored {len(data)} bytes at {path}")
        return key

    def download(self, key: str) -> bytes:
        path = self._resolve(key)
        if not path.is_file():
            raise StorageError.file_not_found(key)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError.download_failed(key, str(exc)) from exc

    def delete(self, key: str) -> bool:
        path = self._resolve(key)
        try:
            path.unlink(missing_ok=True)
            self._sidecar(path).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError.delete_failed(key, str(exc)) from exc
        return True

    def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        # Local files need no signature; the TTL is accepted for interface parity.
        return self._resolve(key).as_uri()

    def copy(self, source_key: str, destination_key: str) -> bool:
        source = self._resolve(source_key)
        if not source.is_file():
            raise StorageError.file_not_found(source_key)
        destination = self._resolve(destination_key)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
            if self._sidecar(source).is_file():
                shutil.copyfile(self._sidecar(source), self._sidecar(destination))
        except OSError as exc:
            raise StorageError.copy_failed(source_key, destination_key, str(exc)) from exc
        return True

    def metadata(self, key: str) -> dict[str, Any] | None:
        path = self._resolve(key)
        if not path.is_file():
            return None

        sidecar: dict[str, Any] = {}
        if self._sidecar(path).is_file():
            sidecar = json.loads(self._sidecar(path).read_text(encoding="utf-8"))

        stat = path.stat()
        return {
            "content_length": stat.st_size,
            "content_type": sidecar.get("content_type") or mimetypes.guess_type(path.name)[0],
            "last_modified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            "metadata": sidecar.get("metadata", {}),
        }

    def _resolve(self, key: str) -> Path:
        path = (self._base / key).resolve()
        if not path.is_relative_to(self._base.resolve()):
            raise StorageError.access_denied("resolve", key)
        return path

    @staticmethod
    def _sidecar(path: Path) -> Path:
        return path.with_name(path.name + _METADATA_SUFFIX)
