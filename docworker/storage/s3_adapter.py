from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from docworker.config.settings import Settings
from docworker.logging.logger import Log
from docworker.storage.base import BaseStorage, build_object_key
from docworker.storage.exceptions import StorageError

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})
_ACCESS_DENIED_CODES = frozenset({"AccessDenied", "403"})


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class S3StorageAdapter(BaseStorage):
    """Object storage on Amazon S3 (or an S3-compatible endpoint) via boto3."""

    def __init__(self, bucket: str, client: Any) -> None:
        self.bucket = bucket
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3StorageAdapter":
        client = boto3.client(
            "s3",
            region_name=settings.aws_region,
            endpoint_url=settings.aws_endpoint_url or None,
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
        )
        return cls(settings.storage_bucket, client)

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
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "Metadata": metadata or {},
        }
        if content_type:
            params["ContentType"] = content_type

        try:
            self._client.put_object(**params)
        except ClientError as exc:
            if _error_code(exc) in _ACCESS_DENIED_CODES:
                raise StorageError.access_denied("upload", key) from exc
            raise StorageError.upload_failed(key, str(exc)) from exc
        except BotoCoreError as exc:
            raise StorageError.upload_failed(key, str(exc)) from exc

        Log.info(f"Uploaded {len(data)} bytes to s3://{self.bucket}/{key}")
        return key

    def download(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            code = _error_code(exc)
            if code in _NOT_FOUND_CODES:
                raise StorageError.file_not_found(key) from exc
            if code in _ACCESS_DENIED_CODES:
                raise StorageError.access_denied("download", key) from exc
            raise StorageError.download_failed(key, str(exc)) from exc
        except BotoCoreError as exc:
            raise StorageError.download_failed(key, str(exc)) from exc

    def delete(self, key: str) -> bool:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _ACCESS_DENIED_CODES:
                raise StorageError.access_denied("delete", key) from exc
            raise StorageError.delete_failed(key, str(exc)) from exc
        except BotoCoreError as exc:
            raise StorageError.delete_failed(key, str(exc)) from exc
        return True

    def exists(self, key: str) -> bool:
        return self.metadata(key) is not None

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as exc:
            raise StorageError("sign", key, f"Failed to sign URL for '{key}': {exc}") from exc

    def copy(self, source_key: str, destination_key: str) -> bool:
        try:
            self._client.copy_object(
                Bucket=self.bucket,
                CopySource={"Bucket": self.bucket, "Key": source_key},
                Key=destination_key,
            )
        except ClientError as exc:
            code = _error_code(exc)
            if code in _NOT_FOUND_CODES:
                raise StorageError.file_not_found(source_key) from exc
            if code in _ACCESS_DENIED_CODES:
                raise StorageError.access_denied("copy", source_key) from exc
            raise StorageError.copy_failed(source_key, destination_key, str(exc)) from exc
        except BotoCoreError as exc:
            raise StorageError.copy_failed(source_key, destination_key, str(exc)) from exc
        return True

    def metadata(self, key: str) -> dict[str, Any] | None:
        try:
            response = self._client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            code = _error_code(exc)
            if code in _NOT_FOUND_CODES:
                return None
            if code in _ACCESS_DENIED_CODES:
                raise StorageError.access_denied("metadata", key) from exc
            raise StorageError.metadata_failed(key, str(exc)) from exc
        except BotoCoreError as exc:
            raise StorageError.metadata_failed(key, str(exc)) from exc

        return {
            "content_length": response.get("ContentLength"),
            "content_type": response.get("ContentType"),
            "etag": response.get("ETag"),
            "last_modified": response.get("LastModified"),
            "metadata": response.get("Metadata", {}),
        }
