import io
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from docworker.storage.exceptions import StorageError
from docworker.storage.s3_adapter import S3StorageAdapter


def _client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def _make_adapter() -> tuple[S3StorageAdapter, MagicMock]:
    client = MagicMock()
    return S3StorageAdapter("docs-bucket", client), client


class TestUpload:
    def test_puts_object_under_generated_key(self) -> None:
        adapter, client = _make_adapter()

        key = adapter.upload(
            b"data",
            "documents/7",
            metadata={"user-id": "7"},
            content_type="application/pdf",
            extension="pdf",
        )

        assert key.startswith("documents/7/")
        assert key.endswith(".pdf")
        client.put_object.assert_called_once_with(
            Bucket="docs-bucket",
            Key=key,
            Body=b"data",
            Metadata={"user-id": "7"},
            ContentType="application/pdf",
        )

    def test_keys_are_unique(self) -> None:
        adapter, _ = _make_adapter()
        assert adapter.upload(b"a", "documents/7") != adapter.upload(b"a", "documents/7")

    def test_empty_file_is_rejected(self) -> None:
        adapter, client = _make_adapter()

        with pytest.raises(StorageError, match="Invalid file") as exc_info:
            adapter.upload(b"", "documents/7")
        assert exc_info.value.retryable is False
        client.put_object.assert_not_called()

    def test_access_denied(self) -> None:
        adapter, client = _make_adapter()
        client.put_object.side_effect = _client_error("AccessDenied", "PutObject")

        with pytest.raises(StorageError, match="Access denied for upload") as exc_info:
            adapter.upload(b"data", "documents/7")
        assert exc_info.value.retryable is False

    def test_other_failure_is_retryable(self) -> None:
        adapter, client = _make_adapter()
        client.put_object.side_effect = EndpointConnectionError(endpoint_url="https://s3")

        with pytest.raises(StorageError, match="Failed to upload") as exc_info:
            adapter.upload(b"data", "documents/7")
        assert exc_info.value.retryable is True


class TestDownload:
    def test_returns_body(self) -> None:
        adapter, client = _make_adapter()
        client.get_object.return_value = {"Body": io.BytesIO(b"content")}

        assert adapter.download("documents/7/a.txt") == b"content"
        client.get_object.assert_called_once_with(Bucket="docs-bucket", Key="documents/7/a.txt")

    def test_missing_object(self) -> None:
        adapter, client = _make_adapter()
        client.get_object.side_effect = _client_error("NoSuchKey")

        with pytest.raises(StorageError, match="File not found") as exc_info:
            adapter.download("documents/7/a.txt")
        assert exc_info.value.operation == "read"
        assert exc_info.value.key == "documents/7/a.txt"

    def test_service_error(self) -> None:
        adapter, client = _make_adapter()
        client.get_object.side_effect = _client_error("InternalError")

        with pytest.raises(StorageError, match="Failed to download"):
            adapter.download("k")


class TestObjectOperations:
    def test_metadata(self) -> None:
        adapter, client = _make_adapter()
        client.head_object.return_value = {
            "ContentLength": 4,
            "ContentType": "text/plain",
            "ETag": '"abc"',
            "Metadata": {"user-id": "7"},
        }

        metadata = adapter.metadata("k")

        assert metadata is not None
        assert metadata["content_length"] == 4
        assert metadata["metadata"] == {"user-id": "7"}

    def test_metadata_of_missing_object_is_none(self) -> None:
        adapter, client = _make_adapter()
        client.head_object.side_effect = _client_error("404", "HeadObject")

        assert adapter.metadata("k") is None
        assert adapter.exists("k") is False

    def test_exists(self) -> None:
        adapter, client = _make_adapter()
        client.head_object.return_value = {}
        assert adapter.exists("k") is True

    def test_delete(self) -> None:
        adapter, client = _make_adapter()
        assert adapter.delete("k") is True
        client.delete_object.assert_called_once_with(Bucket="docs-bucket", Key="k")

    def test_copy(self) -> None:
        adapter, client = _make_adapter()

        assert adapter.copy("a", "b") is True
        client.copy_object.assert_called_once_with(
            Bucket="docs-bucket",
            CopySource={"Bucket": "docs-bucket", "Key": "a"},
            Key="b",
        )

    def test_copy_of_missing_source(self) -> None:
        adapter, client = _make_adapter()
        client.copy_object.side_effect = _client_error("NoSuchKey", "CopyObject")

        with pytest.raises(StorageError, match="File not found at key 'a'"):
            adapter.copy("a", "b")

    def test_signed_url(self) -> None:
        adapter, client = _make_adapter()
        client.generate_presigned_url.return_value = "https://signed"

        assert adapter.signed_url("k", 900) == "https://signed"
        client.generate_presigned_url.assert_called_once_with(
            "get_object", Params={"Bucket": "docs-bucket", "Key": "k"}, ExpiresIn=900
        )


class TestFromSettings:
    @patch("docworker.storage.s3_adapter.boto3.client")
    def test_uses_endpoint_override(self, mock_client: MagicMock) -> None:
        settings = MagicMock()
        settings.aws_region = "us-east-1"
        settings.aws_endpoint_url = "http://localhost:4566"
        settings.aws_access_key_id = "key"
        settings.aws_secret_access_key = "secret"
        settings.storage_bucket = "local-docs"

        adapter = S3StorageAdapter.from_settings(settings)

        assert adapter.bucket == "local-docs"
        mock_client.assert_called_once_with(
            "s3",
            region_name="us-east-1",
            endpoint_url="http://localhost:4566",
            aws_access_key_id="key",
            aws_secret_access_key="secret",
        )
