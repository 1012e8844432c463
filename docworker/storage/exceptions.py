class StorageError(Exception):
    """Raised by storage adapters; carries the failed operation and object key."""

    def __init__(
        self,
        operation: str,
        key: str,
        reason: str,
        *,
        retryable: bool = True,
    ) -> None:
        self.operation = operation
        self.key = key
        self.reason = reason
        self.retryable = retryable
        super().__init__(reason)

    @classmethod
    def upload_failed(cls, key: str, reason: str) -> "StorageError":
        return cls("upload", key, f"Failed to upload file to key '{key}': {reason}")

    @classmethod
    def download_failed(cls, key: str, reason: str) -> "StorageError":
        return cls("download", key, f"Failed to download file from key '{key}': {reason}")

    @classmethod
    def delete_failed(cls, key: str, reason: str) -> "StorageError":
        return cls("delete", key, f"Failed to delete file at key '{key}': {reason}")

    @classmethod
    def copy_failed(cls, source_key: str, destination_key: str, reason: str) -> "StorageError":
        return cls(
            "copy",
            source_key,
            f"Failed to copy file from '{source_key}' to '{destination_key}': {reason}",
        )

    @classmethod
    def metadata_failed(cls, key: str, reason: str) -> "StorageError":
        return cls("metadata", key, f"Failed to get metadata for '{key}': {reason}")

    @classmethod
    def file_not_found(cls, key: str) -> "StorageError":
        return cls("read", key, f"File not found at key '{key}'", retryable=False)

    @classmethod
    def access_denied(cls, operation: str, key: str) -> "StorageError":
        return cls(
            operation,
            key,
            f"Access denied for {operation} operation on key '{key}'",
            retryable=False,
        )

    @classmethod
    def invalid_file(cls, reason: str) -> "StorageError":
        return cls("upload", "", f"Invalid file: {reason}", retryable=False)
