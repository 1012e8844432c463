from pathlib import PurePath
from typing import Any

from docworker.database.repositories.document_repository import DocumentRepository
from docworker.logging.logger import Log
from docworker.pipeline.models import Document
from docworker.storage.base import BaseStorage

MAX_EXTENSION_LENGTH = 10


def file_extension(filename: str) -> str:
    """Lower-case suffix without the dot; empty when longer than the stored column allows."""
    extension = PurePath(filename).suffix.lstrip(".").lower()
    return extension if len(extension) <= MAX_EXTENSION_LENGTH else ""


class DocumentSubmitter:
    """Stores an uploaded file and registers it as a PENDING document.

    The pending row is the dispatch queue entry; a worker claims it later.
    """

    def __init__(self, storage: BaseStorage, document_repo: DocumentRepository) -> None:
        self._storage = storage
        self._document_repo = document_repo

    def submit(
        self,
        data: bytes,
        *,
        user_id: int,
        title: str,
        original_filename: str,
        mime_type: str,
        description: str | None = None,
        tags: list[str] | None = None,
        is_public: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> Document:
        extension = file_extension(original_filename)
        key = self._storage.upload(
            data,
            f"documents/{user_id}",
            metadata={"original-filename": original_filename, "user-id": str(user_id)},
            content_type=mime_type,
            extension=extension,
        )

        try:
            document = self._document_repo.create(
                user_id=user_id,
                title=title,
                original_filename=original_filename,
                mime_type=mime_type,
                file_size=len(data),
                storage_bucket=self._storage.bucket,
                storage_key=key,
                file_extension=extension,
                description=description,
                tags=tags,
                is_public=is_public,
                metadata=metadata,
            )
        except Exception:
            Log.error(f"Registering upload {key} failed, removing stored object")
            self._storage.delete(key)
            raise

        Log.info(
            f"Document {document.id} submitted by user {user_id}: {original_filename} "
            f"({document.human_readable_size}, {mime_type})"
        )
        return document
