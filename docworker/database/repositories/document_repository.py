from collections.abc import Iterable
from typing import Any

import psycopg
from psycopg.rows import dict_row

from docworker.database.connection import get_connection
from docworker.database.serialization import jsonb
from docworker.pipeline.exceptions import DocumentNotFoundError
from docworker.pipeline.models import Document, ProcessingStatus

_COLUMNS = """
    id, user_id, title, original_filename, file_extension, mime_type, file_size,
    storage_bucket, storage_key, processing_status, metadata, description, tags,
    is_public, dispatch_attempts, uploaded_at
"""


def _row_to_document(row: dict[str, Any]) -> Document:
    return Document(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        original_filename=row["original_filename"],
        file_extension=row["file_extension"] or "",
        mime_type=row["mime_type"],
        file_size=row["file_size"],
        storage_bucket=row["storage_bucket"],
        storage_key=row["storage_key"],
        processing_status=ProcessingStatus(row["processing_status"]),
        metadata=row["metadata"] or {},
        description=row["description"],
        tags=row["tags"] or [],
        is_public=row["is_public"],
        dispatch_attempts=row["dispatch_attempts"],
        uploaded_at=row["uploaded_at"],
    )


class DocumentRepository:
    """Database operations for the documents table."""

    def create(
        self,
        *,
        user_id: int,
        title: str,
        original_filename: str,
        mime_type: str,
        file_size: int,
        storage_bucket: str,
        storage_key: str,
        file_extension: str = "",
        description: str | None = None,
        tags: list[str] | None = None,
        is_public: bool = False,
        metadata: dict[str, Any] | None = None,
    ) -> Document:
        """Insert a new PENDING document and return it."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO documents (
                        user_id, title, original_filename, file_extension, mime_type,
                        file_size, storage_bucket, storage_key, processing_status,
                        metadata, description, tags, is_public
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 'pending', %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        user_id,
                        title,
                        original_filename,
                        file_extension,
                        mime_type,
                        file_size,
                        storage_bucket,
                        storage_key,
                        jsonb(metadata or {}),
                        description,
                        jsonb(tags or []),
                        is_public,
                    ),
                )
                row = cur.fetchone()
            conn.commit()

        if row is None:
            raise RuntimeError("INSERT INTO documents returned no row")
        return _row_to_document(row)

    def find_by_id(self, document_id: int) -> Document:
        """Find a document by ID.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM documents WHERE id = %s",
                    (document_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _row_to_document(row)

    def claim_next_pending(
        self, conn: psycopg.Connection[Any], max_attempts: int
    ) -> Document | None:
        """Claim the oldest PENDING document using SELECT FOR UPDATE SKIP LOCKED.

        The claim sets ``locked_at`` and counts a dispatch attempt, so no other
        worker picks the same document while it is being dispatched.
        """
        with conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM documents
                WHERE processing_status = 'pending'
                  AND locked_at IS NULL
                  AND dispatch_attempts < %s
                ORDER BY uploaded_at, id
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """,
                (max_attempts,),
            )
            row = cur.fetchone()

        if row is None:
            conn.rollback()
            return None

        conn.execute(
            """
            UPDATE documents
            SET locked_at = NOW(), dispatch_attempts = dispatch_attempts + 1,
                updated_at = NOW()
            WHERE id = %s
            """,
            (row["id"],),
        )
        conn.commit()

        document = _row_to_document(row)
        document.dispatch_attempts += 1
        return document

    def transition_status(
        self,
        document_id: int,
        status: ProcessingStatus,
        from_statuses: Iterable[ProcessingStatus],
    ) -> bool:
        """Compare-and-set the processing status.

        Returns True only when this call changed the row, so concurrent or
        repeated callers observe exactly one successful transition.
        """
        expected = [s.value for s in from_statuses]
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET processing_status = %s, updated_at = NOW()
                    WHERE id = %s AND processing_status = ANY(%s)
                    """,
                    (status.value, document_id, expected),
                )
                changed = cur.rowcount == 1
            conn.commit()
        return changed

    def requeue(self, document_id: int) -> bool:
        """Return a FAILED document to PENDING and release its claim."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET processing_status = 'pending', locked_at = NULL, updated_at = NOW()
                    WHERE id = %s AND processing_status = 'failed'
                    """,
                    (document_id,),
                )
                changed = cur.rowcount == 1
            conn.commit()
        return changed

    def release_claim(self, document_id: int) -> bool:
        """Clear the claim of a document that is still PENDING so it can be re-claimed."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET locked_at = NULL, updated_at = NOW()
                    WHERE id = %s AND processing_status = 'pending'
                    """,
                    (document_id,),
                )
                changed = cur.rowcount == 1
            conn.commit()
        return changed

    def release_stale_claims(self, timeout_seconds: int) -> int:
        """Release PENDING documents claimed longer ago than the timeout."""
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET locked_at = NULL, updated_at = NOW()
                    WHERE processing_status = 'pending'
                      AND locked_at < NOW() - make_interval(secs => %s)
                    """,
                    (timeout_seconds,),
                )
                released = cur.rowcount
            conn.commit()
        return released
