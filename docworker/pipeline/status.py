from typing import Any

from docworker.database.repositories.document_repository import DocumentRepository
from docworker.database.repositories.job_repository import JobRepository
from docworker.logging.logger import Log
from docworker.notifications.base import BaseStatusNotifier
from docworker.notifications.events import DocumentStatusChanged
from docworker.pipeline.models import Document, ProcessingStatus


class DocumentStatusService:
    """The single writer of ``documents.processing_status``.

    A change is validated against the document lifecycle, applied with a
    compare-and-set on the current status, and announced only when this call
    actually changed the row.
    """

    def __init__(
        self,
        document_repo: DocumentRepository,
        job_repo: JobRepository,
        notifier: BaseStatusNotifier,
    ) -> None:
        self._document_repo = document_repo
        self._job_repo = job_repo
        self._notifier = notifier

    def transition(
        self,
        document: Document,
        status: ProcessingStatus,
        message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Move ``document`` to ``status``; returns False if another caller won.

        Raises:
            InvalidDocumentTransitionError: if the lifecycle forbids the change.
        """
        previous = document.processing_status
        document.transition_to(status)

        changed = self._document_repo.transition_status(document.id, status, [previous])
        if not changed:
            Log.debug(
                f"Document {document.id} already left {previous.value}, "
                f"skipping transition to {status.value}"
            )
            return False

        Log.info(f"Document {document.id}: {previous.value} -> {status.value}")
        self._publish(document, message, metadata)
        return True

    def requeue(self, document: Document, message: str | None = None) -> bool:
        """Return a FAILED document to PENDING and release its claim."""
        document.transition_to(ProcessingStatus.PENDING)
        if not self._document_repo.requeue(document.id):
            Log.debug(f"Document {document.id} is no longer failed, not requeued")
            return False

        Log.info(f"Document {document.id}: failed -> pending (requeued)")
        self._publish(document, message, None)
        return True

    def _publish(
        self,
        document: Document,
        message: str | None,
        metadata: dict[str, Any] | None,
    ) -> None:
        try:
            counts = self._job_repo.count_by_status(document.id)
            event = DocumentStatusChanged.for_document(document, counts, message, metadata)
            self._notifier.publish(event)
        except Exception as exc:
            Log.warning(f"Status notification for document {document.id} failed: {exc}")
