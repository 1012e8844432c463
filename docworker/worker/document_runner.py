from docworker.database.repositories.document_repository import DocumentRepository
from docworker.logging.logger import Log
from docworker.pipeline.dispatcher import DocumentDispatcher
from docworker.pipeline.models import Document, ProcessingStatus
from docworker.pipeline.status import DocumentStatusService
from docworker.worker.retry_policy import RetryPolicy


class DocumentRunner:
    """Dispatch one claimed document and requeue it after unexpected failures."""

    def __init__(
        self,
        dispatcher: DocumentDispatcher,
        document_repo: DocumentRepository,
        status_service: DocumentStatusService,
        retry_policy: RetryPolicy,
    ) -> None:
        self._dispatcher = dispatcher
        self._document_repo = document_repo
        self._status_service = status_service
        self._retry_policy = retry_policy

    def run(self, document: Document) -> None:
        Log.info(
            f"Running dispatch for document {document.id} "
            f"(attempt {document.dispatch_attempts})"
        )
        try:
            self._dispatcher.dispatch(document)
        except Exception as exc:
            self._handle_failure(document, exc)

    def _handle_failure(self, document: Document, exc: Exception) -> None:
        current = self._document_repo.find_by_id(document.id)

        if current.processing_status is ProcessingStatus.PENDING:
            # Failed before dispatch began; let the next poll pick it up again.
            self._document_repo.release_claim(document.id)
            Log.warning(f"Document {document.id} released for another dispatch: {exc}")
            return

        if current.processing_status is not ProcessingStatus.FAILED:
            Log.error(
                f"Document {document.id} dispatch raised in status "
                f"{current.processing_status.value}: {exc}"
            )
            return

        if self._retry_policy.should_requeue(current, exc):
            self._status_service.requeue(
                current,
                message=(
                    f"Retrying after dispatch attempt {current.dispatch_attempts} "
                    f"of {self._retry_policy.max_dispatch_attempts} failed"
                ),
            )
            Log.warning(f"Document {document.id} requeued after dispatch error: {exc}")
        else:
            Log.error(
                f"Document {document.id} permanently failed after dispatch attempt "
                f"{current.dispatch_attempts}: {exc}"
            )
