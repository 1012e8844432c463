from docworker.database.repositories.document_repository import DocumentRepository
from docworker.database.repositories.job_repository import JobRepository
from docworker.logging.logger import Log
from docworker.pipeline.models import ProcessingStatus
from docworker.pipeline.status import DocumentStatusService


class CompletionEvaluator:
    """Flips a PROCESSING document to COMPLETED once none of its jobs are active.

    Failed jobs count as finished: a document whose jobs all ended, some of
    them FAILED, still completes. Safe to call concurrently and repeatedly;
    the status compare-and-set lets exactly one caller win.
    """

    def __init__(
        self,
        document_repo: DocumentRepository,
        job_repo: JobRepository,
        status_service: DocumentStatusService,
    ) -> None:
        self._document_repo = document_repo
        self._job_repo = job_repo
        self._status_service = status_service

    def evaluate(self, document_id: int) -> bool:
        """Return True when this call completed the document."""
        document = self._document_repo.find_by_id(document_id)
        if document.processing_status is not ProcessingStatus.PROCESSING:
            return False

        active = self._job_repo.count_active(document_id)
        if active > 0:
            Log.debug(f"Document {document_id} still has {active} active job(s)")
            return False

        completed = self._status_service.transition(
            document,
            ProcessingStatus.COMPLETED,
            message="Document processing completed",
        )
        if completed:
            Log.info(f"Document {document_id} completed")
        return completed
