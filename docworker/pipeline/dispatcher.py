from docworker.database.repositories.job_repository import JobRepository
from docworker.logging.logger import Log
from docworker.pipeline.classifier import classify
from docworker.pipeline.exceptions import (
    NoProcessorAvailableError,
    UnsupportedDocumentTypeError,
)
from docworker.pipeline.models import Document, ProcessingJob, ProcessingStatus
from docworker.pipeline.registry import ProcessorRegistry
from docworker.pipeline.status import DocumentStatusService


class DocumentDispatcher:
    """Turns a PENDING document into a persisted job plan.

    Steps: PENDING -> PROCESSING, classify, plan, persist the jobs. Any
    failure after the first step leaves the document FAILED with no jobs and
    re-raises. Dispatch never waits for the jobs themselves.
    """

    def __init__(
        self,
        registry: ProcessorRegistry,
        job_repo: JobRepository,
        status_service: DocumentStatusService,
    ) -> None:
        self._registry = registry
        self._job_repo = job_repo
        self._status_service = status_service

    def dispatch(self, document: Document) -> list[ProcessingJob]:
        Log.info(f"Dispatching document {document.id} ({document.mime_type})")
        started = self._status_service.transition(
            document, ProcessingStatus.PROCESSING, message="Processing started"
        )
        if not started:
            Log.warning(f"Document {document.id} was dispatched elsewhere, skipping")
            return []

        try:
            if classify(document.mime_type) is None:
                raise UnsupportedDocumentTypeError(document.mime_type)
            specs = self._registry.plan(document)
            jobs = self._job_repo.create_jobs(document.id, specs)
        except (UnsupportedDocumentTypeError, NoProcessorAvailableError) as exc:
            Log.warning(f"Document {document.id} cannot be processed: {exc}")
            self._fail(document, exc)
            raise
        except Exception as exc:
            Log.error(f"Dispatch of document {document.id} failed: {exc}")
            self._fail(document, exc)
            raise

        Log.info(
            f"Document {document.id} dispatched with {len(jobs)} job(s): "
            f"{', '.join(job.job_type.value for job in jobs)}"
        )
        return jobs

    def _fail(self, document: Document, exc: Exception) -> None:
        self._status_service.transition(
            document,
            ProcessingStatus.FAILED,
            message=str(exc),
            metadata={"error_type": type(exc).__name__},
        )
