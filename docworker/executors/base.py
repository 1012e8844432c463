from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from docworker.database.repositories.document_repository import DocumentRepository
from docworker.database.repositories.job_repository import JobRepository
from docworker.logging.logger import Log
from docworker.pipeline.completion import CompletionEvaluator
from docworker.pipeline.exceptions import InvalidJobTransitionError
from docworker.pipeline.models import AnalysisResult, Backend, Document, ProcessingJob
from docworker.worker.retry_policy import RetryPolicy


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ExecutionOutcome:
    """What an executor produced for one job, before it is persisted."""

    raw_results: dict[str, Any]
    processed_data: dict[str, Any]
    confidence_score: float | None
    metadata: dict[str, Any] = field(default_factory=dict)


class JobExecutor(ABC):
    """Runs one job against its back-end and records the outcome.

    Success writes the AnalysisResult and completes the job atomically, then
    evaluates document completion. Failure marks the job FAILED with the
    error message, together with its next attempt when the retry policy allows
    one, and re-raises. A job that could not be started is released back to
    the queue instead.
    """

    backend: Backend

    def __init__(
        self,
        job_repo: JobRepository,
        document_repo: DocumentRepository,
        completion: CompletionEvaluator,
        clock: Callable[[], datetime] = utc_now,
        retry_policy: RetryPolicy = RetryPolicy(),
    ) -> None:
        self._job_repo = job_repo
        self._document_repo = document_repo
        self._completion = completion
        self._clock = clock
        self._retry_policy = retry_policy

    def execute(self, job: ProcessingJob) -> ProcessingJob:
        if job.job_type.backend is not self.backend:
            raise ValueError(
                f"{type(self).__name__} cannot execute {job.job_type.value} job {job.id}"
            )

        job.mark_started(self._clock())
        try:
            self._job_repo.mark_processing(job)
        except InvalidJobTransitionError:
            raise
        except Exception:
            self._release(job)
            raise
        Log.info(
            f"Job {job.id} ({job.job_type.value}, attempt {job.attempt}) started "
            f"for document {job.document_id}"
        )

        try:
            document = self._document_repo.find_by_id(job.document_id)
            outcome = self._run(job, document)
            self._complete(job, outcome)
        except InvalidJobTransitionError:
            Log.warning(f"Job {job.id} was finished elsewhere, dropping its outcome")
            raise
        except Exception as exc:
            self._fail(job, exc)
            raise

        Log.info(f"Job {job.id} ({job.job_type.value}) completed", document_id=job.document_id)
        self._completion.evaluate(job.document_id)
        return job

    @abstractmethod
    def _run(self, job: ProcessingJob, document: Document) -> ExecutionOutcome:
        """Call the back-end and normalize its response."""

    def _complete(self, job: ProcessingJob, outcome: ExecutionOutcome) -> None:
        completed_at = self._clock()
        started_at = job.started_at or completed_at
        metadata = {
            "processing_time": round((completed_at - started_at).total_seconds(), 3),
            **outcome.metadata,
        }
        result = AnalysisResult(
            document_id=job.document_id,
            analysis_type=job.job_type,
            raw_results=outcome.raw_results,
            processed_data=outcome.processed_data,
            confidence_score=outcome.confidence_score,
            metadata=metadata,
        )

        # The entity only moves once the database accepted the change.
        completed = replace(job)
        completed.mark_completed(outcome.raw_results, completed_at)
        self._job_repo.mark_completed(completed, result)
        job.mark_completed(outcome.raw_results, completed_at)

    def _fail(self, job: ProcessingJob, exc: Exception) -> None:
        """Record the failure and its retry; raises InvalidJobTransitionError if
        the job already ended elsewhere (e.g. reaped)."""
        retry = self._retry_policy.should_retry(job, exc)
        job.mark_failed(str(exc), self._clock())
        retry_job = self._job_repo.mark_failed(job, retry=retry)

        if retry_job is not None:
            Log.warning(
                f"Job {job.id} ({job.job_type.value}) failed: {exc}; retrying as job "
                f"{retry_job.id} (attempt {retry_job.attempt} of "
                f"{self._retry_policy.max_attempts(job.job_type)})",
                document_id=job.document_id,
                error_type=type(exc).__name__,
            )
        else:
            Log.error(
                f"Job {job.id} ({job.job_type.value}) permanently failed after "
                f"attempt {job.attempt}: {exc}",
                document_id=job.document_id,
                error_type=type(exc).__name__,
            )

    def _release(self, job: ProcessingJob) -> None:
        """Unlock a job whose start could not be recorded; the reaper covers a failed release."""
        try:
            released = self._job_repo.release_claim(job)
        except Exception as exc:
            Log.error(f"Could not release claim on job {job.id}: {exc}")
            return
        if released:
            Log.warning(f"Job {job.id} could not be started, released back to the queue")
