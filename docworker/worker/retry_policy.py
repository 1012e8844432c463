from dataclasses import dataclass

from docworker.config.settings import Settings
from docworker.pipeline.exceptions import is_retryable
from docworker.pipeline.models import Backend, Document, JobType, ProcessingJob


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt caps and timeouts per job family.

    A retried job is never reopened: its failure is stored together with a
    new PENDING job carrying the next attempt number.
    """

    ocr_max_attempts: int = 2
    nlp_max_attempts: int = 2
    max_dispatch_attempts: int = 3
    ocr_timeout_seconds: int = 600
    nlp_timeout_seconds: int = 300
    reaper_grace_seconds: int = 60

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            ocr_max_attempts=settings.ocr_job_max_attempts,
            nlp_max_attempts=settings.nlp_job_max_attempts,
            max_dispatch_attempts=settings.max_dispatch_attempts,
            ocr_timeout_seconds=settings.ocr_job_timeout_seconds,
            nlp_timeout_seconds=settings.nlp_job_timeout_seconds,
            reaper_grace_seconds=settings.stale_job_grace_seconds,
        )

    def max_attempts(self, job_type: JobType) -> int:
        if job_type.backend is Backend.OCR:
            return self.ocr_max_attempts
        return self.nlp_max_attempts

    def timeout_seconds(self, backend: Backend) -> int:
        if backend is Backend.OCR:
            return self.ocr_timeout_seconds
        return self.nlp_timeout_seconds

    def reap_after_seconds(self, backend: Backend) -> int:
        """How long a job may stay claimed or processing before the reaper fails it.

        The grace period keeps the reaper behind an executor still polling up
        to its own deadline.
        """
        return self.timeout_seconds(backend) + self.reaper_grace_seconds

    def should_retry(self, job: ProcessingJob, exc: BaseException) -> bool:
        return is_retryable(exc) and job.attempt < self.max_attempts(job.job_type)

    def should_requeue(self, document: Document, exc: BaseException) -> bool:
        return is_retryable(exc) and document.dispatch_attempts < self.max_dispatch_attempts
