from collections.abc import Callable
from datetime import datetime

from docworker.database.repositories.document_repository import DocumentRepository
from docworker.database.repositories.job_repository import JobRepository
from docworker.executors.base import utc_now
from docworker.logging.logger import Log
from docworker.pipeline.completion import CompletionEvaluator
from docworker.pipeline.exceptions import InvalidJobTransitionError, JobTimeoutError
from docworker.pipeline.models import Backend, JobType
from docworker.worker.retry_policy import RetryPolicy


class StaleJobReaper:
    """Fails jobs that outlived their type timeout and releases stuck document claims.

    Reaped jobs are retried under the normal retry policy and their documents
    are re-evaluated for completion.
    """

    def __init__(
        self,
        job_repo: JobRepository,
        document_repo: DocumentRepository,
        completion: CompletionEvaluator,
        retry_policy: RetryPolicy,
        dispatch_claim_timeout_seconds: int,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._job_repo = job_repo
        self._document_repo = document_repo
        self._completion = completion
        self._retry_policy = retry_policy
        self._dispatch_claim_timeout_seconds = dispatch_claim_timeout_seconds
        self._clock = clock

    def reap(self) -> int:
        """Return the number of jobs failed by this pass."""
        reaped = 0
        for backend in Backend:
            timeout = self._retry_policy.timeout_seconds(backend)
            reap_after = self._retry_policy.reap_after_seconds(backend)
            for job in self._job_repo.find_stale(JobType.for_backend(backend), reap_after):
                error = JobTimeoutError(f"Job timed out after {timeout} seconds")
                retry = self._retry_policy.should_retry(job, error)
                job.mark_failed(str(error), self._clock())
                try:
                    retry_job = self._job_repo.mark_failed(job, retry=retry)
                except InvalidJobTransitionError:
                    Log.debug(f"Stale job {job.id} finished before it was reaped")
                    continue

                reaped += 1
                Log.warning(f"Job {job.id} ({job.job_type.value}) reaped: {error}")
                if retry_job is not None:
                    Log.info(
                        f"Job {job.id} retried as job {retry_job.id} (attempt {retry_job.attempt})"
                    )
                self._completion.evaluate(job.document_id)

        released = self._document_repo.release_stale_claims(self._dispatch_claim_timeout_seconds)
        if released:
            Log.warning(f"Released {released} stale document claim(s)")
        return reaped
