from docworker.executors.router import ExecutorRouter
from docworker.logging.logger import Log
from docworker.pipeline.completion import CompletionEvaluator
from docworker.pipeline.exceptions import InvalidJobTransitionError
from docworker.pipeline.models import ProcessingJob


class JobRunner:
    """Run one job and contain its exceptions.

    Failures and their retries are recorded by the executor; the runner only
    re-checks document completion afterwards.
    """

    def __init__(self, router: ExecutorRouter, completion: CompletionEvaluator) -> None:
        self._router = router
        self._completion = completion

    def run(self, job: ProcessingJob) -> None:
        """Execute a single job with error handling."""
        Log.info(
            f"Running job {job.id} ({job.job_type.value}, attempt {job.attempt})",
            document_id=job.document_id,
        )
        try:
            self._router.for_job(job).execute(job)
        except InvalidJobTransitionError as exc:
            Log.warning(f"Job {job.id} skipped: {exc}")
        except Exception as exc:
            self._handle_failure(job, exc)

    def _handle_failure(self, job: ProcessingJob, exc: Exception) -> None:
        Log.warning(
            f"Job {job.id} ended with an error: {exc}",
            document_id=job.document_id,
            error_type=type(exc).__name__,
        )
        try:
            self._completion.evaluate(job.document_id)
        except Exception as eval_exc:
            Log.error(f"Completion check for document {job.document_id} failed: {eval_exc}")
