import threading
import time
from collections.abc import Callable

from docworker.config.settings import Settings
from docworker.database.connection import get_connection
from docworker.database.repositories.document_repository import DocumentRepository
from docworker.database.repositories.job_repository import JobRepository
from docworker.logging.logger import Log
from docworker.pipeline.models import Document, ProcessingJob
from docworker.worker.document_runner import DocumentRunner
from docworker.worker.job_runner import JobRunner
from docworker.worker.reaper import StaleJobReaper


class Worker:
    """Poll loop: claim a document, else claim a job, else sleep.

    Every ``stale_job_check_interval_seconds`` the reaper (when given) runs
    before the next claim.
    """

    def __init__(
        self,
        document_repo: DocumentRepository,
        job_repo: JobRepository,
        document_runner: DocumentRunner,
        job_runner: JobRunner,
        settings: Settings,
        reaper: StaleJobReaper | None = None,
        stop_event: threading.Event | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._document_repo = document_repo
        self._job_repo = job_repo
        self._document_runner = document_runner
        self._job_runner = job_runner
        self._settings = settings
        self._reaper = reaper
        self._stop_event = stop_event or threading.Event()
        self._monotonic = monotonic
        self._last_reap: float | None = None

    def run(self, max_jobs: int | None = None) -> None:
        """Main poll loop. Runs until stopped or interrupted.

        If max_jobs is set, stop after that many documents and jobs (for testing).
        """
        Log.info("Worker started, polling for documents and jobs")
        jobs_done = 0
        try:
            while not self._stop_event.is_set():
                if max_jobs is not None and jobs_done >= max_jobs:
                    break
                self._maybe_reap()

                document = self._try_claim_document()
                if document:
                    self._document_runner.run(document)
                    jobs_done += 1
                    continue

                job = self._try_claim_job()
                if job:
                    self._job_runner.run(job)
                    jobs_done += 1
                    continue

                Log.debug("No work available, sleeping")
                self._stop_event.wait(self._settings.job_poll_interval_seconds)
        except KeyboardInterrupt:
            Log.info("Worker shutting down gracefully")

    def stop(self) -> None:
        self._stop_event.set()

    def _try_claim_document(self) -> Document | None:
        """Attempt to claim the next pending document. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._document_repo.claim_next_pending(
                    conn, self._settings.max_dispatch_attempts
                )
        except Exception as exc:
            Log.warning(f"Database error while claiming a document, will retry: {exc}")
            return None

    def _try_claim_job(self) -> ProcessingJob | None:
        """Attempt to claim the next pending job. Gracefully handle DB errors."""
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(conn)
        except Exception as exc:
            Log.warning(f"Database error while claiming a job, will retry: {exc}")
            return None

    def _maybe_reap(self) -> None:
        if self._reaper is None:
            return
        now = self._monotonic()
        interval = self._settings.stale_job_check_interval_seconds
        if self._last_reap is not None and now - self._last_reap < interval:
            return
        self._last_reap = now
        try:
            reaped = self._reaper.reap()
        except Exception as exc:
            Log.warning(f"Stale job check failed, will retry: {exc}")
            return
        if reaped:
            Log.info(f"Stale job check failed {reaped} job(s)")
