import signal
import threading
from types import FrameType

from docworker.backends.nlp.factory import TextAnalysisBackendFactory
from docworker.backends.ocr.factory import OcrBackendFactory
from docworker.config.settings import Settings
from docworker.database.connection import apply_schema, close_pool, init_pool
from docworker.database.repositories.analysis_result_repository import (
    AnalysisResultRepository,
)
from docworker.database.repositories.document_repository import DocumentRepository
from docworker.database.repositories.job_repository import JobRepository
from docworker.executors.nlp_executor import NlpJobExecutor
from docworker.executors.ocr_executor import OcrJobExecutor
from docworker.executors.router import ExecutorRouter
from docworker.logging.logger import Log
from docworker.notifications.factory import NotifierFactory
from docworker.pipeline.completion import CompletionEvaluator
from docworker.pipeline.dispatcher import DocumentDispatcher
from docworker.pipeline.registry import default_registry
from docworker.pipeline.status import DocumentStatusService
from docworker.storage.factory import StorageFactory
from docworker.worker.document_runner import DocumentRunner
from docworker.worker.job_runner import JobRunner
from docworker.worker.pool import WorkerPool
from docworker.worker.reaper import StaleJobReaper
from docworker.worker.retry_policy import RetryPolicy
from docworker.worker.worker import Worker


def build_worker_pool(settings: Settings) -> WorkerPool:
    """Wire repositories, back-ends, pipeline services and runners into a pool."""
    document_repo = DocumentRepository()
    job_repo = JobRepository()
    result_repo = AnalysisResultRepository()

    storage = StorageFactory.create(settings)
    ocr_backend = OcrBackendFactory.create(settings, storage)
    nlp_backend = TextAnalysisBackendFactory.create(settings)
    notifier = NotifierFactory.create(settings)

    status_service = DocumentStatusService(document_repo, job_repo, notifier)
    completion = CompletionEvaluator(document_repo, job_repo, status_service)
    dispatcher = DocumentDispatcher(default_registry(settings), job_repo, status_service)
    retry_policy = RetryPolicy.from_settings(settings)

    router = ExecutorRouter(
        OcrJobExecutor(
            job_repo,
            document_repo,
            completion,
            ocr_backend,
            poll_interval_seconds=settings.ocr_poll_interval_seconds,
            timeout_seconds=settings.ocr_job_timeout_seconds,
            retry_policy=retry_policy,
        ),
        NlpJobExecutor(
            job_repo,
            document_repo,
            completion,
            nlp_backend,
            result_repo,
            storage,
            default_language=settings.nlp_default_language,
            retry_policy=retry_policy,
        ),
    )
    document_runner = DocumentRunner(dispatcher, document_repo, status_service, retry_policy)
    job_runner = JobRunner(router, completion)
    reaper = StaleJobReaper(
        job_repo,
        document_repo,
        completion,
        retry_policy,
        settings.dispatch_claim_timeout_seconds,
    )

    def make_worker(index: int, stop_event: threading.Event) -> Worker:
        return Worker(
            document_repo,
            job_repo,
            document_runner,
            job_runner,
            settings,
            reaper=reaper if index == 0 else None,
            stop_event=stop_event,
        )

    return WorkerPool(make_worker, settings.worker_concurrency)


def main() -> None:
    """Entry point: initialize pool -> build dependencies -> start worker loops."""
    settings = Settings()
    Log.configure(settings.log_level)
    Log.info(f"Starting docworker ({settings.app_env}), concurrency={settings.worker_concurrency}")
    init_pool(settings)

    try:
        if settings.db_apply_schema:
            apply_schema()
        pool = build_worker_pool(settings)

        def handle_sigterm(signum: int, frame: FrameType | None) -> None:
            Log.info("SIGTERM received, stopping workers")
            pool.stop()

        signal.signal(signal.SIGTERM, handle_sigterm)
        pool.run()
    finally:
        close_pool()


if __name__ == "__main__":
    main()
