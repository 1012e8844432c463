from collections.abc import Callable

from docworker.pipeline.completion import CompletionEvaluator
from docworker.pipeline.models import (
    Document,
    JobSpec,
    JobStatus,
    JobType,
    NlpJobParameters,
    OcrJobParameters,
    ProcessingStatus,
)
from fakes import FakeJobRepository, InMemoryStore, RecordingNotifier


def _plan() -> list[JobSpec]:
    return [
        JobSpec(JobType.OCR_ANALYSIS, OcrJobParameters()),
        JobSpec(JobType.NLP_SENTIMENT, NlpJobParameters()),
    ]


class TestEvaluate:
    def test_completes_when_all_jobs_terminal(
        self,
        make_document: Callable[..., Document],
        job_repo: FakeJobRepository,
        completion: CompletionEvaluator,
        store: InMemoryStore,
        notifier: RecordingNotifier,
    ) -> None:
        document = make_document(status=ProcessingStatus.PROCESSING)
        first, second = job_repo.create_jobs(document.id, _plan())
        store.jobs[first.id].status = JobStatus.COMPLETED
        store.jobs[second.id].status = JobStatus.COMPLETED

        assert completion.evaluate(document.id) is True
        assert store.document_status(document.id) is ProcessingStatus.COMPLETED
        assert notifier.events[-1].message == "Document processing completed"
        assert notifier.events[-1].progress == 100

    def test_failed_jobs_still_complete_the_document(
        self,
        make_document: Callable[..., Document],
        job_repo: FakeJobRepository,
        completion: CompletionEvaluator,
        store: InMemoryStore,
    ) -> None:
        document = make_document(status=ProcessingStatus.PROCESSING)
        first, second = job_repo.create_jobs(document.id, _plan())
        store.jobs[first.id].status = JobStatus.COMPLETED
        store.jobs[second.id].status = JobStatus.FAILED

        assert completion.evaluate(document.id) is True
        assert store.document_status(document.id) is ProcessingStatus.COMPLETED

    def test_waits_for_active_jobs(
        self,
        make_document: Callable[..., Document],
        job_repo: FakeJobRepository,
        completion: CompletionEvaluator,
        store: InMemoryStore,
        notifier: RecordingNotifier,
    ) -> None:
        document = make_document(status=ProcessingStatus.PROCESSING)
        first, _ = job_repo.create_jobs(document.id, _plan())
        store.jobs[first.id].status = JobStatus.COMPLETED

        assert completion.evaluate(document.id) is False
        assert store.document_status(document.id) is ProcessingStatus.PROCESSING
        assert notifier.events == []

    def test_is_idempotent(
        self,
        make_document: Callable[..., Document],
        job_repo: FakeJobRepository,
        completion: CompletionEvaluator,
        store: InMemoryStore,
        notifier: RecordingNotifier,
    ) -> None:
        document = make_document(status=ProcessingStatus.PROCESSING)
        (job,) = job_repo.create_jobs(document.id, _plan()[:1])
        store.jobs[job.id].status = JobStatus.COMPLETED

        results = [completion.evaluate(document.id) for _ in range(3)]

        assert results == [True, False, False]
        assert len(notifier.events) == 1

    def test_ignores_documents_not_processing(
        self,
        make_document: Callable[..., Document],
        completion: CompletionEvaluator,
        store: InMemoryStore,
    ) -> None:
        pending = make_document()
        failed = make_document(status=ProcessingStatus.FAILED)

        assert completion.evaluate(pending.id) is False
        assert completion.evaluate(failed.id) is False
        assert store.document_status(pending.id) is ProcessingStatus.PENDING
        assert store.document_status(failed.id) is ProcessingStatus.FAILED
