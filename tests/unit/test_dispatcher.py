from collections.abc import Callable
from unittest.mock import patch

import pytest

from docworker.config.settings import Settings
from docworker.pipeline.dispatcher import DocumentDispatcher
from docworker.pipeline.exceptions import (
    NoProcessorAvailableError,
    UnsupportedDocumentTypeError,
)
from docworker.pipeline.models import Document, JobStatus, JobType, ProcessingStatus
from docworker.pipeline.registry import default_registry
from docworker.pipeline.status import DocumentStatusService
from fakes import FakeJobRepository, InMemoryStore, RecordingNotifier

MIB = 1024 * 1024


@pytest.fixture()
def dispatcher(
    job_repo: FakeJobRepository, status_service: DocumentStatusService
) -> DocumentDispatcher:
    return DocumentDispatcher(default_registry(Settings()), job_repo, status_service)


class TestSuccessfulDispatch:
    def test_small_pdf_gets_three_pending_jobs(
        self,
        make_document: Callable[..., Document],
        dispatcher: DocumentDispatcher,
        store: InMemoryStore,
    ) -> None:
        document = make_document(file_size=2 * MIB)

        jobs = dispatcher.dispatch(document)

        assert [job.job_type for job in jobs] == [
            JobType.OCR_ANALYSIS,
            JobType.NLP_SENTIMENT,
            JobType.NLP_ENTITIES,
        ]
        assert all(job.status is JobStatus.PENDING for job in jobs)
        assert all(job.attempt == 1 for job in jobs)
        assert store.document_status(document.id) is ProcessingStatus.PROCESSING

    def test_text_document_gets_four_jobs(
        self,
        make_document: Callable[..., Document],
        dispatcher: DocumentDispatcher,
        store: InMemoryStore,
    ) -> None:
        document = make_document(mime_type="text/plain")

        jobs = dispatcher.dispatch(document)

        assert len(jobs) == 4
        assert len(store.jobs_for(document.id)) == 4

    def test_publishes_processing_started(
        self,
        make_document: Callable[..., Document],
        dispatcher: DocumentDispatcher,
        notifier: RecordingNotifier,
    ) -> None:
        document = make_document(mime_type="image/png")

        dispatcher.dispatch(document)

        assert notifier.statuses(document.id) == [ProcessingStatus.PROCESSING]
        assert notifier.events[0].message == "Processing started"

    def test_skips_document_dispatched_elsewhere(
        self,
        make_document: Callable[..., Document],
        dispatcher: DocumentDispatcher,
        store: InMemoryStore,
    ) -> None:
        document = make_document()
        store.documents[document.id].processing_status = ProcessingStatus.PROCESSING

        assert dispatcher.dispatch(document) == []
        assert store.jobs_for(document.id) == []


class TestFailedDispatch:
    def test_unknown_type_fails_with_no_jobs(
        self,
        make_document: Callable[..., Document],
        dispatcher: DocumentDispatcher,
        store: InMemoryStore,
        notifier: RecordingNotifier,
    ) -> None:
        document = make_document(mime_type="application/zip")

        with pytest.raises(UnsupportedDocumentTypeError):
            dispatcher.dispatch(document)

        assert store.document_status(document.id) is ProcessingStatus.FAILED
        assert store.jobs_for(document.id) == []
        assert notifier.statuses(document.id) == [
            ProcessingStatus.PROCESSING,
            ProcessingStatus.FAILED,
        ]
        assert notifier.events[-1].metadata == {"error_type": "UnsupportedDocumentTypeError"}

    @pytest.mark.parametrize(
        "mime_type",
        [
            "application/msword",
            "application/vnd.ms-excel",
            "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        ],
    )
    def test_office_types_fail_with_no_processor(
        self,
        mime_type: str,
        make_document: Callable[..., Document],
        dispatcher: DocumentDispatcher,
        store: InMemoryStore,
    ) -> None:
        document = make_document(mime_type=mime_type)

        with pytest.raises(NoProcessorAvailableError):
            dispatcher.dispatch(document)

        assert store.document_status(document.id) is ProcessingStatus.FAILED
        assert store.jobs_for(document.id) == []

    def test_persistence_error_fails_document_and_reraises(
        self,
        make_document: Callable[..., Document],
        dispatcher: DocumentDispatcher,
        job_repo: FakeJobRepository,
        store: InMemoryStore,
        notifier: RecordingNotifier,
    ) -> None:
        document = make_document()

        with patch.object(job_repo, "create_jobs", side_effect=RuntimeError("db down")):
            with pytest.raises(RuntimeError, match="db down"):
                dispatcher.dispatch(document)

        assert store.document_status(document.id) is ProcessingStatus.FAILED
        assert notifier.events[-1].message == "db down"
        assert notifier.events[-1].metadata == {"error_type": "RuntimeError"}
