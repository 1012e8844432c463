import io
from collections.abc import Callable
from typing import Any

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docworker.pipeline.completion import CompletionEvaluator
from docworker.pipeline.models import Document, ProcessingStatus
from docworker.pipeline.status import DocumentStatusService
from fakes import (
    FakeAnalysisResultRepository,
    FakeDocumentRepository,
    FakeJobRepository,
    InMemoryStorage,
    InMemoryStore,
    RecordingNotifier,
)


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def document_repo(store: InMemoryStore) -> FakeDocumentRepository:
    return FakeDocumentRepository(store)


@pytest.fixture()
def job_repo(store: InMemoryStore) -> FakeJobRepository:
    return FakeJobRepository(store)


@pytest.fixture()
def result_repo(store: InMemoryStore) -> FakeAnalysisResultRepository:
    return FakeAnalysisResultRepository(store)


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def status_service(
    document_repo: FakeDocumentRepository,
    job_repo: FakeJobRepository,
    notifier: RecordingNotifier,
) -> DocumentStatusService:
    return DocumentStatusService(document_repo, job_repo, notifier)


@pytest.fixture()
def completion(
    document_repo: FakeDocumentRepository,
    job_repo: FakeJobRepository,
    status_service: DocumentStatusService,
) -> CompletionEvaluator:
    return CompletionEvaluator(document_repo, job_repo, status_service)


@pytest.fixture()
def make_document(
    store: InMemoryStore,
    document_repo: FakeDocumentRepository,
    storage: InMemoryStorage,
) -> Callable[..., Document]:
    """Create a stored document; ``content`` also puts its bytes in storage."""

    def _make(
        mime_type: str = "application/pdf",
        file_size: int = 1024,
        status: ProcessingStatus = ProcessingStatus.PENDING,
        content: bytes | None = None,
        **fields: Any,
    ) -> Document:
        document = document_repo.create(
            user_id=fields.pop("user_id", 7),
            title=fields.pop("title", "Quarterly report"),
            original_filename=fields.pop("original_filename", "report.pdf"),
            mime_type=mime_type,
            file_size=file_size,
            storage_bucket=storage.bucket,
            storage_key=fields.pop("storage_key", f"documents/7/doc-{len(store.documents)}"),
            **fields,
        )
        store.documents[document.id].processing_status = status
        if content is not None:
            storage.put(document.storage_key, content)
        return document_repo.find_by_id(document.id)

    return _make
