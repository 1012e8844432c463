import os
from collections.abc import Callable, Generator
from typing import Any

import psycopg
import pytest

from docworker.config.settings import Settings
from docworker.database.connection import apply_schema, close_pool, get_connection, init_pool
from docworker.database.repositories.document_repository import DocumentRepository
from docworker.database.repositories.job_repository import JobRepository
from docworker.pipeline.models import (
    Document,
    JobSpec,
    JobType,
    NlpJobParameters,
    OcrJobParameters,
    ProcessingJob,
)


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docworker_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        apply_schema()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    """A pooled connection on an empty set of pipeline tables."""
    with get_connection() as conn:
        conn.execute(
            "TRUNCATE analysis_results, processing_jobs, documents RESTART IDENTITY CASCADE"
        )
        conn.commit()
        yield conn
        conn.rollback()


@pytest.fixture
def seed_document(db_conn: psycopg.Connection[Any]) -> Callable[..., Document]:
    def _seed(
        mime_type: str = "application/pdf",
        file_size: int = 1024,
        user_id: int = 7,
    ) -> Document:
        return DocumentRepository().create(
            user_id=user_id,
            title="Quarterly report",
            original_filename="report.pdf",
            mime_type=mime_type,
            file_size=file_size,
            storage_bucket="docs",
            storage_key=f"documents/{user_id}/report.pdf",
            file_extension="pdf",
            tags=["finance"],
            metadata={"source": "integration"},
        )

    return _seed


@pytest.fixture
def seed_jobs(
    seed_document: Callable[..., Document],
) -> Callable[[], tuple[Document, list[ProcessingJob]]]:
    """A PROCESSING-ready document with the small-PDF job plan."""

    def _seed() -> tuple[Document, list[ProcessingJob]]:
        document = seed_document()
        jobs = JobRepository().create_jobs(
            document.id,
            [
                JobSpec(JobType.OCR_ANALYSIS, OcrJobParameters()),
                JobSpec(JobType.NLP_SENTIMENT, NlpJobParameters()),
            ],
        )
        return document, jobs

    return _seed


@pytest.fixture
def force_update(db_conn: psycopg.Connection[Any]) -> Callable[[str, int, str], None]:
    """Set row state a test cannot reach through the repositories, such as an old claim."""

    def _update(table: str, row_id: int, assignments: str) -> None:
        db_conn.execute(f"UPDATE {table} SET {assignments} WHERE id = %s", (row_id,))
        db_conn.commit()

    return _update
