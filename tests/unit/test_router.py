from unittest.mock import MagicMock

import pytest

from docworker.executors.router import ExecutorRouter
from docworker.pipeline.models import (
    Backend,
    JobType,
    NlpJobParameters,
    OcrJobParameters,
    ProcessingJob,
)


def _make_job(job_type: JobType) -> ProcessingJob:
    parameters = (
        OcrJobParameters() if job_type.backend is Backend.OCR else NlpJobParameters()
    )
    return ProcessingJob(id=1, document_id=1, job_type=job_type, parameters=parameters)


class TestExecutorRouter:
    @pytest.mark.parametrize("job_type", JobType.for_backend(Backend.OCR))
    def test_ocr_jobs_go_to_ocr_executor(self, job_type: JobType) -> None:
        ocr_executor, nlp_executor = MagicMock(), MagicMock()

        router = ExecutorRouter(ocr_executor, nlp_executor)

        assert router.for_job(_make_job(job_type)) is ocr_executor

    @pytest.mark.parametrize("job_type", JobType.for_backend(Backend.NLP))
    def test_nlp_jobs_go_to_nlp_executor(self, job_type: JobType) -> None:
        ocr_executor, nlp_executor = MagicMock(), MagicMock()

        router = ExecutorRouter(ocr_executor, nlp_executor)

        assert router.for_job(_make_job(job_type)) is nlp_executor
