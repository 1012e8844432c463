from typing import assert_never

from docworker.executors.base import JobExecutor
from docworker.executors.nlp_executor import NlpJobExecutor
from docworker.executors.ocr_executor import OcrJobExecutor
from docworker.pipeline.models import Backend, ProcessingJob


class ExecutorRouter:
    """Picks the executor for a job by the back-end its type belongs to."""

    def __init__(self, ocr_executor: OcrJobExecutor, nlp_executor: NlpJobExecutor) -> None:
        self._ocr_executor = ocr_executor
        self._nlp_executor = nlp_executor

    def for_job(self, job: ProcessingJob) -> JobExecutor:
        backend = job.job_type.backend
        match backend:
            case Backend.OCR:
                return self._ocr_executor
            case Backend.NLP:
                return self._nlp_executor
            case _:
                assert_never(backend)
