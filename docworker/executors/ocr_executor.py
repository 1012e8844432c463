import time
from collections.abc import Callable
from datetime import datetime
from typing import Any, assert_never

from docworker.backends.ocr.base import BaseOcrBackend
from docworker.backends.ocr.exceptions import OcrTimeoutError
from docworker.backends.ocr.models import OcrResponse
from docworker.database.repositories.document_repository import DocumentRepository
from docworker.database.repositories.job_repository import JobRepository
from docworker.executors.base import ExecutionOutcome, JobExecutor, utc_now
from docworker.logging.logger import Log
from docworker.pipeline.completion import CompletionEvaluator
from docworker.pipeline.models import (
    Backend,
    Document,
    ExecutionMode,
    JobType,
    OcrJobParameters,
    ProcessingJob,
)
from docworker.worker.retry_policy import RetryPolicy


def normalize_blocks(blocks: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    """Sort back-end blocks into text lines, tables and form keys.

    Other block types (PAGE, WORD, CELL, KEY_VALUE_SET values) are kept only
    in the raw payload.
    """
    processed: dict[str, list[dict[str, Any]]] = {"text_blocks": [], "tables": [], "forms": []}
    for block in blocks:
        block_type = block.get("BlockType")
        if block_type == "LINE":
            processed["text_blocks"].append(
                {
                    "text": block.get("Text", ""),
                    "confidence": block.get("Confidence"),
                    "geometry": block.get("Geometry"),
                }
            )
        elif block_type == "TABLE":
            processed["tables"].append(
                {
                    "id": block.get("Id"),
                    "confidence": block.get("Confidence"),
                    "geometry": block.get("Geometry"),
                }
            )
        elif block_type == "KEY_VALUE_SET" and "KEY" in block.get("EntityTypes", []):
            processed["forms"].append(
                {
                    "type": "key",
                    "text": block.get("Text", ""),
                    "confidence": block.get("Confidence"),
                }
            )
    return processed


def average_confidence(blocks: list[dict[str, Any]]) -> float | None:
    """Mean block confidence scaled from percent to [0, 1]; None when no block has one."""
    confidences = [
        float(block["Confidence"]) for block in blocks if block.get("Confidence") is not None
    ]
    if not confidences:
        return None
    return sum(confidences) / len(confidences) / 100


class OcrJobExecutor(JobExecutor):
    """Executes ocr_text and ocr_analysis jobs."""

    backend = Backend.OCR

    def __init__(
        self,
        job_repo: JobRepository,
        document_repo: DocumentRepository,
        completion: CompletionEvaluator,
        ocr_backend: BaseOcrBackend,
        *,
        poll_interval_seconds: float,
        timeout_seconds: float,
        clock: Callable[[], datetime] = utc_now,
        retry_policy: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(job_repo, document_repo, completion, clock, retry_policy)
        self._ocr = ocr_backend
        self._poll_interval_seconds = poll_interval_seconds
        self._timeout_seconds = timeout_seconds
        self._sleep = sleep
        self._monotonic = monotonic

    def _run(self, job: ProcessingJob, document: Document) -> ExecutionOutcome:
        params = job.parameters
        if not isinstance(params, OcrJobParameters):
            raise TypeError(
                f"Job {job.id} carries {type(params).__name__}, expected OCR parameters"
            )

        key, bucket = document.storage_key, document.storage_bucket
        is_async = params.mode is ExecutionMode.ASYNC

        match job.job_type:
            case JobType.OCR_TEXT:
                if is_async:
                    response = self._run_async(
                        job,
                        self._ocr.start_text_detection(key, bucket),
                        self._ocr.get_text_detection_result,
                    )
                else:
                    response = self._ocr.detect_text(key, bucket)
            case JobType.OCR_ANALYSIS:
                if is_async:
                    response = self._run_async(
                        job,
                        self._ocr.start_analysis(key, bucket, params.feature_types),
                        self._ocr.get_analysis_result,
                    )
                else:
                    response = self._ocr.analyze(key, bucket, params.feature_types)
            case (
                JobType.NLP_SENTIMENT
                | JobType.NLP_ENTITIES
                | JobType.NLP_KEY_PHRASES
                | JobType.NLP_LANGUAGE
            ):
                raise ValueError(f"OCR executor cannot run {job.job_type.value}")
            case _:
                assert_never(job.job_type)

        return self._outcome(job, response)

    def _run_async(
        self,
        job: ProcessingJob,
        backend_job_id: str,
        fetch: Callable[[str], OcrResponse | None],
    ) -> OcrResponse:
        job.backend_job_id = backend_job_id
        self._job_repo.set_backend_job_id(job)
        Log.info(f"Job {job.id} waiting for OCR back-end job {backend_job_id}")

        deadline = self._monotonic() + self._timeout_seconds
        while True:
            response = fetch(backend_job_id)
            if response is not None:
                return response
            if self._monotonic() >= deadline:
                raise OcrTimeoutError(
                    f"OCR back-end job {backend_job_id} did not finish within "
                    f"{self._timeout_seconds} seconds"
                )
            Log.debug(f"OCR back-end job {backend_job_id} still in progress")
            self._sleep(self._poll_interval_seconds)

    def _outcome(self, job: ProcessingJob, response: OcrResponse) -> ExecutionOutcome:
        metadata: dict[str, Any] = {
            "backend_request_id": response.request_id,
            "block_count": len(response.blocks),
        }
        if job.backend_job_id is not None:
            metadata["backend_job_id"] = job.backend_job_id
        if response.is_partial:
            metadata["is_partial"] = True
            metadata["partial_message"] = (
                response.status_message or "Some pages could not be processed"
            )
            metadata["warnings"] = response.warnings
            Log.warning(
                f"Job {job.id} completed with partial OCR results: "
                f"{metadata['partial_message']}"
            )

        return ExecutionOutcome(
            raw_results=response.raw,
            processed_data=normalize_blocks(response.blocks),
            confidence_score=average_confidence(response.blocks),
            metadata=metadata,
        )
