from collections.abc import Callable
from datetime import datetime
from typing import Any, assert_never

from docworker.backends.nlp.base import BaseTextAnalysisBackend
from docworker.database.repositories.analysis_result_repository import (
    AnalysisResultRepository,
)
from docworker.database.repositories.document_repository import DocumentRepository
from docworker.database.repositories.job_repository import JobRepository
from docworker.executors.base import ExecutionOutcome, JobExecutor, utc_now
from docworker.logging.logger import Log
from docworker.pipeline.completion import CompletionEvaluator
from docworker.pipeline.exceptions import NoTextAvailableError
from docworker.pipeline.models import (
    Backend,
    Document,
    JobType,
    NlpJobParameters,
    ProcessingJob,
)
from docworker.storage.base import BaseStorage
from docworker.worker.retry_policy import RetryPolicy

SENTIMENT_MAX_BYTES = 5_000
ANALYSIS_MAX_BYTES = 100_000

TEXT_SOURCE_OCR = "ocr"
TEXT_SOURCE_DIRECT = "direct"


def max_text_bytes(job_type: JobType) -> int:
    """UTF-8 byte limit the back-end accepts for this operation."""
    return SENTIMENT_MAX_BYTES if job_type is JobType.NLP_SENTIMENT else ANALYSIS_MAX_BYTES


def truncate_utf8(text: str, max_bytes: int) -> tuple[str, bool]:
    """Cut text to at most ``max_bytes`` UTF-8 bytes without splitting a character."""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text, False
    return encoded[:max_bytes].decode("utf-8", errors="ignore"), True


def decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _mean(scores: list[float]) -> float | None:
    return sum(scores) / len(scores) if scores else None


class NlpJobExecutor(JobExecutor):
    """Executes nlp_* jobs over OCR output or the stored document text."""

    backend = Backend.NLP

    def __init__(
        self,
        job_repo: JobRepository,
        document_repo: DocumentRepository,
        completion: CompletionEvaluator,
        nlp_backend: BaseTextAnalysisBackend,
        result_repo: AnalysisResultRepository,
        storage: BaseStorage,
        *,
        default_language: str = "en",
        clock: Callable[[], datetime] = utc_now,
        retry_policy: RetryPolicy = RetryPolicy(),
    ) -> None:
        super().__init__(job_repo, document_repo, completion, clock, retry_policy)
        self._nlp = nlp_backend
        self._result_repo = result_repo
        self._storage = storage
        self._default_language = default_language

    def _run(self, job: ProcessingJob, document: Document) -> ExecutionOutcome:
        params = job.parameters
        if not isinstance(params, NlpJobParameters):
            raise TypeError(
                f"Job {job.id} carries {type(params).__name__}, expected NLP parameters"
            )

        text, source = self._source_text(document, params)
        limit = max_text_bytes(job.job_type)
        analyzed, truncated = truncate_utf8(text, limit)
        if truncated:
            Log.warning(
                f"Text for job {job.id} truncated to {limit} bytes "
                f"({len(text.encode('utf-8'))} bytes sourced)"
            )
        language = params.language_code or self._default_language

        processed: dict[str, Any]
        match job.job_type:
            case JobType.NLP_SENTIMENT:
                sentiment = self._nlp.detect_sentiment(analyzed, language)
                scores = sentiment.scores.as_dict()
                processed = {"sentiment_label": sentiment.label, "confidence_scores": scores}
                confidence: float | None = max(scores.values())
                raw, request_id = sentiment.raw, sentiment.request_id
            case JobType.NLP_ENTITIES:
                entities = self._nlp.detect_entities(analyzed, language)
                processed = {
                    "entities": [
                        {"text": e.text, "type": e.type, "confidence": e.score}
                        for e in entities.entities
                    ]
                }
                confidence = _mean([e.score for e in entities.entities])
                raw, request_id = entities.raw, entities.request_id
            case JobType.NLP_KEY_PHRASES:
                phrases = self._nlp.detect_key_phrases(analyzed, language)
                processed = {
                    "key_phrases": [
                        {"text": p.text, "confidence": p.score} for p in phrases.key_phrases
                    ]
                }
                confidence = _mean([p.score for p in phrases.key_phrases])
                raw, request_id = phrases.raw, phrases.request_id
            case JobType.NLP_LANGUAGE:
                detected = self._nlp.detect_language(analyzed)
                processed = {
                    "languages": [
                        {"code": lang.code, "confidence": lang.score}
                        for lang in detected.languages
                    ]
                }
                confidence = max((lang.score for lang in detected.languages), default=None)
                raw, request_id = detected.raw, detected.request_id
            case JobType.OCR_TEXT | JobType.OCR_ANALYSIS:
                raise ValueError(f"NLP executor cannot run {job.job_type.value}")
            case _:
                assert_never(job.job_type)

        return ExecutionOutcome(
            raw_results=raw,
            processed_data=processed,
            confidence_score=confidence,
            metadata={
                "text_length": len(text),
                "text_source": source,
                "truncated": truncated,
                "backend_request_id": request_id,
            },
        )

    def _source_text(self, document: Document, params: NlpJobParameters) -> tuple[str, str]:
        """Earliest OCR text of the document, else the stored object for direct-text jobs.

        Raises:
            NoTextAvailableError: if neither source yields non-blank text; retryable
                while an OCR job of the document is still active.
        """
        for result in self._result_repo.find_ocr_results(document.id):
            blocks = result.processed_data.get("text_blocks") or []
            text = " ".join(str(block.get("text", "")) for block in blocks)
            if text.strip():
                Log.debug(f"Using OCR text of result {result.id} for document {document.id}")
                return text, TEXT_SOURCE_OCR

        if params.direct_text:
            text = decode_text(self._storage.download(document.storage_key))
            if text.strip():
                return text, TEXT_SOURCE_DIRECT

        ocr_pending = any(
            sibling.job_type.backend is Backend.OCR and not sibling.is_terminal
            for sibling in self._job_repo.list_for_document(document.id)
        )
        raise NoTextAvailableError(document.id, ocr_pending=ocr_pending)
