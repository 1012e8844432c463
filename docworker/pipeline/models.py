from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from docworker.pipeline.exceptions import (
    InvalidDocumentTransitionError,
    InvalidJobTransitionError,
)


class ProcessingStatus(str, Enum):
    """Lifecycle of a document as a whole."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class JobStatus(str, Enum):
    """Lifecycle of one processing job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


ACTIVE_JOB_STATUSES: tuple[JobStatus, ...] = (JobStatus.PENDING, JobStatus.PROCESSING)
TERMINAL_JOB_STATUSES: tuple[JobStatus, ...] = (JobStatus.COMPLETED, JobStatus.FAILED)

# FAILED -> PENDING is reserved for the dispatch harness requeue.
DOCUMENT_TRANSITIONS: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    ProcessingStatus.PENDING: frozenset({ProcessingStatus.PROCESSING, ProcessingStatus.FAILED}),
    ProcessingStatus.PROCESSING: frozenset({ProcessingStatus.COMPLETED, ProcessingStatus.FAILED}),
    ProcessingStatus.COMPLETED: frozenset(),
    ProcessingStatus.FAILED: frozenset({ProcessingStatus.PENDING}),
}


class Backend(str, Enum):
    """Analysis back-end family a job runs against."""

    OCR = "ocr"
    NLP = "nlp"


class JobType(str, Enum):
    """Closed set of analysis operations. The value is the persisted tag."""

    OCR_TEXT = "ocr_text"
    OCR_ANALYSIS = "ocr_analysis"
    NLP_SENTIMENT = "nlp_sentiment"
    NLP_ENTITIES = "nlp_entities"
    NLP_KEY_PHRASES = "nlp_key_phrases"
    NLP_LANGUAGE = "nlp_language"

    @property
    def backend(self) -> Backend:
        if self in (JobType.OCR_TEXT, JobType.OCR_ANALYSIS):
            return Backend.OCR
        return Backend.NLP

    @classmethod
    def for_backend(cls, backend: Backend) -> tuple["JobType", ...]:
        return tuple(job_type for job_type in cls if job_type.backend is backend)


class ExecutionMode(str, Enum):
    """Whether an OCR job uses the synchronous or the start/poll API."""

    SYNC = "sync"
    ASYNC = "async"


DEFAULT_FEATURE_TYPES: tuple[str, ...] = ("FORMS", "TABLES")


@dataclass(frozen=True)
class OcrJobParameters:
    """Parameters carried by ocr_* jobs."""

    mode: ExecutionMode = ExecutionMode.SYNC
    feature_types: tuple[str, ...] = DEFAULT_FEATURE_TYPES

    def to_dict(self) -> dict[str, Any]:
        return {"mode": self.mode.value, "feature_types": list(self.feature_types)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OcrJobParameters":
        feature_types = data.get("feature_types") or DEFAULT_FEATURE_TYPES
        return cls(
            mode=ExecutionMode(data.get("mode", ExecutionMode.SYNC.value)),
            feature_types=tuple(feature_types),
        )


@dataclass(frozen=True)
class NlpJobParameters:
    """Parameters carried by nlp_* jobs."""

    direct_text: bool = False
    language_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"direct_text": self.direct_text}
        if self.language_code is not None:
            data["language_code"] = self.language_code
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NlpJobParameters":
        return cls(
            direct_text=bool(data.get("direct_text", False)),
            language_code=data.get("language_code"),
        )


JobParameters = OcrJobParameters | NlpJobParameters


def parameters_from_dict(job_type: JobType, data: dict[str, Any] | None) -> JobParameters:
    """Rebuild the typed parameters of a job from its JSON column."""
    data = data or {}
    if job_type.backend is Backend.OCR:
        return OcrJobParameters.from_dict(data)
    return NlpJobParameters.from_dict(data)


@dataclass(frozen=True)
class JobSpec:
    """One entry of a job plan, before it is persisted."""

    job_type: JobType
    parameters: JobParameters

    def __post_init__(self) -> None:
        expected = OcrJobParameters if self.job_type.backend is Backend.OCR else NlpJobParameters
        if not isinstance(self.parameters, expected):
            raise TypeError(
                f"{self.job_type.value} requires {expected.__name__}, "
                f"got {type(self.parameters).__name__}"
            )


@dataclass
class Document:
    """An uploaded document and its processing status."""

    id: int
    user_id: int
    title: str
    original_filename: str
    mime_type: str
    file_size: int
    storage_bucket: str
    storage_key: str
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    file_extension: str = ""
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    is_public: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)
    dispatch_attempts: int = 0
    uploaded_at: datetime | None = None

    def can_transition_to(self, status: ProcessingStatus) -> bool:
        return status in DOCUMENT_TRANSITIONS[self.processing_status]

    def transition_to(self, status: ProcessingStatus) -> None:
        """Move to a new status, rejecting transitions outside the lifecycle."""
        if not self.can_transition_to(status):
            raise InvalidDocumentTransitionError(
                f"Document {self.id} cannot move from "
                f"{self.processing_status.value} to {status.value}"
            )
        self.processing_status = status

    @property
    def human_readable_size(self) -> str:
        size = float(self.file_size)
        units = ["B", "KB", "MB", "GB"]
        index = 0
        while size > 1024 and index < len(units) - 1:
            size /= 1024
            index += 1
        return f"{round(size, 2):g} {units[index]}"


@dataclass
class ProcessingJob:
    """One unit of back-end work for a document.

    Status only moves forward: PENDING -> PROCESSING -> COMPLETED | FAILED.
    A PENDING job may also fail directly (e.g. reaped or rejected before start).
    Retries never reopen a job; the harness creates a new one instead.
    """

    id: int
    document_id: int
    job_type: JobType
    parameters: JobParameters
    status: JobStatus = JobStatus.PENDING
    attempt: int = 1
    backend_job_id: str | None = None
    result_data: dict[str, Any] | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    locked_at: datetime | None = None
    created_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def mark_started(self, now: datetime) -> None:
        self._require(JobStatus.PENDING, target=JobStatus.PROCESSING)
        self.status = JobStatus.PROCESSING
        self.started_at = now

    def mark_completed(self, result_data: dict[str, Any], now: datetime) -> None:
        self._require(JobStatus.PROCESSING, target=JobStatus.COMPLETED)
        self.status = JobStatus.COMPLETED
        self.result_data = result_data
        self.completed_at = now

    def mark_failed(self, error_message: str, now: datetime) -> None:
        self._require(JobStatus.PENDING, JobStatus.PROCESSING, target=JobStatus.FAILED)
        self.status = JobStatus.FAILED
        self.error_message = error_message
        self.completed_at = now

    def _require(self, *allowed: JobStatus, target: JobStatus) -> None:
        if self.status not in allowed:
            raise InvalidJobTransitionError(
                f"Job {self.id} cannot move from {self.status.value} to {target.value}"
            )


@dataclass(frozen=True)
class AnalysisResult:
    """Write-once output of a completed job."""

    document_id: int
    analysis_type: JobType
    raw_results: dict[str, Any]
    processed_data: dict[str, Any]
    confidence_score: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
    created_at: datetime | None = None

    HIGH_CONFIDENCE_THRESHOLD = 0.8

    @property
    def is_ocr_result(self) -> bool:
        return self.analysis_type.backend is Backend.OCR

    @property
    def is_nlp_result(self) -> bool:
        return self.analysis_type.backend is Backend.NLP

    @property
    def has_high_confidence(self) -> bool:
        return (
            self.confidence_score is not None
            and self.confidence_score >= self.HIGH_CONFIDENCE_THRESHOLD
        )
