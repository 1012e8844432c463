from abc import ABC, abstractmethod
from collections.abc import Sequence

from docworker.backends.ocr.models import OcrResponse


class BaseOcrBackend(ABC):
    """Contract for OCR back-end adapters.

    Documents are addressed by storage key and bucket. Every method raises
    ``OcrBackendError`` subclasses, never transport exceptions.
    """

    @abstractmethod
    def detect_text(self, key: str, bucket: str) -> OcrResponse:
        """Synchronous plain text detection."""

    @abstractmethod
    def analyze(self, key: str, bucket: str, feature_types: Sequence[str]) -> OcrResponse:
        """Synchronous structured analysis (forms, tables)."""

    @abstractmethod
    def start_text_detection(self, key: str, bucket: str) -> str:
        """Start an asynchronous text detection job and return its id."""

    @abstractmethod
    def get_text_detection_result(self, backend_job_id: str) -> OcrResponse | None:
        """Return the aggregated result, or None while the job is in progress.

        Raises:
            OcrJobFailedError: if the back-end job failed.
        """

    @abstractmethod
    def start_analysis(self, key: str, bucket: str, feature_types: Sequence[str]) -> str:
        """Start an asynchronous analysis job and return its id."""

    @abstractmethod
    def get_analysis_result(self, backend_job_id: str) -> OcrResponse | None:
        """Return the aggregated result, or None while the job is in progress."""
