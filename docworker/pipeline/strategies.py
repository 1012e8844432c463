from abc import ABC, abstractmethod

from docworker.logging.logger import Log
from docworker.pipeline.classifier import DocumentKind, classify, mime_types_for
from docworker.pipeline.models import (
    DEFAULT_FEATURE_TYPES,
    Document,
    ExecutionMode,
    JobSpec,
    JobType,
    NlpJobParameters,
    OcrJobParameters,
)

LARGE_PDF_THRESHOLD_BYTES = 5 * 1024 * 1024


class ProcessorStrategy(ABC):
    """Contract for a per-kind job planner."""

    kind: DocumentKind
    priority: int = 0

    def can_handle(self, document: Document) -> bool:
        return classify(document.mime_type) is self.kind

    @abstractmethod
    def plan(self, document: Document) -> list[JobSpec]:
        """Return the ordered job plan for a document this strategy handles."""

    @property
    def supported_mime_types(self) -> list[str]:
        return mime_types_for(self.kind)

    @property
    def name(self) -> str:
        return type(self).__name__


class PdfStrategy(ProcessorStrategy):
    """Structured OCR for every PDF; NLP only when the PDF is small enough
    for synchronous analysis."""

    kind = DocumentKind.PDF
    priority = 20

    def __init__(self, large_file_threshold: int = LARGE_PDF_THRESHOLD_BYTES) -> None:
        self._large_file_threshold = large_file_threshold

    def plan(self, document: Document) -> list[JobSpec]:
        if document.file_size > self._large_file_threshold:
            Log.info(
                f"Planning async OCR analysis for large PDF {document.id} "
                f"({document.file_size} bytes)"
            )
            return [
                JobSpec(
                    JobType.OCR_ANALYSIS,
                    OcrJobParameters(ExecutionMode.ASYNC, DEFAULT_FEATURE_TYPES),
                ),
            ]

        Log.info(f"Planning sync OCR analysis with NLP for PDF {document.id}")
        return [
            JobSpec(
                JobType.OCR_ANALYSIS,
                OcrJobParameters(ExecutionMode.SYNC, DEFAULT_FEATURE_TYPES),
            ),
            JobSpec(JobType.NLP_SENTIMENT, NlpJobParameters()),
            JobSpec(JobType.NLP_ENTITIES, NlpJobParameters()),
        ]


class ImageStrategy(ProcessorStrategy):
    """Plain text detection only; images never get form/table analysis."""

    kind = DocumentKind.IMAGE
    priority = 10

    def plan(self, document: Document) -> list[JobSpec]:
        Log.info(f"Planning OCR text detection for image {document.id}")
        return [JobSpec(JobType.OCR_TEXT, OcrJobParameters(ExecutionMode.SYNC))]


class TextStrategy(ProcessorStrategy):
    kind = DocumentKind.TEXT
    priority = 5

    def plan(self, document: Document) -> list[JobSpec]:
        Log.info(f"Planning direct-text NLP analysis for text document {document.id}")
        direct = NlpJobParameters(direct_text=True)
        return [
            JobSpec(JobType.NLP_SENTIMENT, direct),
            JobSpec(JobType.NLP_ENTITIES, direct),
            JobSpec(JobType.NLP_KEY_PHRASES, direct),
            JobSpec(JobType.NLP_LANGUAGE, direct),
        ]
