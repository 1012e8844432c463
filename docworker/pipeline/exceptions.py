class PipelineError(Exception):
    """Base exception for all pipeline errors.

    ``retryable`` tells the execution harness whether running the same work
    again could succeed.
    """

    retryable: bool = False


class DocumentNotFoundError(PipelineError):
    """Raised when a document cannot be found in the database."""


class JobNotFoundError(PipelineError):
    """Raised when a processing job cannot be found in the database."""


class UnsupportedDocumentTypeError(PipelineError):
    """Raised when a MIME type does not map to any document kind."""

    def __init__(self, mime_type: str) -> None:
        self.mime_type = mime_type
        super().__init__(f"Unsupported document type: {mime_type}")


class NoProcessorAvailableError(PipelineError):
    """Raised when a document kind is known but no strategy handles it."""

    def __init__(self, mime_type: str) -> None:
        self.mime_type = mime_type
        super().__init__(f"No processor available for document type: {mime_type}")


class NoTextAvailableError(PipelineError):
    """Raised when an NLP job has neither OCR text nor direct text to analyze.

    Retryable only while an OCR job of the same document is still active: the
    NLP job overtook its OCR sibling and may find text on its next attempt.
    """

    def __init__(self, document_id: int, ocr_pending: bool = False) -> None:
        self.document_id = document_id
        self.retryable = ocr_pending
        super().__init__(f"No text available for analysis of document {document_id}")


class InvalidJobTransitionError(PipelineError):
    """Raised when a job status change would break its lifecycle."""


class InvalidDocumentTransitionError(PipelineError):
    """Raised when a document status change would break its lifecycle."""


def is_retryable(exc: BaseException) -> bool:
    """Decide whether the harness may retry work that raised ``exc``.

    Typed errors declare it themselves; anything else is an unexpected failure
    and gets the benefit of a retry.
    """
    return bool(getattr(exc, "retryable", True))


class JobTimeoutError(PipelineError):
    """Raised for a job that stayed claimed or processing past its type timeout."""

    retryable = True
