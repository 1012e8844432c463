class OcrBackendError(Exception):
    """Base exception for OCR back-end failures.

    Unclassified failures (transport errors, unknown service errors) are
    worth retrying; the subclasses below mark the permanent cases.
    """

    retryable: bool = True


class OcrThrottledError(OcrBackendError):
    """Raised when the back-end rejects a call because of rate limits."""


class DocumentTooLargeError(OcrBackendError):
    """Raised when a document exceeds the synchronous size limit."""

    retryable = False


class InvalidDocumentError(OcrBackendError):
    """Raised when the stored object is missing, corrupted or unreadable."""

    retryable = False


class UnsupportedDocumentError(OcrBackendError):
    """Raised when the back-end cannot analyze this document format."""

    retryable = False


class OcrJobFailedError(OcrBackendError):
    """Raised when an asynchronous back-end job ends in FAILED."""

    retryable = False


class OcrTimeoutError(OcrBackendError):
    """Raised when an asynchronous job does not finish within the job timeout."""
