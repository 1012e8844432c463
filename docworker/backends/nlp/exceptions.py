class TextAnalysisError(Exception):
    """Base exception for NLP back-end failures.

    Unclassified failures are retryable; permanent cases override it.
    """

    retryable: bool = True


class TextTooLargeError(TextAnalysisError):
    """Raised when the text exceeds the back-end's size limit."""

    retryable = False


class UnsupportedLanguageError(TextAnalysisError):
    """Raised when the back-end does not support the requested language."""

    retryable = False


class TextAnalysisThrottledError(TextAnalysisError):
    """Raised when the back-end rejects a call because of rate limits."""


class TextAnalysisNetworkError(TextAnalysisError):
    """Raised when the provider call fails due to network/infrastructure issues."""


class TextAnalysisResponseError(TextAnalysisError):
    """Raised when the provider returns a response that cannot be interpreted."""
