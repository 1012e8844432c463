class PdfExtractionError(Exception):
    """Raised when the text layer of a PDF cannot be read."""
