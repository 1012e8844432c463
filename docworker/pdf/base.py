from abc import ABC, abstractmethod


class BasePdfExtractor(ABC):
    """Contract for all PDF text layer extraction adapters."""

    @abstractmethod
    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        """Extract the text layer of each page.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            One string per page, in page order; empty for image-only pages.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """
