from docworker.config.settings import Settings
from docworker.pdf.base import BasePdfExtractor
from docworker.pdf.pdfplumber_adapter import PdfPlumberAdapter
from docworker.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfExtractorFactory:
    """Creates the text-layer extractor used by the ``pdf_text`` OCR back-end."""

    ADAPTERS: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        return cls.for_engine(settings.pdf_engine)

    @classmethod
    def for_engine(cls, engine: str) -> BasePdfExtractor:
        adapter_cls = cls.ADAPTERS.get(engine.strip().lower())
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
