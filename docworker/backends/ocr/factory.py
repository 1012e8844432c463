from docworker.backends.ocr.base import BaseOcrBackend
from docworker.backends.ocr.example_adapter import ExampleOcrAdapter
from docworker.backends.ocr.pdf_text_adapter import PdfTextLayerOcrAdapter
from docworker.backends.ocr.textract_adapter import TextractOcrAdapter
from docworker.config.settings import Settings
from docworker.pdf.factory import PdfExtractorFactory
from docworker.storage.base import BaseStorage


class OcrBackendFactory:
    """Creates the configured OCR back-end."""

    PROVIDERS = ("textract", "pdf_text", "example")

    @classmethod
    def create(cls, settings: Settings, storage: BaseStorage) -> BaseOcrBackend:
        provider = settings.ocr_provider.lower()
        if provider == "textract":
            return TextractOcrAdapter.from_settings(settings)
        if provider == "pdf_text":
            return PdfTextLayerOcrAdapter(storage, PdfExtractorFactory.create(settings))
        if provider == "example":
            return ExampleOcrAdapter()
        raise ValueError(
            f"Unknown OCR provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )
