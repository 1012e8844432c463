from collections.abc import Sequence

from docworker.backends.ocr.base import BaseOcrBackend
from docworker.backends.ocr.exceptions import (
    InvalidDocumentError,
    OcrBackendError,
    UnsupportedDocumentError,
)
from docworker.backends.ocr.models import OcrResponse
from docworker.logging.logger import Log
from docworker.pdf.base import BasePdfExtractor
from docworker.pdf.exceptions import PdfExtractionError
from docworker.storage.base import BaseStorage
from docworker.storage.exceptions import StorageError

_PDF_MAGIC = b"%PDF-"
_JOB_PREFIX = "pdf-text:"


class PdfTextLayerOcrAdapter(BaseOcrBackend):
    """Local OCR back-end that reads the embedded text layer of PDFs.

    No recognition is performed, so blocks carry no confidence and scanned
    pages yield nothing. Asynchronous jobs complete immediately: the job id
    encodes the object key and the result is produced on the first poll.
    """

    def __init__(self, storage: BaseStorage, extractor: BasePdfExtractor) -> None:
        self._storage = storage
        self._extractor = extractor

    def detect_text(self, key: str, bucket: str) -> OcrResponse:
        return self._extract(key, bucket)

    def analyze(self, key: str, bucket: str, feature_types: Sequence[str]) -> OcrResponse:
        # Text layers carry no table or form structure.
        Log.debug(f"Ignoring feature types {list(feature_types)} for text layer extraction")
        return self._extract(key, bucket)

    def start_text_detection(self, key: str, bucket: str) -> str:
        return f"{_JOB_PREFIX}{bucket}/{key}"

    def get_text_detection_result(self, backend_job_id: str) -> OcrResponse | None:
        return self._extract(*self._parse_job_id(backend_job_id))

    def start_analysis(self, key: str, bucket: str, feature_types: Sequence[str]) -> str:
        return self.start_text_detection(key, bucket)

    def get_analysis_result(self, backend_job_id: str) -> OcrResponse | None:
        return self.get_text_detection_result(backend_job_id)

    def _extract(self, key: str, bucket: str) -> OcrResponse:
        if bucket != self._storage.bucket:
            Log.warning(
                f"Requested bucket '{bucket}' differs from storage bucket "
                f"'{self._storage.bucket}', reading from storage bucket"
            )
        try:
            data = self._storage.download(key)
        except StorageError as exc:
            if not exc.retryable:
                raise InvalidDocumentError(str(exc)) from exc
            raise OcrBackendError(str(exc)) from exc

        if not data.startswith(_PDF_MAGIC):
            raise UnsupportedDocumentError(
                "Only PDFs with a text layer can be read without an OCR service."
            )

        try:
            pages = self._extractor.extract_pages(data)
        except PdfExtractionError as exc:
            raise InvalidDocumentError(str(exc)) from exc

        blocks: list[dict[str, object]] = [
            {"BlockType": "PAGE", "Id": f"page-{page_number}", "Page": page_number}
            for page_number in range(1, len(pages) + 1)
        ]
        for page_number, page_text in enumerate(pages, start=1):
            lines = [line.strip() for line in page_text.splitlines() if line.strip()]
            blocks.extend(
                {
                    "BlockType": "LINE",
                    "Id": f"line-{page_number}-{index}",
                    "Text": line,
                    "Page": page_number,
                }
                for index, line in enumerate(lines, start=1)
            )

        Log.info(f"Text layer extraction for {key}: {len(pages)} pages, {len(blocks)} blocks")
        return OcrResponse(
            blocks=blocks,
            raw={"Blocks": blocks, "DocumentMetadata": {"Pages": len(pages)}},
        )

    @staticmethod
    def _parse_job_id(backend_job_id: str) -> tuple[str, str]:
        if not backend_job_id.startswith(_JOB_PREFIX) or "/" not in backend_job_id:
            raise InvalidDocumentError(f"Unknown text layer job id '{backend_job_id}'")
        bucket, key = backend_job_id[len(_JOB_PREFIX) :].split("/", 1)
        return key, bucket
