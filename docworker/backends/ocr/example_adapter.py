"""Example OCR back-end adapter.

Use this module as a reference when implementing new OCR providers.
Implement BaseOcrBackend and register the provider in OcrBackendFactory.
"""

from collections.abc import Sequence
from typing import Any, ClassVar

from docworker.backends.ocr.base import BaseOcrBackend
from docworker.backends.ocr.models import OcrResponse


class ExampleOcrAdapter(BaseOcrBackend):
    """Returns fixed blocks. No network calls; async jobs finish at once."""

    DEFAULT_BLOCKS: ClassVar[list[dict[str, Any]]] = [
        {"BlockType": "PAGE", "Id": "page-1"},
        {"BlockType": "LINE", "Id": "line-1", "Text": "Example document", "Confidence": 99.5},
        {"BlockType": "LINE", "Id": "line-2", "Text": "for local development", "Confidence": 98.7},
    ]

    def detect_text(self, key: str, bucket: str) -> OcrResponse:
        return self._response()

    def analyze(self, key: str, bucket: str, feature_types: Sequence[str]) -> OcrResponse:
        return self._response()

    def start_text_detection(self, key: str, bucket: str) -> str:
        return f"example-{key}"

    def get_text_detection_result(self, backend_job_id: str) -> OcrResponse | None:
        return self._response()

    def start_analysis(self, key: str, bucket: str, feature_types: Sequence[str]) -> str:
        return f"example-{key}"

    def get_analysis_result(self, backend_job_id: str) -> OcrResponse | None:
        return self._response()

    def _response(self) -> OcrResponse:
        blocks = [dict(block) for block in self.DEFAULT_BLOCKS]
        return OcrResponse(
            blocks=blocks,
            raw={"Blocks": blocks, "ResponseMetadata": {"RequestId": "example"}},
            request_id="example",
        )
