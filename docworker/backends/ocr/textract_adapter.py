from collections.abc import Callable, Sequence
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from docworker.backends.ocr.base import BaseOcrBackend
from docworker.backends.ocr.exceptions import (
    DocumentTooLargeError,
    InvalidDocumentError,
    OcrBackendError,
    OcrJobFailedError,
    OcrThrottledError,
    UnsupportedDocumentError,
)
from docworker.backends.ocr.models import OcrResponse
from docworker.config.settings import Settings
from docworker.logging.logger import Log

_THROTTLING_CODES = frozenset(
    {
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "LimitExceededException",
    }
)
_ERROR_MAP: dict[str, tuple[type[OcrBackendError], str]] = {
    "InvalidS3ObjectException": (
        InvalidDocumentError,
        "Invalid document format or corrupted file.",
    ),
    "DocumentTooLargeException": (
        DocumentTooLargeError,
        "Document is too large for synchronous processing. Maximum size is 5MB.",
    ),
    "UnsupportedDocumentException": (
        UnsupportedDocumentError,
        "Document format not supported for analysis.",
    ),
    "BadDocumentException": (
        InvalidDocumentError,
        "Document could not be read by the OCR service.",
    ),
    "InvalidJobIdException": (
        OcrJobFailedError,
        "OCR job id is unknown or expired.",
    ),
}


def _map_client_error(exc: ClientError, action: str) -> OcrBackendError:
    error = exc.response.get("Error", {})
    code = str(error.get("Code", ""))
    message = error.get("Message", str(exc))

    if code in _THROTTLING_CODES:
        return OcrThrottledError("Textract rate limit exceeded. Please try again later.")
    mapped = _ERROR_MAP.get(code)
    if mapped is not None:
        error_cls, text = mapped
        return error_cls(text)
    return OcrBackendError(f"Failed to {action}: {message}")


def _s3_object(key: str, bucket: str) -> dict[str, Any]:
    return {"S3Object": {"Bucket": bucket, "Name": key}}


class TextractOcrAdapter(BaseOcrBackend):
    """OCR back-end built on Amazon Textract via boto3."""

    def __init__(
        self,
        client: Any,
        *,
        notification_role_arn: str = "",
        sns_topic_arn: str = "",
    ) -> None:
        self._client = client
        self._notification_role_arn = notification_role_arn
        self._sns_topic_arn = sns_topic_arn

    @classmethod
    def from_settings(cls, settings: Settings) -> "TextractOcrAdapter":
        client = boto3.client(
            "textract",
            region_name=settings.aws_region,
            endpoint_url=settings.aws_endpoint_url or None,
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
        )
        return cls(
            client,
            notification_role_arn=settings.textract_notification_role_arn,
            sns_topic_arn=settings.textract_sns_topic_arn,
        )

    def detect_text(self, key: str, bucket: str) -> OcrResponse:
        raw = self._call(
            "detect document text",
            self._client.detect_document_text,
            Document=_s3_object(key, bucket),
        )
        Log.info(f"Textract text detection for {key}: {len(raw.get('Blocks', []))} blocks")
        return self._response(raw)

    def analyze(self, key: str, bucket: str, feature_types: Sequence[str]) -> OcrResponse:
        raw = self._call(
            "analyze document",
            self._client.analyze_document,
            Document=_s3_object(key, bucket),
            FeatureTypes=list(feature_types),
        )
        Log.info(
            f"Textract analysis for {key} ({','.join(feature_types)}): "
            f"{len(raw.get('Blocks', []))} blocks"
        )
        return self._response(raw)

    def start_text_detection(self, key: str, bucket: str) -> str:
        raw = self._call(
            "start document text detection",
            self._client.start_document_text_detection,
            DocumentLocation=_s3_object(key, bucket),
            **self._notification_channel(),
        )
        Log.info(f"Started Textract text detection job {raw['JobId']} for {key}")
        return str(raw["JobId"])

    def get_text_detection_result(self, backend_job_id: str) -> OcrResponse | None:
        return self._get_result(
            backend_job_id, self._client.get_document_text_detection, "text detection"
        )

    def start_analysis(self, key: str, bucket: str, feature_types: Sequence[str]) -> str:
        raw = self._call(
            "start document analysis",
            self._client.start_document_analysis,
            DocumentLocation=_s3_object(key, bucket),
            FeatureTypes=list(feature_types),
            **self._notification_channel(),
        )
        Log.info(f"Started Textract analysis job {raw['JobId']} for {key}")
        return str(raw["JobId"])

    def get_analysis_result(self, backend_job_id: str) -> OcrResponse | None:
        return self._get_result(
            backend_job_id, self._client.get_document_analysis, "document analysis"
        )

    def _get_result(
        self,
        backend_job_id: str,
        method: Callable[..., dict[str, Any]],
        label: str,
    ) -> OcrResponse | None:
        raw = self._call(f"get {label} results", method, JobId=backend_job_id)
        status = raw.get("JobStatus")

        if status == "IN_PROGRESS":
            return None

        if status == "FAILED":
            message = raw.get("StatusMessage") or "Unknown error"
            Log.error(f"Textract {label} job {backend_job_id} failed: {message}")
            raise OcrJobFailedError(f"{label.capitalize()} job failed: {message}")

        aggregated = self._aggregate_pages(raw, method, backend_job_id, label)

        if status == "PARTIAL_SUCCESS":
            message = raw.get("StatusMessage") or "Some pages could not be processed"
            Log.warning(f"Textract {label} job {backend_job_id} partially succeeded: {message}")
            return self._response(
                aggregated,
                is_partial=True,
                status_message=message,
                warnings=list(raw.get("Warnings", [])),
            )

        Log.info(
            f"Textract {label} job {backend_job_id} succeeded: "
            f"{len(aggregated['Blocks'])} blocks"
        )
        return self._response(aggregated)

    def _aggregate_pages(
        self,
        first: dict[str, Any],
        method: Callable[..., dict[str, Any]],
        backend_job_id: str,
        label: str,
    ) -> dict[str, Any]:
        """Follow NextToken until every page of blocks is collected."""
        blocks = list(first.get("Blocks", []))
        next_token = first.get("NextToken")
        pages = 1
        while next_token:
            page = self._call(
                f"get {label} results",
                method,
                JobId=backend_job_id,
                NextToken=next_token,
            )
            blocks.extend(page.get("Blocks", []))
            next_token = page.get("NextToken")
            pages += 1

        if pages > 1:
            Log.debug(f"Aggregated {pages} result pages for Textract job {backend_job_id}")

        aggregated = {k: v for k, v in first.items() if k != "NextToken"}
        aggregated["Blocks"] = blocks
        return aggregated

    def _notification_channel(self) -> dict[str, Any]:
        if not (self._notification_role_arn and self._sns_topic_arn):
            return {}
        return {
            "NotificationChannel": {
                "RoleArn": self._notification_role_arn,
                "SNSTopicArn": self._sns_topic_arn,
            }
        }

    @staticmethod
    def _call(action: str, method: Callable[..., dict[str, Any]], **kwargs: Any) -> dict[str, Any]:
        try:
            return method(**kwargs)
        except ClientError as exc:
            Log.error(f"Textract failed to {action}: {exc}")
            raise _map_client_error(exc, action) from exc
        except BotoCoreError as exc:
            Log.error(f"Textract transport error during {action}: {exc}")
            raise OcrBackendError(f"Failed to {action}: {exc}") from exc

    @staticmethod
    def _response(
        raw: dict[str, Any],
        *,
        is_partial: bool = False,
        status_message: str | None = None,
        warnings: list[Any] | None = None,
    ) -> OcrResponse:
        return OcrResponse(
            blocks=list(raw.get("Blocks", [])),
            raw=raw,
            request_id=raw.get("ResponseMetadata", {}).get("RequestId"),
            is_partial=is_partial,
            status_message=status_message,
            warnings=warnings or [],
        )
