from collections.abc import Callable
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from docworker.backends.nlp.base import BaseTextAnalysisBackend
from docworker.backends.nlp.exceptions import (
    TextAnalysisError,
    TextAnalysisNetworkError,
    TextAnalysisThrottledError,
    TextTooLargeError,
    UnsupportedLanguageError,
)
from docworker.backends.nlp.models import (
    DetectedLanguage,
    EntitiesResult,
    Entity,
    KeyPhrase,
    KeyPhrasesResult,
    LanguageResult,
    SentimentResult,
    SentimentScores,
)
from docworker.config.settings import Settings
from docworker.logging.logger import Log

_THROTTLING_CODES = frozenset({"ThrottlingException", "TooManyRequestsException"})


def _request_id(raw: dict[str, Any]) -> str | None:
    return raw.get("ResponseMetadata", {}).get("RequestId")


class ComprehendTextAnalysisAdapter(BaseTextAnalysisBackend):
    """NLP back-end built on Amazon Comprehend via boto3."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ComprehendTextAnalysisAdapter":
        client = boto3.client(
            "comprehend",
            region_name=settings.aws_region,
            endpoint_url=settings.aws_endpoint_url or None,
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
        )
        return cls(client)

    def detect_sentiment(self, text: str, language_code: str) -> SentimentResult:
        raw = self._call(
            "detect sentiment",
            self._client.detect_sentiment,
            language_code,
            Text=text,
            LanguageCode=language_code,
        )
        scores = raw.get("SentimentScore", {})
        Log.info(f"Detected sentiment {raw.get('Sentiment')} ({language_code})")
        return SentimentResult(
            label=str(raw.get("Sentiment", "")),
            scores=SentimentScores(
                positive=float(scores.get("Positive", 0.0)),
                negative=float(scores.get("Negative", 0.0)),
                neutral=float(scores.get("Neutral", 0.0)),
                mixed=float(scores.get("Mixed", 0.0)),
            ),
            raw=raw,
            request_id=_request_id(raw),
        )

    def detect_entities(self, text: str, language_code: str) -> EntitiesResult:
        raw = self._call(
            "detect entities",
            self._client.detect_entities,
            language_code,
            Text=text,
            LanguageCode=language_code,
        )
        entities = [
            Entity(
                text=item.get("Text", ""),
                type=item.get("Type", ""),
                score=float(item.get("Score", 0.0)),
            )
            for item in raw.get("Entities", [])
        ]
        Log.info(f"Detected {len(entities)} entities ({language_code})")
        return EntitiesResult(entities=entities, raw=raw, request_id=_request_id(raw))

    def detect_key_phrases(self, text: str, language_code: str) -> KeyPhrasesResult:
        raw = self._call(
            "detect key phrases",
            self._client.detect_key_phrases,
            language_code,
            Text=text,
            LanguageCode=language_code,
        )
        phrases = [
            KeyPhrase(text=item.get("Text", ""), score=float(item.get("Score", 0.0)))
            for item in raw.get("KeyPhrases", [])
        ]
        Log.info(f"Detected {len(phrases)} key phrases ({language_code})")
        return KeyPhrasesResult(key_phrases=phrases, raw=raw, request_id=_request_id(raw))

    def detect_language(self, text: str) -> LanguageResult:
        raw = self._call(
            "detect language", self._client.detect_dominant_language, None, Text=text
        )
        languages = [
            DetectedLanguage(
                code=item.get("LanguageCode", ""), score=float(item.get("Score", 0.0))
            )
            for item in raw.get("Languages", [])
        ]
        if languages:
            Log.info(
                f"Detected primary language {languages[0].code} "
                f"({languages[0].score:.2f}), {len(languages)} total"
            )
        return LanguageResult(languages=languages, raw=raw, request_id=_request_id(raw))

    @staticmethod
    def _call(
        action: str,
        method: Callable[..., dict[str, Any]],
        language_code: str | None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            return method(**kwargs)
        except ClientError as exc:
            error = exc.response.get("Error", {})
            code = str(error.get("Code", ""))
            Log.error(f"Comprehend failed to {action}: {exc}")
            if code == "TextSizeLimitExceededException":
                raise TextTooLargeError(f"Text is too large to {action}.") from exc
            if code == "UnsupportedLanguageException":
                raise UnsupportedLanguageError(
                    f"Language '{language_code}' is not supported to {action}."
                ) from exc
            if code in _THROTTLING_CODES:
                raise TextAnalysisThrottledError(
                    "Comprehend rate limit exceeded. Please try again later."
                ) from exc
            raise TextAnalysisError(
                f"Failed to {action}: {error.get('Message', exc)}"
            ) from exc
        except BotoCoreError as exc:
            raise TextAnalysisNetworkError(f"Failed to {action}: {exc}") from exc
