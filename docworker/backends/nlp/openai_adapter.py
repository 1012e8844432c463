import json
from pathlib import Path
from typing import Any, ClassVar

import httpx
import openai

from docworker.backends.nlp.base import BaseTextAnalysisBackend
from docworker.backends.nlp.exceptions import (
    TextAnalysisNetworkError,
    TextAnalysisResponseError,
    TextAnalysisThrottledError,
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
from docworker.backends.nlp.prompt_loader import load_prompt_template
from docworker.logging.logger import Log


def _object(properties: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


_SCORE = {"type": "number", "minimum": 0, "maximum": 1}
_SENTIMENT_LABELS = ("POSITIVE", "NEGATIVE", "NEUTRAL", "MIXED")


class OpenAITextAnalysisAdapter(BaseTextAnalysisBackend):
    """NLP back-end built on an OpenAI-compatible chat API with structured output."""

    SYSTEM_PROMPT = (
        "You are a text analysis service. Answer only with JSON matching the schema."
    )

    SCHEMAS: ClassVar[dict[str, dict[str, Any]]] = {
        "sentiment": _object(
            {
                "sentiment": {"type": "string", "enum": list(_SENTIMENT_LABELS)},
                "positive": _SCORE,
                "negative": _SCORE,
                "neutral": _SCORE,
                "mixed": _SCORE,
            }
        ),
        "entities": _object(
            {
                "entities": {
                    "type": "array",
                    "items": _object(
                        {"text": {"type": "string"}, "type": {"type": "string"}, "score": _SCORE}
                    ),
                }
            }
        ),
        "key_phrases": _object(
            {
                "key_phrases": {
                    "type": "array",
                    "items": _object({"text": {"type": "string"}, "score": _SCORE}),
                }
            }
        ),
        "language": _object(
            {
                "languages": {
                    "type": "array",
                    "items": _object({"code": {"type": "string"}, "score": _SCORE}),
                }
            }
        ),
    }

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
        prompt_dir: Path | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._model = model
        self._prompt_dir = prompt_dir

    def detect_sentiment(self, text: str, language_code: str) -> SentimentResult:
        data, request_id = self._analyze("sentiment", text, language_code)
        label = str(data.get("sentiment", "")).upper()
        if label not in _SENTIMENT_LABELS:
            raise TextAnalysisResponseError(f"Unknown sentiment label '{label}'")
        return SentimentResult(
            label=label,
            scores=SentimentScores(
                positive=self._score(data, "positive"),
                negative=self._score(data, "negative"),
                neutral=self._score(data, "neutral"),
                mixed=self._score(data, "mixed"),
            ),
            raw=data,
            request_id=request_id,
        )

    def detect_entities(self, text: str, language_code: str) -> EntitiesResult:
        data, request_id = self._analyze("entities", text, language_code)
        entities = [
            Entity(
                text=str(item.get("text", "")),
                type=str(item.get("type", "")),
                score=self._score(item, "score"),
            )
            for item in self._items(data, "entities")
        ]
        return EntitiesResult(entities=entities, raw=data, request_id=request_id)

    def detect_key_phrases(self, text: str, language_code: str) -> KeyPhrasesResult:
        data, request_id = self._analyze("key_phrases", text, language_code)
        phrases = [
            KeyPhrase(text=str(item.get("text", "")), score=self._score(item, "score"))
            for item in self._items(data, "key_phrases")
        ]
        return KeyPhrasesResult(key_phrases=phrases, raw=data, request_id=request_id)

    def detect_language(self, text: str) -> LanguageResult:
        data, request_id = self._analyze("language", text, None)
        languages = [
            DetectedLanguage(code=str(item.get("code", "")), score=self._score(item, "score"))
            for item in self._items(data, "languages")
        ]
        languages.sort(key=lambda language: language.score, reverse=True)
        return LanguageResult(languages=languages, raw=data, request_id=request_id)

    def _analyze(
        self, operation: str, text: str, language_code: str | None
    ) -> tuple[dict[str, Any], str | None]:
        template = load_prompt_template(operation, self._prompt_dir)
        prompt = template.format(text=text, language_code=language_code or "")
        Log.debug(f"Text analysis prompt ({operation}, {len(text)} chars)")

        try:
            response = self._client.chat.completions.create(
                model=self._model,
                temperature=0.0,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": f"{operation}_result",
                        "strict": True,
                        "schema": self.SCHEMAS[operation],
                    },
                },
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
            )
        except openai.RateLimitError as exc:
            raise TextAnalysisThrottledError(f"AI provider rate limit: {exc}") from exc
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise TextAnalysisNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise TextAnalysisNetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise TextAnalysisResponseError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise TextAnalysisResponseError("AI returned empty response")

        return self._parse_json(content), getattr(response, "id", None)

    @staticmethod
    def _parse_json(raw: str) -> dict[str, Any]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise TextAnalysisResponseError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise TextAnalysisResponseError("JSON response must be an object")
        return parsed

    @staticmethod
    def _items(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
        items = data.get(key)
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise TextAnalysisResponseError(f"'{key}' must be a list of objects")
        return items

    @staticmethod
    def _score(data: dict[str, Any], key: str) -> float:
        value = data.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TextAnalysisResponseError(f"'{key}' must be a number")
        return max(0.0, min(1.0, float(value)))
