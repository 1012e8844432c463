import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from docworker.backends.nlp.exceptions import (
    TextAnalysisError,
    TextAnalysisNetworkError,
    TextAnalysisResponseError,
    TextAnalysisThrottledError,
)
from docworker.backends.nlp.openai_adapter import OpenAITextAnalysisAdapter

_PATCH_TARGET = "docworker.backends.nlp.openai_adapter.openai.OpenAI"


def _make_mock_response(content: str | None, response_id: str = "chatcmpl-1") -> MagicMock:
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    response.id = response_id
    return response


def _make_adapter(mock_client: MagicMock, **kwargs: Any) -> OpenAITextAnalysisAdapter:
    with patch(_PATCH_TARGET, return_value=mock_client):
        return OpenAITextAnalysisAdapter(api_key="k", model="m", timeout_seconds=30, **kwargs)


def _client_returning(payload: Any) -> MagicMock:
    mock_client = MagicMock()
    content = payload if isinstance(payload, str) else json.dumps(payload)
    mock_client.chat.completions.create.return_value = _make_mock_response(content)
    return mock_client


class TestOpenAIAnalysis:
    def test_detect_sentiment(self) -> None:
        mock_client = _client_returning(
            {
                "sentiment": "positive",
                "positive": 0.9,
                "negative": 0.05,
                "neutral": 0.05,
                "mixed": 0,
            }
        )

        result = _make_adapter(mock_client).detect_sentiment("great news", "en")

        assert result.label == "POSITIVE"
        assert result.scores.positive == 0.9
        assert result.scores.mixed == 0.0
        assert result.request_id == "chatcmpl-1"

    def test_request_uses_strict_schema_and_prompt(self) -> None:
        mock_client = _client_returning({"entities": []})

        _make_adapter(mock_client).detect_entities("Acme in Berlin", "de")

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "m"
        assert kwargs["temperature"] == 0.0
        schema = kwargs["response_format"]["json_schema"]
        assert schema["name"] == "entities_result"
        assert schema["strict"] is True
        user_prompt = kwargs["messages"][1]["content"]
        assert "Acme in Berlin" in user_prompt
        assert "de" in user_prompt

    def test_detect_entities(self) -> None:
        mock_client = _client_returning(
            {"entities": [{"text": "Acme", "type": "ORGANIZATION", "score": 0.93}]}
        )

        result = _make_adapter(mock_client).detect_entities("Acme", "en")

        assert result.entities[0].text == "Acme"
        assert result.entities[0].score == 0.93

    def test_detect_key_phrases(self) -> None:
        mock_client = _client_returning({"key_phrases": [{"text": "budget", "score": 0.8}]})

        result = _make_adapter(mock_client).detect_key_phrases("budget plan", "en")

        assert [p.text for p in result.key_phrases] == ["budget"]

    def test_detect_language_sorted_by_score(self) -> None:
        mock_client = _client_returning(
            {"languages": [{"code": "en", "score": 0.2}, {"code": "es", "score": 0.75}]}
        )

        result = _make_adapter(mock_client).detect_language("hola")

        assert [lang.code for lang in result.languages] == ["es", "en"]

    def test_scores_are_clamped(self) -> None:
        mock_client = _client_returning({"key_phrases": [{"text": "x", "score": 1.7}]})

        result = _make_adapter(mock_client).detect_key_phrases("x", "en")

        assert result.key_phrases[0].score == 1.0

    def test_accepts_fenced_json(self) -> None:
        mock_client = _client_returning('```json\n{"languages": [{"code": "en", "score": 1}]}\n```')

        result = _make_adapter(mock_client).detect_language("hi")

        assert result.languages[0].code == "en"

    def test_custom_prompt_dir(self, tmp_path: Path) -> None:
        (tmp_path / "language.txt").write_text("Which language? {text}", encoding="utf-8")
        mock_client = _client_returning({"languages": []})

        _make_adapter(mock_client, prompt_dir=tmp_path).detect_language("hola")

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][1]["content"] == "Which language? hola"

    def test_missing_prompt_raises(self, tmp_path: Path) -> None:
        mock_client = _client_returning({"languages": []})

        with pytest.raises(TextAnalysisError, match="Failed to load prompt template"):
            _make_adapter(mock_client, prompt_dir=tmp_path).detect_language("hola")


class TestOpenAIResponseErrors:
    def test_unknown_sentiment_label(self) -> None:
        mock_client = _client_returning(
            {"sentiment": "HAPPY", "positive": 1, "negative": 0, "neutral": 0, "mixed": 0}
        )

        with pytest.raises(TextAnalysisResponseError, match="Unknown sentiment label"):
            _make_adapter(mock_client).detect_sentiment("x", "en")

    def test_invalid_json(self) -> None:
        mock_client = _client_returning("not json")

        with pytest.raises(TextAnalysisResponseError, match="Invalid JSON"):
            _make_adapter(mock_client).detect_language("x")

    def test_non_numeric_score(self) -> None:
        mock_client = _client_returning({"key_phrases": [{"text": "x", "score": "high"}]})

        with pytest.raises(TextAnalysisResponseError, match="'score' must be a number"):
            _make_adapter(mock_client).detect_key_phrases("x", "en")

    def test_list_field_must_be_list(self) -> None:
        mock_client = _client_returning({"entities": "none"})

        with pytest.raises(TextAnalysisResponseError, match="'entities' must be a list"):
            _make_adapter(mock_client).detect_entities("x", "en")

    def test_empty_content(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = _make_mock_response(None)

        with pytest.raises(TextAnalysisResponseError, match="empty response"):
            _make_adapter(mock_client).detect_language("x")

    def test_response_errors_are_retryable(self) -> None:
        assert TextAnalysisResponseError("bad").retryable is True


class TestOpenAITransportErrors:
    def test_rate_limit(self) -> None:
        mock_client = MagicMock()
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        mock_client.chat.completions.create.side_effect = openai.RateLimitError(
            "slow down", response=httpx.Response(429, request=request), body=None
        )

        with pytest.raises(TextAnalysisThrottledError, match="rate limit"):
            _make_adapter(mock_client).detect_language("x")

    def test_connection_failure(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=MagicMock()
        )

        with pytest.raises(TextAnalysisNetworkError, match="network error"):
            _make_adapter(mock_client).detect_language("x")

    def test_timeout(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = httpx.TimeoutException("timeout")

        with pytest.raises(TextAnalysisNetworkError, match="network error"):
            _make_adapter(mock_client).detect_language("x")

    def test_api_error(self) -> None:
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = openai.APIError(
            message="server error",
            request=MagicMock(),
            body=None,
        )

        with pytest.raises(TextAnalysisNetworkError, match="API error"):
            _make_adapter(mock_client).detect_language("x")
