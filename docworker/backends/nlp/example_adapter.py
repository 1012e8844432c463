"""Example text analysis adapter.

Use this module as a reference when implementing new NLP providers.
Implement BaseTextAnalysisBackend and register the provider in
TextAnalysisBackendFactory.
"""

from docworker.backends.nlp.base import BaseTextAnalysisBackend
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


class ExampleTextAnalysisAdapter(BaseTextAnalysisBackend):
    """Returns fixed analysis results. No network calls."""

    def __init__(self) -> None:
        pass

    def detect_sentiment(self, text: str, language_code: str) -> SentimentResult:
        scores = SentimentScores(positive=0.85, negative=0.10, neutral=0.04, mixed=0.01)
        return SentimentResult(
            label="POSITIVE",
            scores=scores,
            raw={"Sentiment": "POSITIVE", "SentimentScore": scores.as_dict()},
            request_id="example",
        )

    def detect_entities(self, text: str, language_code: str) -> EntitiesResult:
        entities = [Entity(text="Example Corp", type="ORGANIZATION", score=0.95)]
        return EntitiesResult(
            entities=entities,
            raw={"Entities": [{"Text": "Example Corp", "Type": "ORGANIZATION", "Score": 0.95}]},
            request_id="example",
        )

    def detect_key_phrases(self, text: str, language_code: str) -> KeyPhrasesResult:
        phrases = [KeyPhrase(text="example document", score=0.9)]
        return KeyPhrasesResult(
            key_phrases=phrases,
            raw={"KeyPhrases": [{"Text": "example document", "Score": 0.9}]},
            request_id="example",
        )

    def detect_language(self, text: str) -> LanguageResult:
        return LanguageResult(
            languages=[DetectedLanguage(code="en", score=0.99)],
            raw={"Languages": [{"LanguageCode": "en", "Score": 0.99}]},
            request_id="example",
        )
