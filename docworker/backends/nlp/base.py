from abc import ABC, abstractmethod

from docworker.backends.nlp.models import (
    EntitiesResult,
    KeyPhrasesResult,
    LanguageResult,
    SentimentResult,
)


class BaseTextAnalysisBackend(ABC):
    """Contract for NLP back-end adapters.

    Callers truncate text to the documented byte limits beforehand. Every
    method raises ``TextAnalysisError`` subclasses, never transport errors.
    """

    @abstractmethod
    def detect_sentiment(self, text: str, language_code: str) -> SentimentResult: ...

    @abstractmethod
    def detect_entities(self, text: str, language_code: str) -> EntitiesResult: ...

    @abstractmethod
    def detect_key_phrases(self, text: str, language_code: str) -> KeyPhrasesResult: ...

    @abstractmethod
    def detect_language(self, text: str) -> LanguageResult: ...
