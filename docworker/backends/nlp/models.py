from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SentimentScores:
    positive: float = 0.0
    negative: float = 0.0
    neutral: float = 0.0
    mixed: float = 0.0

    def as_dict(self) -> dict[str, float]:
        return {
            "positive": self.positive,
            "negative": self.negative,
            "neutral": self.neutral,
            "mixed": self.mixed,
        }


@dataclass(frozen=True)
class SentimentResult:
    label: str
    scores: SentimentScores
    raw: dict[str, Any] = field(default_factory=dict)
    request_id: str | None = None


@dataclass(frozen=True)
class Entity:
    text: str
    type: str
    score: float


@dataclass(frozen=True)
class EntitiesResult:
    entities: list[Entity]
    raw: dict[str, Any] = field(default_factory=dict)
    request_id: str | None = None


@dataclass(frozen=True)
class KeyPhrase:
    text: str
    score: float


@dataclass(frozen=True)
class KeyPhrasesResult:
    key_phrases: list[KeyPhrase]
    raw: dict[str, Any] = field(default_factory=dict)
    request_id: str | None = None


@dataclass(frozen=True)
class DetectedLanguage:
    code: str
    score: float


@dataclass(frozen=True)
class LanguageResult:
    languages: list[DetectedLanguage]
    raw: dict[str, Any] = field(default_factory=dict)
    request_id: str | None = None
