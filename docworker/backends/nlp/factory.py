from typing import ClassVar

from docworker.backends.nlp.base import BaseTextAnalysisBackend
from docworker.backends.nlp.comprehend_adapter import ComprehendTextAnalysisAdapter
from docworker.backends.nlp.example_adapter import ExampleTextAnalysisAdapter
from docworker.backends.nlp.openai_adapter import OpenAITextAnalysisAdapter
from docworker.config.settings import Settings


class TextAnalysisBackendFactory:
    """Creates the configured NLP back-end."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseTextAnalysisBackend:
        """Create a configured text analysis back-end from application settings."""
        provider = settings.nlp_provider.lower()
        if provider == "comprehend":
            return ComprehendTextAnalysisAdapter.from_settings(settings)
        if provider == "example":
            return ExampleTextAnalysisAdapter()
        if provider == "openai":
            return OpenAITextAnalysisAdapter(
                api_key=settings.nlp_openai_api_key,
                model=settings.nlp_openai_model_name,
                timeout_seconds=settings.nlp_openai_timeout_seconds,
            )
        return OpenAITextAnalysisAdapter(
            api_key=settings.nlp_openai_compatible_api_key,
            model=settings.nlp_openai_compatible_model_name,
            timeout_seconds=settings.nlp_openai_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str:
        if provider == "openai_compatible":
            url = (settings.nlp_openai_compatible_base_url or "").strip()
            if not url:
                raise ValueError(
                    "nlp_openai_compatible_base_url is required for "
                    "nlp_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "comprehend",
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(f"Unknown NLP provider '{provider}'. Choose from: {supported}")
