from collections.abc import Iterable

from docworker.config.settings import Settings
from docworker.logging.logger import Log
from docworker.pipeline.exceptions import NoProcessorAvailableError
from docworker.pipeline.models import Document, JobSpec
from docworker.pipeline.strategies import (
    ImageStrategy,
    PdfStrategy,
    ProcessorStrategy,
    TextStrategy,
)


class ProcessorRegistry:
    """Priority-ordered, immutable set of processor strategies.

    Strategies are tried highest priority first; equal priorities keep
    registration order. ``register`` returns a new registry.
    """

    def __init__(self, strategies: Iterable[ProcessorStrategy] = ()) -> None:
        self._strategies: tuple[ProcessorStrategy, ...] = tuple(
            sorted(strategies, key=lambda strategy: strategy.priority, reverse=True)
        )

    @property
    def strategies(self) -> tuple[ProcessorStrategy, ...]:
        return self._strategies

    def register(self, strategy: ProcessorStrategy) -> "ProcessorRegistry":
        Log.debug(
            f"Registering strategy {strategy.name} with priority {strategy.priority}"
        )
        return ProcessorRegistry((*self._strategies, strategy))

    def find_strategy(self, document: Document) -> ProcessorStrategy | None:
        for strategy in self._strategies:
            if strategy.can_handle(document):
                Log.info(
                    f"Strategy {strategy.name} selected for document {document.id} "
                    f"({document.mime_type})"
                )
                return strategy

        Log.warning(
            f"No strategy found for document {document.id} ({document.mime_type}), "
            f"{len(self._strategies)} strategies registered"
        )
        return None

    def plan(self, document: Document) -> list[JobSpec]:
        """Build the job plan for a document.

        Raises:
            NoProcessorAvailableError: if no registered strategy handles it.
        """
        strategy = self.find_strategy(document)
        if strategy is None:
            raise NoProcessorAvailableError(document.mime_type)
        return strategy.plan(document)

    def supported_mime_types(self) -> list[str]:
        return sorted(
            {mime for strategy in self._strategies for mime in strategy.supported_mime_types}
        )

    def is_supported(self, mime_type: str) -> bool:
        return mime_type in self.supported_mime_types()

    def statistics(self) -> dict[str, object]:
        return {
            "total_processors": len(self._strategies),
            "supported_mime_types": len(self.supported_mime_types()),
            "processors": [
                {
                    "name": strategy.name,
                    "priority": strategy.priority,
                    "supported_types": strategy.supported_mime_types,
                }
                for strategy in self._strategies
            ],
        }


def default_registry(settings: Settings) -> ProcessorRegistry:
    """Build the registry of all shipped strategies."""
    return ProcessorRegistry(
        [
            PdfStrategy(large_file_threshold=settings.large_pdf_threshold_bytes),
            ImageStrategy(),
            TextStrategy(),
        ]
    )
