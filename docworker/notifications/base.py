from abc import ABC, abstractmethod

from docworker.notifications.events import DocumentStatusChanged


class BaseStatusNotifier(ABC):
    """Contract for publishing document status changes to a realtime layer."""

    @abstractmethod
    def publish(self, event: DocumentStatusChanged) -> None:
        """Deliver one event. Implementations may raise; callers log and continue."""
