from docworker.logging.logger import Log
from docworker.notifications.base import BaseStatusNotifier
from docworker.notifications.events import DocumentStatusChanged


class LogStatusNotifier(BaseStatusNotifier):
    """Writes status events to the application log. Used in development."""

    def publish(self, event: DocumentStatusChanged) -> None:
        Log.info(
            f"{event.name} document={event.document_id} status={event.status.value} "
            f"progress={event.progress}% channels={','.join(event.channels)}"
            + (f" message={event.message}" if event.message else "")
        )
