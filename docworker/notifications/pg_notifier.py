import json

from docworker.database.connection import get_connection
from docworker.notifications.base import BaseStatusNotifier
from docworker.notifications.events import DocumentStatusChanged


class PgNotifyStatusNotifier(BaseStatusNotifier):
    """Publishes events with Postgres NOTIFY for a listening realtime gateway."""

    def __init__(self, channel: str) -> None:
        self._channel = channel

    def publish(self, event: DocumentStatusChanged) -> None:
        message = json.dumps(
            {
                "event": event.name,
                "channels": event.channels,
                "payload": event.to_payload(),
            },
            default=str,
        )
        with get_connection() as conn:
            conn.execute("SELECT pg_notify(%s, %s)", (self._channel, message))
            conn.commit()
