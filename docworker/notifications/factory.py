from docworker.config.settings import Settings
from docworker.notifications.base import BaseStatusNotifier
from docworker.notifications.log_notifier import LogStatusNotifier
from docworker.notifications.pg_notifier import PgNotifyStatusNotifier


class NotifierFactory:
    """Creates the status notifier based on settings."""

    NOTIFIERS = ("log", "pg_notify")

    @classmethod
    def create(cls, settings: Settings) -> BaseStatusNotifier:
        name = settings.notifier.lower()
        if name == "log":
            return LogStatusNotifier()
        if name == "pg_notify":
            return PgNotifyStatusNotifier(settings.notify_channel)
        raise ValueError(f"Unknown notifier '{name}'. Choose from: {list(cls.NOTIFIERS)}")
