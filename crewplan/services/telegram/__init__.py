from .client import (
    BaseNotificationSink,
    NullNotificationSink,
    SendResult,
    TelegramBotSink,
    get_notification_sink,
)

__all__ = [
    "BaseNotificationSink",
    "NullNotificationSink",
    "SendResult",
    "TelegramBotSink",
    "get_notification_sink",
]
