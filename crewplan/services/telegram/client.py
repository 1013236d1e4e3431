"""
Telegram Bot API sink for employee notifications.
Delivery is fire-and-forget: failures come back as results and are logged, never raised.
"""

import logging
import httpx
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from crewplan.core.config import settings


logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """Outcome of a send; message_id is what a later delete needs."""
    success: bool
    message_id: Optional[int] = None
    chat_id: Optional[str] = None
    error: Optional[str] = None


class BaseNotificationSink(ABC):
    """Abstract base for notification transports."""

    @abstractmethod
    def send_message(self, bot_token: str, chat_id: str, text: str) -> SendResult:
        ...

    @abstractmethod
    def delete_message(self, bot_token: str, chat_id: str, message_id: int) -> bool:
        ...


class TelegramBotSink(BaseNotificationSink):
    """Bot API over plain HTTPS (sendMessage / deleteMessage, HTML parse mode)."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None, client: Optional[httpx.Client] = None):
        self.base_url = (base_url or settings.TELEGRAM_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.TELEGRAM_TIMEOUT_SECONDS
        self._client = client

    def _post(self, bot_token: str, method: str, payload: dict) -> dict:
        url = f"{self.base_url}/bot{bot_token}/{method}"
        if self._client is not None:
            response = self._client.post(url, json=payload, timeout=self.timeout)
        else:
            response = httpx.post(url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        if not data.get("ok"):
            raise ValueError(data.get("description") or "Telegram returned ok=false")
        return data

    def send_message(self, bot_token: str, chat_id: str, text: str) -> SendResult:
        payload = {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}
        try:
            data = self._post(bot_token, "sendMessage", payload)
            message_id = (data.get("result") or {}).get("message_id")
            return SendResult(success=True, message_id=message_id, chat_id=str(chat_id))
        except httpx.HTTPStatusError as e:
            logger.error(f"Telegram sendMessage HTTP error: {e.response.status_code} - {e.response.text}")
            return SendResult(success=False, chat_id=str(chat_id), error=f"Telegram API error: {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Telegram sendMessage failed: {e}")
            return SendResult(success=False, chat_id=str(chat_id), error=str(e))

    def delete_message(self, bot_token: str, chat_id: str, message_id: int) -> bool:
        payload = {"chat_id": chat_id, "message_id": message_id}
        try:
            self._post(bot_token, "deleteMessage", payload)
            return True
        except httpx.HTTPStatusError as e:
            # already deleted or older than 48h
            logger.warning(f"Telegram deleteMessage HTTP error: {e.response.status_code} - {e.response.text}")
            return False
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Telegram deleteMessage failed: {e}")
            return False


class NullNotificationSink(BaseNotificationSink):
    """Sink used when no bot is configured; drops everything."""

    def send_message(self, bot_token: str, chat_id: str, text: str) -> SendResult:
        return SendResult(success=False, chat_id=str(chat_id), error="Notifications disabled")

    def delete_message(self, bot_token: str, chat_id: str, message_id: int) -> bool:
        return False


def get_notification_sink() -> BaseNotificationSink:
    """Factory for the configured sink."""
    if settings.TELEGRAM_ENABLED:
        return TelegramBotSink()
    return NullNotificationSink()
