from __future__ import annotations

import abc
import html
import logging

import httpx

from wedding_planner.core.config import get_settings
from wedding_planner.core.exceptions import NotificationError

logger = logging.getLogger(__name__)


class Notifier(abc.ABC):
    @abc.abstractmethod
    async def send(self, destination: str, subject: str, body: str) -> None:
        """Deliver one notification. Raise NotificationError on failure."""


class EmailNotifier(Notifier):
    """Sends reminder emails through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = settings.resend_api_key if api_key is None else api_key
        self.from_email = from_email or settings.resend_from_email
        self.base_url = (base_url or settings.resend_api_url).rstrip("/")
        self.timeout = timeout or settings.email_timeout_sec
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def build_payload(from_email: str, destination: str, title: str, message: str) -> dict:
        return {
            "from": from_email,
            "to": [destination],
            "subject": f"Wedding Reminder: {title}",
            "html": f"<h2>{html.escape(title)}</h2><p>{html.escape(message)}</p>",
        }

    async def send(self, destination: str, subject: str, body: str) -> None:
        if not self.configured:
            logger.info("Email service not configured, would send to %s: %s - %s", destination, subject, body)
            return

        payload = self.build_payload(self.from_email, destination, subject, body)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}/emails", headers=self._headers(), json=payload)
        except httpx.HTTPError as exc:
            raise NotificationError(f"email_transport_error:{exc.__class__.__name__}") from exc

        if response.status_code >= 400:
            detail = response.text.strip()[:500]
            raise NotificationError(f"email_http_{response.status_code}:{detail}")


def get_notifier() -> Notifier:
    return EmailNotifier()
