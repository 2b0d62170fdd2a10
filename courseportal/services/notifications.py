"""Transactional email over the mail provider's HTTP API."""

import logging
from dataclasses import dataclass

import requests

from courseportal.core.errors import DeliveryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailSettings:
    api_url: str
    api_key: str
    sender: str
    timeout_seconds: float = 10.0


class MailDispatcher:
    def __init__(self, settings: MailSettings, http: requests.Session | None = None):
        self.settings = settings
        self.http = http or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.api_url and self.settings.api_key and self.settings.sender)

    def send(self, to: str, subject: str, body: str) -> None:
        """Send one plain-text email. Makes a single attempt; raises DeliveryError on any failure."""
        if not self.is_configured:
            raise DeliveryError('Mail provider is not configured. Set MAIL_API_KEY and MAIL_FROM.')

        payload = {
            'from': self.settings.sender,
            'to': [to],
            'subject': subject,
            'text': body,
        }
        headers = {
            'Authorization': f'Bearer {self.settings.api_key}',
            'Content-Type': 'application/json',
        }

        try:
            response = self.http.post(
                self.settings.api_url,
                json=payload,
                headers=headers,
                timeout=self.settings.timeout_seconds,
            )
        except requests.Timeout as exc:
            raise DeliveryError(f'Mail provider timed out sending to {to}.') from exc
        except requests.RequestException as exc:
            raise DeliveryError(f'Mail provider connection error sending to {to}: {exc}') from exc

        if response.status_code >= 400:
            raise DeliveryError(
                f'Mail provider rejected message to {to}: HTTP {response.status_code} {response.text[:200]}'
            )

        logger.debug('Sent "%s" to %s', subject, to)
