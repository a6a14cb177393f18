# -*- codeing = utf-8 -*-
# @Create: 2023-03-29 3:56 p.m.
# @Update: 2026-10-19 10:05 a.m.
"""Telegram Bot API notifier."""

import html
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import requests

LOGGER = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
DEFAULT_HEADER = "🚀 MiniLaunch Notification"
DEFAULT_TIMEOUT = 10.0


class NotifyError(Enum):
    UNCONFIGURED = "unconfigured"
    TRANSPORT_FAILURE = "transport_failure"
    REMOTE_REJECTED = "remote_rejected"


@dataclass(frozen=True)
class NotifyResult:
    """Outcome of one ``send`` call; ``error`` is ``None`` on success."""

    error: Optional[NotifyError] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def format_message(message: str, header: Optional[str] = DEFAULT_HEADER) -> str:
    """Wrap ``message`` for ``parse_mode=HTML``, escaping markup characters."""

    body = html.escape(message, quote=False)
    if not header:
        return body
    return f"<pre>{html.escape(header, quote=False)}</pre>{body}"


def build_payload(chat_id: str, text: str) -> Dict[str, str]:
    return {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
    }


class TelegramNotifier:
    """Deliver text messages through the ``sendMessage`` endpoint.

    One POST per ``send`` call, no retries. Missing credentials turn every
    call into a no-op that reports ``NotifyError.UNCONFIGURED``.
    """

    def __init__(
        self,
        token: Optional[str],
        chat_id: Optional[str],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        header: Optional[str] = DEFAULT_HEADER,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._token = token or None
        self._chat_id = chat_id or None
        self._timeout = timeout
        self._header = header
        self._session = session

    @property
    def configured(self) -> bool:
        return bool(self._token and self._chat_id)

    @property
    def url(self) -> str:
        return f"{TELEGRAM_API_BASE}/bot{self._token}/sendMessage"

    def send(self, message: str) -> NotifyResult:
        if not self.configured:
            return NotifyResult(NotifyError.UNCONFIGURED,
                                "Telegram bot token or chat id is not set")

        payload = build_payload(self._chat_id,
                                format_message(message, self._header))
        poster = self._session.post if self._session is not None else requests.post

        try:
            response = poster(self.url, data=payload, timeout=self._timeout)
        except requests.RequestException as exc:
            LOGGER.debug("notify.telegram.transport_error error=%s", exc)
            return NotifyResult(NotifyError.TRANSPORT_FAILURE, str(exc))

        try:
            body = response.json()
        except ValueError:
            return NotifyResult(
                NotifyError.TRANSPORT_FAILURE,
                f"Unexpected response (HTTP {response.status_code})",
            )

        if isinstance(body, dict) and body.get("ok") is True:
            return NotifyResult()

        description = None
        if isinstance(body, dict):
            description = body.get("description")
        return NotifyResult(
            NotifyError.REMOTE_REJECTED,
            description or f"HTTP {response.status_code}",
        )
