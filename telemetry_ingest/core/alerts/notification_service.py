"""Servicio de notificaciones por email para alertas.

El envío es fire-and-forget: un fallo se loguea y nunca se reintenta.
"""

from __future__ import annotations

import html
import logging
from datetime import datetime, tzinfo
from typing import List, Optional, Protocol, Tuple

import requests

from ..domain.alert_rule import AlertRule
from ..domain.errors import NotificationFailure

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Contrato del colaborador de envío de emails."""

    def send(self, recipients: List[str], subject: str, body: str) -> bool:
        ...


def _fmt_threshold(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:g}"


def build_alert_email(
    rule: AlertRule,
    value: float,
    triggered_at: datetime,
    tz: tzinfo,
) -> Tuple[str, str]:
    """Arma (subject, body HTML) del email de alerta."""
    subject = f"Alert Triggered: {rule.metric.value} on Device {rule.device_id}"
    when = triggered_at.astimezone(tz).strftime("%Y-%m-%d %H:%M:%S %Z")
    body = (
        "<h1>Alert Triggered</h1>"
        f"<p><strong>Device:</strong> {html.escape(rule.device_id)}</p>"
        f"<p><strong>Type:</strong> {rule.metric.value}</p>"
        f"<p><strong>Current Value:</strong> {value:g}</p>"
        f"<p><strong>Thresholds:</strong> Min: {_fmt_threshold(rule.min_threshold)}, "
        f"Max: {_fmt_threshold(rule.max_threshold)}</p>"
        f"<p><strong>Time:</strong> {when}</p>"
    )
    return subject, body


class ResendEmailSink:
    """Envía emails vía la API HTTP de Resend."""

    def __init__(
        self,
        api_key: Optional[str],
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key
        self._sender = sender
        self._api_url = api_url
        self._timeout = timeout
        self._session = session or requests.Session()

    def send(self, recipients: List[str], subject: str, body: str) -> bool:
        """Envía el email.

        Raises:
            NotificationFailure: sin API key, error de red o respuesta no 2xx
        """
        if not self._api_key:
            raise NotificationFailure("RESEND_API_KEY not configured")

        try:
            response = self._session.post(
                self._api_url,
                json={
                    "from": self._sender,
                    "to": list(recipients),
                    "subject": subject,
                    "html": body,
                },
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise NotificationFailure(f"email request failed: {e}") from e

        if not response.ok:
            raise NotificationFailure(
                f"email rejected: {response.status_code} {response.text[:200]}"
            )

        logger.info("[EMAIL] Alert email sent to %s", ", ".join(recipients))
        return True
