"""
Out-of-band alerting for conditions that should never happen.

The dispatcher raises an alert when a claim returns more rows than were
requested; that points at a driver or query bug and must reach an
operator even though the worker still gets its (truncated) batch.

Sinks:
    - ``LogAlertSink``      — structured log line only (default)
    - ``WebhookAlertSink``  — POSTs the alert as JSON via httpx, logs too
    - ``RecordingAlertSink`` — keeps alerts in memory (tests, CLI dry runs)

Tags:
    alerts, webhook, httpx, observability, dindex

Doc-Types:
    api-reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import httpx

from dindex.core.errors import ConfigError
from dindex.core.logging import get_logger

logger = get_logger(__name__)


class AlertSeverity(str, Enum):
    """Alert severity levels."""

    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class Alert:
    """An alert to be delivered to an operator."""

    severity: AlertSeverity
    title: str
    message: str
    source: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def fingerprint(self) -> str:
        return f"{self.severity.value}|{self.source}|{self.title}"

    def to_dict(self) -> dict[str, Any]:
        result = {
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "source": self.source,
            "created_at": self.created_at.isoformat(),
            "fingerprint": self.fingerprint,
        }
        if self.metadata:
            result["metadata"] = self.metadata
        return result


@runtime_checkable
class AlertSink(Protocol):
    """Anything that can deliver an alert. Must not raise."""

    def send(self, alert: Alert) -> bool: ...


class LogAlertSink:
    """Emit alerts as structured log events."""

    def send(self, alert: Alert) -> bool:
        log = logger.error if alert.severity in (AlertSeverity.ERROR, AlertSeverity.CRITICAL) else logger.warning
        log("alert", **alert.to_dict())
        return True


class RecordingAlertSink:
    """Collect alerts in memory."""

    def __init__(self) -> None:
        self.alerts: list[Alert] = []

    def send(self, alert: Alert) -> bool:
        self.alerts.append(alert)
        return True


class WebhookAlertSink:
    """POST alerts as JSON to a webhook URL.

    Delivery failures are logged and reported as ``False``; the alert is
    always written to the log first so nothing is lost when the webhook
    is down.
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
    ):
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = headers or {}
        self._log_sink = LogAlertSink()

    def send(self, alert: Alert) -> bool:
        self._log_sink.send(alert)
        try:
            response = self._client.post(self._url, json=alert.to_dict(), headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("alert_delivery_failed", url=self._url, error=str(e), title=alert.title)
            return False
        return True

    def close(self) -> None:
        self._client.close()


def create_alert_sink(webhook_url: str | None, *, timeout: float = 10.0) -> AlertSink:
    """Webhook sink when a URL is configured, log-only otherwise.

    Raises:
        ConfigError: the URL is not an absolute http(s) URL.
    """
    if not webhook_url:
        return LogAlertSink()
    try:
        parsed = httpx.URL(webhook_url)
    except httpx.InvalidURL as exc:
        raise ConfigError(f"Invalid DINDEX_ALERT_WEBHOOK_URL: {exc}", cause=exc) from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigError("DINDEX_ALERT_WEBHOOK_URL must be an absolute http(s) URL")
    return WebhookAlertSink(webhook_url, timeout=timeout)


__all__ = [
    "Alert",
    "AlertSeverity",
    "AlertSink",
    "LogAlertSink",
    "RecordingAlertSink",
    "WebhookAlertSink",
    "create_alert_sink",
]
