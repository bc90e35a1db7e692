"""Slack webhook notifier for block alerts."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from smartblock.models import SEVERITY_ORDER, Alert, Severity

logger = logging.getLogger(__name__)

# Slack color codes by severity
SEVERITY_COLORS = {
    Severity.INFO: "#808080",      # gray
    Severity.LOW: "#2196F3",       # blue
    Severity.MEDIUM: "#FF9800",    # orange
    Severity.HIGH: "#F44336",      # red
    Severity.CRITICAL: "#9C27B0",  # purple
}


@dataclass
class SlackConfig:
    """Configuration for Slack notifier."""
    webhook_url: str
    min_severity: Severity = Severity.MEDIUM
    enabled: bool = True
    timeout: float = 10.0


class SlackNotifier:
    """Async Slack webhook notifier."""

    def __init__(self, config: SlackConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    def _should_notify(self, alert: Alert) -> bool:
        """Check if alert meets severity threshold."""
        return SEVERITY_ORDER.index(alert.severity) >= SEVERITY_ORDER.index(self.config.min_severity)

    def _format_message(self, alert: Alert) -> dict:
        """Format alert as Slack message with attachment."""
        fields = [
            {"title": "Domain", "value": f"`{alert.domain}`", "short": True},
            {"title": "Reason", "value": alert.reason.value, "short": True},
            {"title": "Category", "value": alert.label.value, "short": True},
            {"title": "Severity", "value": alert.severity.value.upper(), "short": True},
        ]
        if alert.client:
            fields.append({"title": "Client", "value": alert.client, "short": True})

        attachment = {
            "color": SEVERITY_COLORS.get(alert.severity, "#808080"),
            "title": alert.title,
            "text": alert.description,
            "fields": fields,
            "footer": "smartblock",
            "ts": int(alert.timestamp.timestamp()),
        }
        return {"attachments": [attachment]}

    async def send_alert(self, alert: Alert) -> bool:
        """Send alert to Slack. Returns True if sent successfully."""
        if not self.config.enabled:
            return False

        if not self._should_notify(alert):
            logger.debug(f"Skipping Slack notification: {alert.severity} < {self.config.min_severity}")
            return False

        try:
            client = await self._get_client()
            payload = self._format_message(alert)

            resp = await client.post(self.config.webhook_url, json=payload)

            if resp.status_code == 200:
                logger.debug(f"Slack notification sent for alert: {alert.title}")
                return True
            else:
                logger.warning(f"Slack webhook failed: {resp.status_code} - {resp.text}")
                return False

        except httpx.TimeoutException:
            logger.warning("Slack webhook timeout")
            return False
        except Exception as e:
            logger.warning(f"Slack webhook error: {e}")
            return False

    async def send_alerts(self, alerts: list[Alert]) -> int:
        """Send several alerts concurrently. Returns how many were delivered."""
        results = await asyncio.gather(*(self.send_alert(a) for a in alerts))
        return sum(1 for sent in results if sent)
