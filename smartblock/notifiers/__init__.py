"""Notification channels for block alerts."""

from smartblock.notifiers.alerts import BlockAlerter
from smartblock.notifiers.slack import SlackConfig, SlackNotifier

__all__ = ["BlockAlerter", "SlackConfig", "SlackNotifier"]
