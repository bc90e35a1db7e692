"""Tests for block alerting and the Slack notifier."""

import json

import httpx
import pytest

from smartblock.models import Alert, CategoryLabel, Decision, Outcome, Reason, Severity
from smartblock.notifiers import BlockAlerter, SlackConfig, SlackNotifier
from smartblock.policies import ContextAwareClassifier, StaticCategoryOracle

WEBHOOK = "https://hooks.slack.com/services/T000/B000/XXXX"


def make_decision(domain: str = "facebook.com", outcome: Outcome = Outcome.BLOCK) -> Decision:
    return Decision(
        outcome=outcome,
        reason=Reason.SOCIAL_PRIMARY_BLOCKED if outcome is Outcome.BLOCK else Reason.DEFAULT_ALLOW,
        domain=domain,
        label=CategoryLabel.SOCIAL_PRIMARY,
        timestamp=0.0,
    )


def make_alert(severity: Severity = Severity.MEDIUM) -> Alert:
    return Alert.from_decision("alert-1", make_decision(), severity=severity, client="192.168.1.50")


class TestBlockAlerter:
    def test_creates_alert_for_block(self) -> None:
        alerter = BlockAlerter(severity=Severity.HIGH)
        alerter(make_decision())

        alerts = alerter.drain()
        assert len(alerts) == 1
        assert alerts[0].severity is Severity.HIGH
        assert alerts[0].domain == "facebook.com"
        assert alerts[0].reason is Reason.SOCIAL_PRIMARY_BLOCKED
        assert "social-primary-blocked" in alerts[0].tags

    def test_ignores_allowed(self) -> None:
        alerter = BlockAlerter()
        alerter(make_decision(outcome=Outcome.ALLOW))
        assert alerter.drain() == []

    def test_deduplicates_within_window(self) -> None:
        now = [0.0]
        alerter = BlockAlerter(dedup_window=60, timer=lambda: now[0])

        alerter(make_decision())
        alerter(make_decision())
        assert alerter.dedup_hits == 1
        assert len(alerter.drain()) == 1

        now[0] = 61.0
        alerter(make_decision())
        assert len(alerter.drain()) == 1

    def test_drain_empties_pending(self) -> None:
        alerter = BlockAlerter()
        alerter(make_decision("a.example"))
        alerter(make_decision("b.example"))
        assert len(alerter.drain()) == 2
        assert alerter.drain() == []

    def test_client_taken_from_context_hint(self) -> None:
        alerter = BlockAlerter()
        classifier = ContextAwareClassifier(StaticCategoryOracle(), on_block=alerter)
        classifier.classify("facebook.com", 0.0, context_hint="192.168.1.50")
        assert alerter.drain()[0].client == "192.168.1.50"

    def test_wired_as_block_callback(self) -> None:
        alerter = BlockAlerter()
        classifier = ContextAwareClassifier(StaticCategoryOracle(), on_block=alerter)
        classifier.classify("legitimate-news-site.com", 0.0)
        classifier.classify("facebook.com", 1.0)
        classifier.classify("pornhub.com", 2.0)
        assert sorted(a.domain for a in alerter.drain()) == ["facebook.com", "pornhub.com"]


class TestSlackNotifier:
    @pytest.mark.asyncio
    async def test_sends_formatted_payload(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="ok")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        notifier = SlackNotifier(SlackConfig(webhook_url=WEBHOOK), client=client)

        assert await notifier.send_alert(make_alert()) is True
        await notifier.close()

        assert len(requests) == 1
        payload = json.loads(requests[0].content)
        attachment = payload["attachments"][0]
        assert attachment["title"] == "Blocked facebook.com"
        assert attachment["footer"] == "smartblock"
        values = {f["title"]: f["value"] for f in attachment["fields"]}
        assert values["Reason"] == "social-primary-blocked"
        assert values["Client"] == "192.168.1.50"

    @pytest.mark.asyncio
    async def test_below_min_severity_skipped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("should not be called")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        notifier = SlackNotifier(
            SlackConfig(webhook_url=WEBHOOK, min_severity=Severity.HIGH),
            client=client,
        )
        assert await notifier.send_alert(make_alert(Severity.LOW)) is False
        await notifier.close()

    @pytest.mark.asyncio
    async def test_disabled(self) -> None:
        notifier = SlackNotifier(SlackConfig(webhook_url=WEBHOOK, enabled=False))
        assert await notifier.send_alert(make_alert()) is False

    @pytest.mark.asyncio
    async def test_http_error_returns_false(self) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
        )
        notifier = SlackNotifier(SlackConfig(webhook_url=WEBHOOK), client=client)
        assert await notifier.send_alert(make_alert()) is False
        await notifier.close()

    @pytest.mark.asyncio
    async def test_timeout_returns_false(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        notifier = SlackNotifier(SlackConfig(webhook_url=WEBHOOK), client=client)
        assert await notifier.send_alert(make_alert()) is False
        await notifier.close()

    @pytest.mark.asyncio
    async def test_send_alerts_counts_delivered(self) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="ok"))
        )
        notifier = SlackNotifier(SlackConfig(webhook_url=WEBHOOK), client=client)
        sent = await notifier.send_alerts([make_alert(), make_alert(Severity.HIGH)])
        await notifier.close()
        assert sent == 2
