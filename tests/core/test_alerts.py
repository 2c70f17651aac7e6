"""
Tests for dindex.core.alerts — sinks for out-of-band alerts.
"""

from __future__ import annotations

import json

import httpx
import pytest

from dindex.core.alerts import (
    Alert,
    AlertSeverity,
    AlertSink,
    LogAlertSink,
    RecordingAlertSink,
    WebhookAlertSink,
    create_alert_sink,
)
from dindex.core.errors import ConfigError


def _alert() -> Alert:
    return Alert(
        severity=AlertSeverity.WARNING,
        title="Job claim returned more rows than requested",
        message="claimed 4 jobs with limit=3",
        source="dindex.dispatcher",
        metadata={"limit": 3},
    )


class TestAlert:
    def test_to_dict(self):
        d = _alert().to_dict()
        assert d["severity"] == "WARNING"
        assert d["metadata"] == {"limit": 3}
        assert d["fingerprint"] == "WARNING|dindex.dispatcher|Job claim returned more rows than requested"


class TestSinks:
    def test_sinks_satisfy_protocol(self):
        assert isinstance(LogAlertSink(), AlertSink)
        assert isinstance(RecordingAlertSink(), AlertSink)

    def test_recording_sink(self):
        sink = RecordingAlertSink()
        assert sink.send(_alert())
        assert len(sink.alerts) == 1

    def test_webhook_posts_json(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        sink = WebhookAlertSink("https://alerts.example/hook", client=client, headers={"X-Token": "t"})
        assert sink.send(_alert()) is True
        assert seen[0].headers["X-Token"] == "t"
        assert json.loads(seen[0].content)["source"] == "dindex.dispatcher"

    def test_webhook_failure_returns_false(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        sink = WebhookAlertSink("https://alerts.example/hook", client=client)
        assert sink.send(_alert()) is False

    def test_factory(self):
        assert isinstance(create_alert_sink(None), LogAlertSink)
        sink = create_alert_sink("https://alerts.example/hook")
        assert isinstance(sink, WebhookAlertSink)
        sink.close()

    @pytest.mark.parametrize(
        "url", ["alerts.example/hook", "ftp://alerts.example/hook", "http://alerts.example:nope/hook"]
    )
    def test_factory_rejects_malformed_url(self, url):
        with pytest.raises(ConfigError):
            create_alert_sink(url)
