from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from debtbomb.notify import WebhookError, WebhookNotifier, format_expired_message, format_warning_message

from conftest import make_item


def _notifier(handler, webhooks):
    return WebhookNotifier(webhooks, client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_payload_shape_per_channel() -> None:
    seen = []

    def handler(request):
        seen.append((str(request.url), json.loads(request.content)))
        return httpx.Response(200)

    n = _notifier(handler, {
        "slack": "https://hooks.slack.test/x",
        "discord": "https://discord.test/y",
        "teams": "https://teams.test/z",
    })
    for via in ("slack", "discord", "teams"):
        assert n.send(via, "hello") is True
    assert seen == [
        ("https://hooks.slack.test/x", {"text": "hello"}),
        ("https://discord.test/y", {"content": "hello"}),
        ("https://teams.test/z", {"text": "hello"}),
    ]


def test_missing_webhook_is_skipped() -> None:
    n = _notifier(lambda request: httpx.Response(500), {})
    assert n.send("slack", "hello") is False


def test_failed_delivery_raises() -> None:
    n = _notifier(lambda request: httpx.Response(404), {"slack": "https://hooks.slack.test/x"})
    with pytest.raises(WebhookError, match="404"):
        n.send("slack", "hello")


def test_unknown_channel_raises() -> None:
    with pytest.raises(WebhookError):
        _notifier(lambda request: httpx.Response(200), {}).send("pager", "hello")


def test_malformed_webhook_url_raises() -> None:
    n = _notifier(lambda request: httpx.Response(200), {"slack": "https://hooks.slack.test/x\n"})
    with pytest.raises(WebhookError):
        n.send("slack", "hello")


def test_expired_message() -> None:
    item = make_item("x", date(2024, 2, 1), is_expired=True, file="api/h.go", line=12,
                     reason="hack", owner="alice", severity="High")
    msg = format_expired_message(item, "OPS-3", "@alice")
    assert msg.splitlines() == [
        "🚨 DebtBomb exploded",
        "api/h.go:12",
        "hack",
        "Owner: alice (@alice)",
        "Expires: 2024-02-01",
        "Severity: High",
        "Jira: OPS-3",
    ]


def test_warning_message() -> None:
    item = make_item("x", date(2024, 2, 1), file="a.py", line=3, reason="r", owner="bob")
    msg = format_warning_message(item, 5)
    assert msg.splitlines()[0] == "⏳ DebtBomb warning (5 days left)"
    assert "Owner: bob" in msg
