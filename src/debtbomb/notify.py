"""Chat webhook delivery and message formatting."""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import httpx

from .signals import DebtItem

logger = logging.getLogger(__name__)


class WebhookError(Exception):
    pass


def _post(client: httpx.Client, url: str, payload: Dict[str, Any]) -> None:
    try:
        resp = client.post(url, json=payload)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise WebhookError(f"webhook request failed: {e}") from e
    if resp.status_code >= 300:
        raise WebhookError(f"webhook failed with status {resp.status_code}")


def send_slack(client: httpx.Client, url: str, message: str) -> None:
    _post(client, url, {"text": message})


def send_discord(client: httpx.Client, url: str, message: str) -> None:
    _post(client, url, {"content": message})


def send_teams(client: httpx.Client, url: str, message: str) -> None:
    _post(client, url, {"text": message})


SENDERS = {
    "slack": send_slack,
    "discord": send_discord,
    "teams": send_teams,
}


class WebhookNotifier:
    """Sends preformatted messages to the configured chat webhooks."""

    def __init__(self, webhooks: Dict[str, str], client: Optional[httpx.Client] = None, timeout: float = 10.0):
        self.webhooks = dict(webhooks)
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def send(self, via: str, message: str) -> bool:
        """Deliver *message* on channel *via*; False when the channel has no webhook."""
        sender = SENDERS.get(via)
        if sender is None:
            raise WebhookError(f"unknown notification channel {via!r}")
        url = self.webhooks.get(via)
        if not url:
            logger.debug("No webhook configured for %s, skipping", via)
            return False
        sender(self._client, url, message)
        return True


def _owner_line(item: DebtItem, contact: str) -> str:
    if contact:
        return f"Owner: {item.owner} ({contact})"
    return f"Owner: {item.owner}"


def format_expired_message(item: DebtItem, ticket_key: Optional[str] = None, contact: str = "") -> str:
    lines = [
        "🚨 DebtBomb exploded",
        f"{item.file}:{item.line}",
        item.reason,
        _owner_line(item, contact),
        f"Expires: {item.expire.isoformat()}",
    ]
    if item.severity:
        lines.append(f"Severity: {item.severity}")
    if ticket_key:
        lines.append(f"Jira: {ticket_key}")
    return "\n".join(lines)


def format_warning_message(item: DebtItem, days_left: int, contact: str = "") -> str:
    return "\n".join([
        f"⏳ DebtBomb warning ({days_left} days left)",
        f"{item.file}:{item.line}",
        item.reason,
        _owner_line(item, contact),
        f"Expires: {item.expire.isoformat()}",
    ])
