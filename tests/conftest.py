from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from debtbomb.config import Config, DEFAULT_CONFIG
from debtbomb.jira import JiraError
from debtbomb.notify import WebhookError
from debtbomb.signals import DebtItem


class FakeTracker:
    """In-memory stand-in for the Jira client."""

    def __init__(self, fail_create: bool = False, fail_close: bool = False, fail_update: bool = False):
        self.fail_create = fail_create
        self.fail_close = fail_close
        self.fail_update = fail_update
        self.created: List[Tuple[str, str, str, str, str]] = []
        self.updated: List[Tuple[str, str]] = []
        self.closed: List[str] = []

    def create_ticket(self, project, summary, description, issue_type, priority=""):
        if self.fail_create:
            raise JiraError("boom")
        self.created.append((project, summary, description, issue_type, priority))
        return f"DEBT-{len(self.created)}"

    def update_priority(self, issue_key, priority):
        if self.fail_update:
            raise JiraError("boom")
        self.updated.append((issue_key, priority))

    def close_ticket(self, issue_key):
        self.closed.append(issue_key)
        if self.fail_close:
            raise JiraError("no close transition")


class FakeNotifier:
    def __init__(self, failing: Optional[set] = None):
        self.failing = failing or set()
        self.sent: List[Tuple[str, str]] = []

    def send(self, via, message):
        if via in self.failing:
            raise WebhookError("webhook failed with status 500")
        self.sent.append((via, message))
        return True


@pytest.fixture
def fake_tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()


def make_config(notify: Optional[list] = None, owners: Optional[Dict[str, str]] = None) -> Config:
    data = {
        "jira": dict(DEFAULT_CONFIG["jira"], default_project="OPS"),
        "owners": owners or {},
        "notify": notify or [],
    }
    return Config(data, env={})


def make_item(
    item_id: str = "abc",
    expire: date = date(2025, 1, 1),
    is_expired: bool = False,
    **kw,
) -> DebtItem:
    kw.setdefault("file", "src/app.go")
    kw.setdefault("line", 1)
    return DebtItem(id=item_id, expire=expire, is_expired=is_expired, **kw)


@pytest.fixture
def write_file(tmp_path: Path):
    def _write(rel: str, content: str = "") -> Path:
        p = tmp_path / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        return p

    return _write
