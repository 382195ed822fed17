"""Level-triggered sync between scanned debt items and tracker tickets.

Every run compares the expired items of the current scan with the ticket
map from previous runs:

* expired, not tracked   -> open a ticket (when enabled) and announce it
* expired, tracked       -> keep the ticket, refresh its priority
* inside warning window  -> send an ``expiring_soon`` reminder
* tracked, not expired   -> close the ticket and forget the mapping

The map is saved once at the end, so a crash between a successful create
and the save leads to a duplicate ticket on the next run unless
``checkpoint`` is set.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Protocol, Set

from .config import CHANNELS, Config
from .jira import JiraError
from .notify import WebhookError, format_expired_message, format_warning_message
from .signals import EXPIRED, EXPIRING_SOON, DebtItem, NotificationEvent
from .state import TicketState

logger = logging.getLogger(__name__)


class TicketTracker(Protocol):
    def create_ticket(self, project: str, summary: str, description: str, issue_type: str,
                      priority: str = "") -> str: ...

    def update_priority(self, issue_key: str, priority: str) -> None: ...

    def close_ticket(self, issue_key: str) -> None: ...


class Notifier(Protocol):
    def send(self, via: str, message: str) -> bool: ...


@dataclass
class SyncResult:
    created: Dict[str, str] = field(default_factory=dict)  # item id -> ticket key
    kept: List[str] = field(default_factory=list)
    closed: Dict[str, str] = field(default_factory=dict)  # item id -> ticket key
    events: List[NotificationEvent] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def ticket_summary(item: DebtItem) -> str:
    return f"Expired tech debt: {item.reason}"


def ticket_description(item: DebtItem) -> str:
    return (
        f"File: {item.file}:{item.line}\n"
        f"Expires: {item.expire.isoformat()}\n"
        f"Owner: {item.owner}\n"
        f"Severity: {item.severity}\n"
        f"\n"
        f"Snippet:\n"
        f"{item.snippet}"
    )


class Reconciler:
    def __init__(
        self,
        config: Config,
        state: TicketState,
        tracker: Optional[TicketTracker] = None,
        notifier: Optional[Notifier] = None,
        today: Optional[date] = None,
        checkpoint: bool = False,
    ):
        self.config = config
        self.state = state
        self.tracker = tracker
        self.notifier = notifier
        self.today = today or date.today()
        self.checkpoint = checkpoint
        self.rules = config.notify_rules

    def creates_tickets(self) -> bool:
        if self.tracker is None:
            return False
        return any(r.via == "jira" and r.on == EXPIRED for r in self.rules)

    def sync(self, items: Iterable[DebtItem], check_days: int = 0, expired_only: bool = False) -> SyncResult:
        result = SyncResult()
        expired: List[DebtItem] = []
        expiring: List[DebtItem] = []
        expired_ids: Set[str] = set()

        for it in items:
            if it.is_expired:
                expired.append(it)
                expired_ids.add(it.id)
                continue
            if expired_only:
                continue
            days_left = it.days_left(self.today)
            if days_left < 0:
                continue
            if check_days > 0 and days_left > check_days:
                continue
            expiring.append(it)

        for it in expired:
            key = self.state.get(it.id)
            if key is None:
                self._open(it, result)
            else:
                self._keep(it, key, result)

        for it in expiring:
            self._dispatch(NotificationEvent(EXPIRING_SOON, it, it.days_left(self.today)), result)

        for item_id, key in self.state.snapshot().items():
            if item_id not in expired_ids:
                self._close(item_id, key, result)

        self.state.save()
        logger.info(
            "Sync finished: %d created, %d kept, %d closed, %d notifications, %d errors",
            len(result.created), len(result.kept), len(result.closed), len(result.events), len(result.errors),
        )
        return result

    def _open(self, item: DebtItem, result: SyncResult) -> None:
        key = None
        if self.creates_tickets():
            jira = self.config.jira
            try:
                key = self.tracker.create_ticket(
                    jira.default_project,
                    ticket_summary(item),
                    ticket_description(item),
                    jira.issue_type,
                    item.severity,
                )
            except JiraError as e:
                self._error(result, f"Failed to create Jira ticket for {item.id}: {e}")
            else:
                logger.info("Created Jira ticket %s for %s", key, item.id)
                self.state.set(item.id, key)
                result.created[item.id] = key
                if self.checkpoint:
                    self.state.save()
        self._dispatch(NotificationEvent(EXPIRED, item, item.days_left(self.today), key), result)

    def _keep(self, item: DebtItem, key: str, result: SyncResult) -> None:
        result.kept.append(item.id)
        if not item.severity or self.tracker is None:
            return
        try:
            self.tracker.update_priority(key, item.severity)
        except JiraError as e:
            self._error(result, f"Failed to update priority of {key}: {e}")

    def _close(self, item_id: str, key: str, result: SyncResult) -> None:
        if self.tracker is not None:
            try:
                self.tracker.close_ticket(key)
            except JiraError as e:
                self._error(result, f"Failed to close ticket {key}: {e}")
            else:
                logger.info("Closed ticket %s for %s", key, item_id)
        self.state.remove(item_id)
        result.closed[item_id] = key

    def _dispatch(self, event: NotificationEvent, result: SyncResult) -> None:
        result.events.append(event)
        contact = self.config.contact_for(event.item.owner)
        if event.kind == EXPIRED:
            message = format_expired_message(event.item, event.ticket_key, contact)
        else:
            message = format_warning_message(event.item, event.days_left, contact)

        for rule in self.rules:
            if rule.on != event.kind or rule.via not in CHANNELS:
                continue
            if event.kind == EXPIRING_SOON and rule.days is not None and rule.days != event.days_left:
                continue
            if self.notifier is None:
                continue
            try:
                self.notifier.send(rule.via, message)
            except WebhookError as e:
                self._error(result, f"Failed to send notification via {rule.via}: {e}")

    def _error(self, result: SyncResult, message: str) -> None:
        logger.warning(message)
        result.errors.append(message)
