from __future__ import annotations
from dataclasses import dataclass
from datetime import date
from typing import Dict, Any, Optional

EXPIRED = "expired"
EXPIRING_SOON = "expiring_soon"


@dataclass
class DebtItem:
    id: str
    file: str  # relative to the scan root, forward slashes
    line: int
    expire: date
    owner: str = ""
    ticket: str = ""
    reason: str = ""
    severity: str = ""
    raw_text: str = ""
    snippet: str = ""
    is_expired: bool = False

    def days_left(self, today: date) -> int:
        return (self.expire - today).days

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "file": self.file,
            "line": self.line,
            "expire": self.expire.isoformat(),
        }
        for key in ("owner", "ticket", "reason", "severity"):
            val = getattr(self, key)
            if val:
                out[key] = val
        out["rawText"] = self.raw_text
        out["snippet"] = self.snippet
        out["isExpired"] = self.is_expired
        return out


@dataclass
class NotificationEvent:
    kind: str  # expired|expiring_soon
    item: DebtItem
    days_left: int = 0
    ticket_key: Optional[str] = None
