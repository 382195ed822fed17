from __future__ import annotations
import posixpath
from datetime import date, timedelta
from typing import Any, Dict, List, Sequence
from .signals import DebtItem


def counts_to_list(counts: Dict[str, int]) -> List[Dict[str, Any]]:
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [{"key": k, "count": v} for k, v in ordered]


def bucket(item: DebtItem, today: date) -> str:
    if item.is_expired:
        return "expired"
    if item.expire < today + timedelta(days=30):
        return "within_30_days"
    if item.expire < today + timedelta(days=90):
        return "within_90_days"
    return "more_than_90_days"


def generate(items: Sequence[DebtItem], today: date) -> Dict[str, Any]:
    """Aggregate counts by owner, folder, reason and urgency.

    ``within_90_days`` also counts the items already in ``within_30_days``.
    """
    urgency = {"expired": 0, "within_30_days": 0, "within_90_days": 0, "more_than_90_days": 0}
    report: Dict[str, Any] = {
        "total_count": len(items),
        "by_owner": [],
        "by_folder": [],
        "by_reason": [],
        "by_urgency": urgency,
        "oldest": None,
        "newest": None,
    }
    if not items:
        return report

    owners: Dict[str, int] = {}
    folders: Dict[str, int] = {}
    reasons: Dict[str, int] = {}
    for it in items:
        owner = it.owner or "(no owner)"
        owners[owner] = owners.get(owner, 0) + 1
        folder = posixpath.dirname(it.file) or "(root)"
        folders[folder] = folders.get(folder, 0) + 1
        reason = it.reason or "(no reason)"
        reasons[reason] = reasons.get(reason, 0) + 1

        b = bucket(it, today)
        urgency[b] += 1
        if b == "within_30_days":
            urgency["within_90_days"] += 1

    report["by_owner"] = counts_to_list(owners)
    report["by_folder"] = counts_to_list(folders)
    report["by_reason"] = counts_to_list(reasons)
    report["oldest"] = min(items, key=lambda it: it.expire)
    report["newest"] = max(items, key=lambda it: it.expire)
    return report


def to_json(report: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(report)
    for key in ("oldest", "newest"):
        if out[key] is not None:
            out[key] = out[key].to_dict()
    return out
