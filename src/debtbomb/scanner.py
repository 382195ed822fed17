from __future__ import annotations
import os, logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple
from .signals import DebtItem
from .markers import extract_file
from .utils import iter_files, to_rel

logger = logging.getLogger(__name__)

MAX_WORKERS = 32


def default_workers() -> int:
    # Bounded so the pool never holds more open files than the host allows.
    return min(MAX_WORKERS, 4 * (os.cpu_count() or 1))


def sort_key(item: DebtItem) -> Tuple[date, str, int]:
    return (item.expire, item.file, item.line)


def scan_repo(
    repo_root: str,
    today: Optional[date] = None,
    workers: Optional[int] = None,
    excluded: Optional[Iterable[str]] = None,
) -> List[DebtItem]:
    """Extract every debt item under *repo_root*, ordered by expiry date.

    Raises ``ScanError`` when the root itself cannot be walked; unreadable
    files are skipped.
    """
    root = os.path.abspath(repo_root)
    today = today or date.today()
    workers = workers or default_workers()

    def work(abspath: str) -> List[DebtItem]:
        return extract_file(abspath, to_rel(abspath, root))

    items: List[DebtItem] = []
    files = 0
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for found in pool.map(work, iter_files(root, excluded=excluded)):
            files += 1
            items.extend(found)

    for it in items:
        it.is_expired = today > it.expire

    items.sort(key=sort_key)
    logger.debug("Scanned %d files under %s, found %d debt items", files, root, len(items))
    return items


def split_by_window(
    items: Iterable[DebtItem], today: date, warn_days: int
) -> Tuple[List[DebtItem], List[DebtItem]]:
    expired: List[DebtItem] = []
    warning: List[DebtItem] = []
    horizon = today + timedelta(days=warn_days)
    for it in items:
        if it.is_expired:
            expired.append(it)
        elif warn_days > 0 and it.expire <= horizon:
            warning.append(it)
    return expired, warning
