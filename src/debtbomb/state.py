from __future__ import annotations
import os, json, logging, threading, tempfile
from typing import Dict, Optional

logger = logging.getLogger(__name__)

STATE_DIR = ".debtbomb"
STATE_FILE = "jira-map.json"


class StateError(Exception):
    """The ticket map could not be read or written."""


class TicketState:
    """Maps debt item ids to the tracker ticket opened for them.

    Loaded once per run and written back in full by ``save``.
    """

    def __init__(self, path: str, mapping: Optional[Dict[str, str]] = None):
        self.path = path
        self._lock = threading.RLock()
        self._map: Dict[str, str] = dict(mapping or {})

    @classmethod
    def load(cls, repo_root: str) -> "TicketState":
        path = os.path.join(repo_root, STATE_DIR, STATE_FILE)
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            return cls(path)
        except OSError as e:
            raise StateError(f"cannot read {path}: {e}") from e

        if not raw.strip():
            return cls(path)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateError(f"malformed ticket map {path}: {e}") from e
        if not isinstance(data, dict):
            raise StateError(f"ticket map {path} must be a JSON object")
        return cls(path, {str(k): str(v) for k, v in data.items()})

    def get(self, item_id: str) -> Optional[str]:
        with self._lock:
            return self._map.get(item_id)

    def set(self, item_id: str, ticket_key: str) -> None:
        with self._lock:
            self._map[item_id] = ticket_key

    def remove(self, item_id: str) -> None:
        with self._lock:
            self._map.pop(item_id, None)

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._map)

    def __len__(self) -> int:
        with self._lock:
            return len(self._map)

    def save(self) -> None:
        with self._lock:
            data = json.dumps(self._map, indent=2, sort_keys=True)
        directory = os.path.dirname(self.path)
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=".jira-map.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(data)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise StateError(f"cannot write {self.path}: {e}") from e
        logger.debug("Saved %d ticket mappings to %s", len(self._map), self.path)
