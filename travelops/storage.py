"""
Key/value stores that play the part of the browser's localStorage and sessionStorage.

Values are always strings, exactly like the Web Storage API.
"""
import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

TOKEN_KEY = 'token'
USER_KEY = 'user'


class MemoryStorage:
    """In-process store that lives as long as the client (sessionStorage)."""

    def __init__(self):
        self._storage: Dict[str, str] = {}
        self._lock = threading.RLock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._storage.get(key)

    def set_item(self, key: str, value) -> None:
        with self._lock:
            self._storage[key] = str(value)
            self._persist()

    def remove_item(self, key: str) -> None:
        with self._lock:
            if key in self._storage:
                del self._storage[key]
                self._persist()

    def clear(self) -> None:
        with self._lock:
            self._storage.clear()
            self._persist()

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._storage.keys())

    def __len__(self):
        with self._lock:
            return len(self._storage)

    def __contains__(self, key):
        with self._lock:
            return key in self._storage

    def _persist(self) -> None:
        """Hook for subclasses that write through to disk."""
        pass


class FileStorage(MemoryStorage):
    """
    Store persisted as a JSON object on disk (localStorage).

    The file is rewritten on every change so a restarted client picks up the
    same token and user profile.
    """

    def __init__(self, path):
        super().__init__()
        self.path = Path(path).expanduser()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return

        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            logger.error(f"Could not read storage file {self.path}: {e}")
            return

        if not isinstance(data, dict):
            logger.error(f"Ignoring storage file {self.path}: expected a JSON object")
            return

        self._storage = {str(key): str(value) for key, value in data.items()}
        logger.debug(f"Loaded {len(self._storage)} keys from {self.path}")

    def _persist(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a sibling file first so a crash never leaves half a JSON document
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        tmp_path.write_text(json.dumps(self._storage), encoding='utf-8')
        tmp_path.replace(self.path)
