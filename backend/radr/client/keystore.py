"""Durable storage for exported group keys (base64 strings keyed by group id)."""
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Union

from platformdirs import user_data_path

logger = logging.getLogger(__name__)

DEFAULT_KEY_FILE = "radr_group_keys.json"


class MemoryKeyStore:
    """Process-local store; handy for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._keys: dict[str, str] = dict(initial or {})

    def get(self, group_id: str) -> Optional[str]:
        return self._keys.get(group_id)

    def put(self, group_id: str, exported_key: str) -> None:
        self._keys[group_id] = exported_key

    def delete(self, group_id: str) -> None:
        self._keys.pop(group_id, None)


class FileKeyStore:
    """JSON file of ``{group_id: base64_key}`` under the user data directory.

    Every write replaces the whole file through a temp file and ``os.replace``
    so a crash never leaves a half-written key map behind. Read problems are
    logged and treated as an empty store.
    """

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path else user_data_path("radr", appauthor=False) / DEFAULT_KEY_FILE
        self._lock = threading.Lock()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Unreadable group key file %s; treating it as empty", self.path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.warning("Group key file %s does not hold a mapping; ignoring it", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, keys: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".radr_keys_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(keys, fh)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def get(self, group_id: str) -> Optional[str]:
        with self._lock:
            return self._load().get(group_id)

    def put(self, group_id: str, exported_key: str) -> None:
        with self._lock:
            keys = self._load()
            keys[group_id] = exported_key
            self._save(keys)

    def delete(self, group_id: str) -> None:
        with self._lock:
            keys = self._load()
            if keys.pop(group_id, None) is not None:
                self._save(keys)
