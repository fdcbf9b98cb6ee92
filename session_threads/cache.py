"""Persistent storage for per-session read watermarks."""

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .models import ReadProgress

logger = logging.getLogger(__name__)

# Default cache location
CACHE_DIR = Path(os.environ.get("SESSION_THREADS_CACHE", Path.home() / ".cache" / "session-threads"))
PROGRESS_PATH = CACHE_DIR / "progress.json"


def _parse_time(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, (int, float)):
        # Millisecond epoch timestamps from older progress files
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


class ProgressStore:
    """Thread-safe JSON store of read watermarks, keyed by session key.

    File format: {key: {"lastReadId": str, "lastReadAt": iso8601}}.
    """

    _lock = threading.Lock()

    def __init__(self, path: Optional[Path] = None):
        self._path = path or PROGRESS_PATH
        self._data: dict[str, dict] = {}
        self._dirty = False
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self):
        """Load progress from disk."""
        if not self._path.exists():
            return
        try:
            with open(self._path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable progress file {self._path}: {e}")
            return
        if isinstance(data, dict):
            self._data = {k: v for k, v in data.items() if isinstance(v, dict)}

    def save(self):
        """Save progress to disk if dirty."""
        with self._lock:
            if not self._dirty:
                return
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with open(self._path, "w") as f:
                    json.dump(self._data, f, indent=2)
                self._dirty = False
            except OSError as e:
                logger.warning(f"Failed to save progress to {self._path}: {e}")

    def get(self, key: str) -> Optional[ReadProgress]:
        """Get the stored watermark for a session, if any."""
        with self._lock:
            entry = self._data.get(key)
            if not entry:
                return None
            return ReadProgress(
                last_read_id=entry.get("lastReadId"),
                last_read_at=_parse_time(entry.get("lastReadAt")),
            )

    def mark_read(self, key: str, entry_id: str, at: Optional[datetime] = None):
        """Move a session's watermark to the given entry."""
        at = at or datetime.now(timezone.utc)
        with self._lock:
            self._data[key] = {"lastReadId": entry_id, "lastReadAt": at.isoformat()}
            self._dirty = True

    def clear(self):
        with self._lock:
            self._data = {}
            self._dirty = True

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
