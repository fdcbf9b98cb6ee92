"""OpenClaw session log source."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from . import register_source
from .base import LogNotFoundError, LogSource, LogSourceError

logger = logging.getLogger(__name__)

SESSIONS_DIR = Path(
    os.environ.get("SESSION_THREADS_DIR", Path.home() / ".openclaw" / "agents" / "main" / "sessions")
)
INDEX_FILENAME = "sessions.json"


@register_source
class OpenClawSource(LogSource):
    """Reads OpenClaw JSONL logs and the sessions.json key index."""

    name = "openclaw"
    display_name = "OpenClaw"
    icon = "🦞"

    def __init__(self, sessions_dir: Optional[Path] = None):
        self.sessions_dir = Path(sessions_dir) if sessions_dir else SESSIONS_DIR

    def get_sessions_dir(self) -> Path:
        return self.sessions_dir

    def discover_log_files(self) -> list[Path]:
        """Discover all JSONL logs, oldest first."""
        if not self.sessions_dir.exists():
            return []
        files = list(self.sessions_dir.glob("*.jsonl"))
        files.sort(key=lambda p: p.stat().st_mtime)
        return files

    def _log_path(self, filename: str) -> Path:
        path = (self.sessions_dir / filename).resolve()
        if path.parent != self.sessions_dir.resolve():
            raise LogSourceError(f"Log name escapes sessions directory: {filename}")
        return path

    def read_log(self, filename: str) -> str:
        path = self._log_path(filename)
        if not path.exists():
            raise LogNotFoundError(f"Log not found: {filename}")
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise LogSourceError(f"Failed to read {filename}: {e}") from e

    def load_session_index(self) -> dict[str, dict]:
        index_path = self.sessions_dir / INDEX_FILENAME
        if not index_path.exists():
            return {}
        try:
            with open(index_path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not read session index {index_path}: {e}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, dict)}
