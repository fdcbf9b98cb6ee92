"""Base class for session log sources."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from ..models import DangerHit, SpawnedConversation
from ..parser import parse_log, message_entries
from ..spawns import index_tool_calls, iter_spawn_results

logger = logging.getLogger(__name__)


class LogSourceError(Exception):
    """Raised when a log cannot be retrieved."""


class LogNotFoundError(LogSourceError):
    """Raised when the requested log does not exist."""


class LogSource(ABC):
    """Abstract base class for log sources.

    A source knows where a harness keeps its session logs, how to read one
    log's raw content, and which session keys map to which log files.
    """

    # Source identity
    name: str = ""  # unique identifier: "openclaw"
    display_name: str = ""  # human-readable: "OpenClaw"
    icon: str = ""

    @abstractmethod
    def get_sessions_dir(self) -> Path:
        """Return the directory where session logs are stored."""
        ...

    def is_available(self) -> bool:
        """Check if this source's sessions directory exists."""
        return self.get_sessions_dir().exists()

    @abstractmethod
    def discover_log_files(self) -> list[Path]:
        """Discover all session log files."""
        ...

    @abstractmethod
    def read_log(self, filename: str) -> str:
        """Return the raw content of one log.

        Raises LogSourceError when the log cannot be read.
        """
        ...

    async def fetch_log(self, filename: str) -> str:
        """Read a log without blocking the event loop."""
        return await asyncio.to_thread(self.read_log, filename)

    def load_session_index(self) -> dict[str, dict]:
        """Map session keys to index records ({"sessionId", "label", ...}).

        Default implementation returns an empty index.
        """
        return {}

    def filename_for(self, key: str, record: dict) -> str | None:
        """Log filename for an index record, or None if it has none."""
        session_file = record.get("sessionFile")
        if session_file:
            return Path(session_file).name
        session_id = record.get("sessionId")
        if session_id:
            return f"{session_id}.jsonl"
        return None

    def load_spawn_registry(self) -> dict[str, SpawnedConversation]:
        """Scan every log for spawn results and register the known children.

        A child is registered only when its key appears in the session
        index, so that it can be mapped to a log file.
        """
        index = self.load_session_index()
        registry: dict[str, SpawnedConversation] = {}
        if not index:
            return registry

        for path in self.discover_log_files():
            try:
                text = self.read_log(path.name)
            except LogSourceError as e:
                logger.warning(f"Skipping {path.name}: {e}")
                continue

            messages = message_entries(parse_log(text))
            tool_calls = index_tool_calls(messages)
            for msg, key in iter_spawn_results(messages):
                record = index.get(key)
                if record is None or key in registry:
                    continue
                filename = self.filename_for(key, record)
                if not filename:
                    continue
                call_args = tool_calls.get(msg.tool_call_id or "") or {}
                label = record.get("label") or call_args.get("label") or ""
                registry[key] = SpawnedConversation(key=key, filename=filename, label=str(label))

        logger.info(f"Found {len(registry)} spawned sessions in {self.get_sessions_dir()}")
        return registry

    def resolve_log(self, name: str) -> tuple[str, str]:
        """Resolve a session key or log filename to (key, filename).

        Session keys are looked up in the index; anything else is treated as
        a filename, with the file stem used as its key.
        """
        index = self.load_session_index()
        record = index.get(name)
        if record is not None:
            filename = self.filename_for(name, record)
            if filename:
                return name, filename
        filename = Path(name).name
        if not filename.endswith(".jsonl"):
            filename = f"{filename}.jsonl"
        return Path(filename).stem, filename


def load_danger_data(path: Path) -> dict[str, list[DangerHit]]:
    """Load danger annotations: {filename: [hit, ...]}."""
    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not read danger annotations from {path}: {e}")
        return {}
    if not isinstance(data, dict):
        return {}

    result: dict[str, list[DangerHit]] = {}
    for filename, hits in data.items():
        if not isinstance(hits, list):
            continue
        result[filename] = [DangerHit.from_dict(h) for h in hits if isinstance(h, dict)]
    return result
