"""Typed models for session log entries and read tracking."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union


# -- content blocks --

@dataclass
class TextBlock:
    text: str = ""
    type: str = "text"


@dataclass
class ToolCallBlock:
    """A tool invocation inside an assistant message."""

    id: str = ""
    name: str = ""
    arguments: dict = field(default_factory=dict)
    type: str = "toolCall"


@dataclass
class ThinkingBlock:
    thinking: str = ""
    type: str = "thinking"


@dataclass
class UnknownBlock:
    """Any block type we don't understand, kept as-is."""

    type: str = ""
    raw: dict = field(default_factory=dict)


ContentBlock = Union[TextBlock, ToolCallBlock, ThinkingBlock, UnknownBlock]


# -- entries --

@dataclass
class BaseEntry:
    """Fields shared by every parsed log record."""

    kind: str
    id: Optional[str] = None
    timestamp: Optional[str] = None
    raw: dict = field(default_factory=dict, repr=False)


@dataclass
class SessionEntry(BaseEntry):
    """Session header record. Structural only, never displayed."""

    kind: str = "session"
    cwd: str = ""


@dataclass
class MessageEntry(BaseEntry):
    kind: str = "message"
    role: str = ""  # "user", "assistant" or "toolResult"
    content: list[ContentBlock] = field(default_factory=list)

    # Set on toolResult messages only
    tool_call_id: Optional[str] = None
    tool_name: Optional[str] = None
    is_error: bool = False

    @property
    def tool_calls(self) -> list[ToolCallBlock]:
        return [b for b in self.content if isinstance(b, ToolCallBlock)]


@dataclass
class CompactionEntry(BaseEntry):
    kind: str = "compaction"
    summary: str = ""


@dataclass
class ModelChangeEntry(BaseEntry):
    kind: str = "model_change"
    model_id: str = ""
    provider: str = ""


@dataclass
class ThinkingLevelChangeEntry(BaseEntry):
    kind: str = "thinking_level_change"
    thinking_level: str = ""


@dataclass
class UnknownEntry(BaseEntry):
    """Record of a kind we don't recognize. Preserved, rendered as nothing."""

    kind: str = ""


Entry = Union[
    SessionEntry,
    MessageEntry,
    CompactionEntry,
    ModelChangeEntry,
    ThinkingLevelChangeEntry,
    UnknownEntry,
]


# -- registries and derived state --

@dataclass
class SpawnedConversation:
    """A known sub-agent log, as listed in the spawned-conversation registry."""

    key: str
    filename: str
    label: str = ""


@dataclass
class ConversationRef:
    """A nested conversation revealed by a spawn tool result."""

    child_key: str
    filename: str
    label: str = ""
    task: str = ""


@dataclass
class ReadProgress:
    """Stored read watermark for one log."""

    last_read_id: Optional[str] = None
    last_read_at: Optional[datetime] = None


@dataclass(frozen=True)
class ReadState:
    """Read/unread position of a log relative to its watermark."""

    watermark_id: Optional[str] = None
    read_ids: frozenset = frozenset()
    read_message_count: int = 0
    total_message_count: int = 0
    last_message_id: Optional[str] = None

    @property
    def unread_message_count(self) -> int:
        return max(0, self.total_message_count - self.read_message_count)

    def is_read(self, entry: BaseEntry) -> bool:
        return bool(self.watermark_id) and entry.id is not None and entry.id in self.read_ids

    def shows_marker_after(self, entry: BaseEntry) -> bool:
        """Whether the "last read" marker follows this entry.

        No marker once the watermark sits on the final message.
        """
        if not self.watermark_id or entry.id != self.watermark_id:
            return False
        return entry.id != self.last_message_id


@dataclass
class DangerHit:
    """A flagged finding attached to one entry of a log."""

    entry_id: str
    rule: str = ""
    severity: str = "warning"
    snippet: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "DangerHit":
        return cls(
            entry_id=str(data.get("entryId") or data.get("entry_id") or ""),
            rule=data.get("rule", "") or data.get("pattern", ""),
            severity=data.get("severity", "warning"),
            snippet=data.get("snippet", "") or data.get("match", ""),
        )
