"""Conversation views: load a log, nest its sub-agents, and track what has been read.

A ConversationView owns one log. When expanded it fetches and parses the log
once, then derives everything else (visible entries, spawned sub-agents, read
state) from the parsed entries on demand. Each spawned sub-agent becomes a
child ConversationView sharing the same ViewContext, so nesting recurses as
deep as the spawn chain in the data goes.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping, Optional, Protocol, Union

from .models import (
    ConversationRef,
    DangerHit,
    Entry,
    MessageEntry,
    ReadProgress,
    ReadState,
    SpawnedConversation,
)
from .parser import message_entries, parse_log, visible_entries
from .progress import compute_read_state, format_read_marker
from .sources import LogSource
from .spawns import find_spawned_conversations

logger = logging.getLogger(__name__)


class LoadState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class ProgressLookup(Protocol):
    def get(self, key: str) -> Optional[ReadProgress]: ...


def _ignore_mark_read(key: str, entry_id: str) -> None:
    pass


@dataclass
class ViewContext:
    """Collaborators shared, read-only, by a view and all its nested views."""

    source: LogSource
    spawned: Mapping[str, SpawnedConversation] = field(default_factory=dict)
    progress: ProgressLookup = field(default_factory=dict)
    dangers: Mapping[str, list[DangerHit]] = field(default_factory=dict)
    on_mark_read: Callable[[str, str], None] = _ignore_mark_read


# -- render flow items --

@dataclass
class EntryItem:
    entry: Entry
    is_read: bool = False


@dataclass
class NestedItem:
    view: "ConversationView"


@dataclass
class ReadMarkerItem:
    text: str


ViewItem = Union[EntryItem, NestedItem, ReadMarkerItem]


class ConversationView:
    """One expandable conversation log, possibly nested inside another."""

    def __init__(
        self,
        key: str,
        filename: str,
        context: ViewContext,
        label: str = "",
        task: str = "",
        ambient_expanded: bool = False,
        parent: Optional["ConversationView"] = None,
    ):
        self.key = key
        self.filename = filename
        self.context = context
        self.label = label
        self.task = task
        self.parent = parent

        self.ambient_expanded = ambient_expanded
        self.manual_expanded: Optional[bool] = None

        self.load_state = LoadState.IDLE
        self._entries: list[Entry] = []
        self._children: dict[str, ConversationView] = {}

    def __repr__(self) -> str:
        return f"ConversationView(key={self.key!r}, state={self.load_state.value}, expanded={self.expanded})"

    # -- expand / collapse --

    @property
    def expanded(self) -> bool:
        """Manual choice if one was made, otherwise the ambient instruction."""
        if self.manual_expanded is not None:
            return self.manual_expanded
        # Expand-all stops at a spawn cycle
        return self.ambient_expanded and not self.is_cycle

    def _on_expanded_change(self, was_expanded: bool):
        # Re-expanding is the only way a failed load gets another attempt
        if self.expanded and not was_expanded and self.load_state == LoadState.FAILED:
            self.load_state = LoadState.IDLE

    def toggle(self) -> bool:
        """Flip expansion by hand. Overrides the ambient instruction from now on."""
        was_expanded = self.expanded
        self.manual_expanded = not was_expanded
        self._on_expanded_change(was_expanded)
        return self.expanded

    def set_ambient_expanded(self, value: bool):
        """Apply an "expand all"/"collapse all" instruction to this subtree."""
        was_expanded = self.expanded
        self.ambient_expanded = value
        self._on_expanded_change(was_expanded)
        for child in self._children.values():
            child.set_ambient_expanded(value)

    # -- loading --

    @property
    def needs_load(self) -> bool:
        return self.expanded and self.load_state == LoadState.IDLE

    @property
    def is_loading(self) -> bool:
        return self.load_state == LoadState.LOADING

    async def load(self) -> bool:
        """Fetch and parse the log. Returns True once entries are available.

        Runs at most once per view; calling again while loading or loaded is
        a no-op. Fetch errors leave the view FAILED instead of raising.
        """
        if self.load_state in (LoadState.LOADING, LoadState.LOADED):
            return self.load_state == LoadState.LOADED

        self.load_state = LoadState.LOADING
        try:
            text = await self.context.source.fetch_log(self.filename)
        except asyncio.CancelledError:
            self.load_state = LoadState.IDLE
            raise
        except Exception as e:
            logger.warning(f"Failed to load {self.filename}: {type(e).__name__}: {e}")
            self.load_state = LoadState.FAILED
            return False

        self._entries = parse_log(text)
        self.load_state = LoadState.LOADED
        logger.debug(f"Loaded {len(self._entries)} entries from {self.filename}")
        return True

    async def resolve(self):
        """Load this view if expanded, then every expanded nested view, concurrently."""
        if self.needs_load:
            await self.load()
        if self.load_state != LoadState.LOADED:
            return
        children = []
        for entry_id, ref in self.spawn_refs.items():
            child = self.child_view(entry_id, ref)
            if child.is_cycle:
                logger.warning(f"Spawn cycle: {child.key} already appears above {self.key}, not resolving it again")
                continue
            children.append(child)
        if children:
            await asyncio.gather(*(child.resolve() for child in children))

    # -- derived state --

    @property
    def entries(self) -> list[Entry]:
        return self._entries

    @property
    def visible(self) -> list[Entry]:
        return visible_entries(self._entries)

    @property
    def messages(self) -> list[MessageEntry]:
        return message_entries(self._entries)

    @property
    def spawn_refs(self) -> dict[str, ConversationRef]:
        return find_spawned_conversations(self._entries, self.context.spawned)

    @property
    def progress(self) -> Optional[ReadProgress]:
        return self.context.progress.get(self.key)

    @property
    def read_state(self) -> ReadState:
        progress = self.progress
        watermark = progress.last_read_id if progress else None
        return compute_read_state(self.visible, self.messages, watermark)

    @property
    def dangers(self) -> list[DangerHit]:
        return list(self.context.dangers.get(self.filename, []))

    def dangers_for(self, entry: Entry) -> list[DangerHit]:
        if entry.id is None:
            return []
        return [d for d in self.dangers if d.entry_id == entry.id]

    @property
    def is_cycle(self) -> bool:
        """True when this view's key repeats along its chain of ancestors."""
        view = self.parent
        while view is not None:
            if view.key == self.key:
                return True
            view = view.parent
        return False

    @property
    def display_label(self) -> str:
        return self.label or self.task[:60] or "Subagent"

    def header_stats(self) -> str:
        """Message count with unread suffix, empty when nothing is loaded."""
        state = self.read_state
        if state.total_message_count == 0:
            return ""
        stats = f"{state.total_message_count} msgs"
        if state.unread_message_count > 0:
            stats += f" · {state.unread_message_count} unread"
        return stats

    # -- nesting --

    def child_view(self, entry_id: str, ref: ConversationRef) -> "ConversationView":
        """Nested view for the sub-agent spawned at entry_id, created once."""
        child = self._children.get(entry_id)
        if child is None or child.key != ref.child_key:
            child = ConversationView(
                key=ref.child_key,
                filename=ref.filename,
                context=self.context,
                label=ref.label,
                task=ref.task,
                ambient_expanded=self.ambient_expanded,
                parent=self,
            )
            self._children[entry_id] = child
        return child

    def items(self) -> list[ViewItem]:
        """The render flow: entries, each followed by its nested view and the read marker."""
        if not self.expanded or self.load_state != LoadState.LOADED:
            return []

        state = self.read_state
        refs = self.spawn_refs
        flow: list[ViewItem] = []
        for entry in self.visible:
            flow.append(EntryItem(entry=entry, is_read=state.is_read(entry)))
            if isinstance(entry, MessageEntry) and entry.id in refs:
                flow.append(NestedItem(view=self.child_view(entry.id, refs[entry.id])))
            if state.shows_marker_after(entry):
                flow.append(ReadMarkerItem(text=format_read_marker(self.progress)))
        return flow

    # -- interaction --

    def mark_read(self, entry_id: Optional[str]):
        """Report that the consumer read up to this entry."""
        if not entry_id:
            return
        self.context.on_mark_read(self.key, entry_id)
