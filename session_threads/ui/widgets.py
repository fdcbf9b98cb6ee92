"""UI widgets for the session threads TUI."""

import json
from typing import Optional

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.message import Message
from textual.widgets import Static

from ..models import (
    CompactionEntry,
    DangerHit,
    Entry,
    MessageEntry,
    ModelChangeEntry,
    TextBlock,
    ThinkingBlock,
    ThinkingLevelChangeEntry,
    ToolCallBlock,
)
from ..resolver import ConversationView, EntryItem, LoadState, NestedItem, ReadMarkerItem


def truncate(text: str, max_len: int = 100) -> str:
    """Truncate text with ellipsis."""
    if len(text) <= max_len:
        return text
    return text[:max_len - 3] + "..."


ROLE_STYLES = {
    "user": ("User", "bold green", "green"),
    "assistant": ("Assistant", "bold magenta", "magenta"),
    "toolResult": ("Tool Result", "bold blue", "blue"),
}


def _append_body(text: Text, body: str, border_style: str, dim: bool):
    for line in body.split("\n"):
        text.append("│ ", style=border_style)
        text.append(f"{line}\n", style="dim" if dim else "")


def build_message_text(entry: MessageEntry, is_read: bool, dangers: list[DangerHit], expanded: bool) -> Text:
    """Build a Rich Text object for a single message entry."""
    title, style, border_style = ROLE_STYLES.get(entry.role, (entry.role or "Message", "bold", "white"))
    if entry.role == "toolResult" and entry.tool_name:
        title = f"{title}: {entry.tool_name}"
    if entry.is_error:
        style, border_style = "bold red", "red"

    label = f"┌─ {'✓ ' if is_read else ''}{title} "
    text = Text()
    text.append(label, style=style)
    text.append("─" * max(1, 40 - len(label)), style=border_style)
    text.append("\n")

    for hit in dangers:
        text.append("│ ", style=border_style)
        text.append(f"⚠ {hit.rule or 'flagged'}", style="bold red" if hit.severity == "critical" else "bold yellow")
        if hit.snippet:
            text.append(f" {truncate(hit.snippet, 80)}", style="yellow")
        text.append("\n")

    max_len = None if expanded else 600
    for block in entry.content:
        if isinstance(block, TextBlock):
            if not block.text:
                continue
            body = block.text
            if max_len and entry.role == "toolResult":
                body = truncate(body, max_len)
            _append_body(text, body, border_style, is_read)
        elif isinstance(block, ThinkingBlock):
            if expanded and block.thinking:
                _append_body(text, f"💭 {block.thinking}", border_style, True)
        elif isinstance(block, ToolCallBlock):
            args = json.dumps(block.arguments, ensure_ascii=False)
            if max_len:
                args = truncate(args, 200)
            text.append("│ ", style=border_style)
            text.append(f"🔧 {block.name}", style="bold yellow")
            text.append(f" {args}\n", style="dim")

    text.append("└", style=border_style)
    text.append("─" * 40, style=border_style)
    text.append("\n")
    return text


def build_entry_text(
    entry: Entry,
    is_read: bool = False,
    dangers: Optional[list[DangerHit]] = None,
    expanded: bool = False,
) -> Optional[Text]:
    """Render one entry, or None for kinds that have no display."""
    if isinstance(entry, MessageEntry):
        return build_message_text(entry, is_read, dangers or [], expanded)

    if isinstance(entry, CompactionEntry):
        text = Text()
        text.append("⚡ Compaction\n", style="bold yellow")
        text.append(f"{entry.summary}\n", style="dim")
        return text

    if isinstance(entry, ModelChangeEntry):
        return Text(f"Model → {entry.model_id or '?'}", style="dim cyan")

    if isinstance(entry, ThinkingLevelChangeEntry):
        return Text(f"Thinking → {entry.thinking_level or '?'}", style="dim cyan")

    return None


class EntryWidget(Static):
    """A rendered entry. Clicking it moves the read watermark here."""

    def __init__(self, entry: Entry, text: Text, block: "ConversationBlock"):
        super().__init__(text, markup=False, classes="entry")
        self.entry = entry
        self.block = block

    def on_click(self, event) -> None:
        event.stop()
        self.block.mark_read(self.entry)


class BlockHeader(Static):
    """Clickable header of a nested conversation."""

    def __init__(self, block: "ConversationBlock"):
        super().__init__("", classes="block-header")
        self.block = block

    def on_click(self, event) -> None:
        event.stop()
        self.block.toggle()

    def refresh_text(self):
        view = self.block.view
        text = Text()
        text.append("🚀 ", style="bold")
        text.append(view.display_label, style="bold cyan")
        stats = view.header_stats()
        if stats:
            total, _, unread = stats.partition(" · ")
            text.append(f"  {total}", style="dim")
            if unread:
                text.append(f" · {unread}", style="bold yellow")
        text.append("  ▼" if view.expanded else "  ▶", style="dim")
        self.update(text)


class ConversationBlock(Vertical):
    """One conversation view: header, then its entries and nested blocks."""

    class Loaded(Message):
        """Posted when the block's log finished loading (or failed)."""

        def __init__(self, view: ConversationView):
            super().__init__()
            self.view = view

    def __init__(self, view: ConversationView, show_header: bool = True, id: str = None):
        super().__init__(id=id, classes="conversation-block")
        self.view = view
        self.show_header = show_header
        self._header: Optional[BlockHeader] = None
        self._body: Optional[Vertical] = None

    def compose(self) -> ComposeResult:
        if self.show_header:
            self._header = BlockHeader(self)
            yield self._header
        self._body = Vertical(classes="block-body")
        yield self._body

    def on_mount(self) -> None:
        self.refresh_view()

    def toggle(self):
        self.view.toggle()
        self.refresh_view()

    def apply_ambient(self, expanded: bool):
        """Apply expand/collapse-all to this block and every nested block."""
        self.view.set_ambient_expanded(expanded)
        self.refresh_view()

    def mark_read(self, entry: Entry):
        if entry.id is None:
            return
        self.view.mark_read(entry.id)
        self.refresh_view()

    def refresh_view(self):
        """Rebuild header and body from the view's current state."""
        if self._header:
            self._header.refresh_text()
        if self.view.needs_load:
            # Load runs on the app so it outlives this block
            self.app.run_worker(self._load(self.view), exclusive=False)
        self._rebuild_body()

    async def _load(self, view: ConversationView):
        await view.load()
        self.app.post_message(self.Loaded(view))

    def _rebuild_body(self):
        if self._body is None:
            return
        self._body.remove_children()
        self.set_class(self.view.expanded, "expanded")

        if not self.view.expanded:
            return
        if self.view.load_state in (LoadState.IDLE, LoadState.LOADING):
            self._body.mount(Static("Loading...", classes="loading"))
            return

        widgets = []
        for item in self.view.items():
            if isinstance(item, EntryItem):
                text = build_entry_text(
                    item.entry,
                    is_read=item.is_read,
                    dangers=self.view.dangers_for(item.entry),
                    expanded=self.view.ambient_expanded,
                )
                if text is not None:
                    widgets.append(EntryWidget(item.entry, text, self))
            elif isinstance(item, NestedItem):
                widgets.append(ConversationBlock(item.view))
            elif isinstance(item, ReadMarkerItem):
                widgets.append(Static(Text(f"── {item.text} ──", style="bold yellow"), classes="read-marker"))
        if widgets:
            self._body.mount(*widgets)
