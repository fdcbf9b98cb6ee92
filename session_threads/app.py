"""Session Threads TUI application."""

import logging
from typing import Optional

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import ScrollableContainer
from textual.widgets import Footer, Header, Static

from .cache import ProgressStore
from .models import DangerHit, SpawnedConversation
from .resolver import ConversationView, ViewContext
from .sources import LogSource
from .ui import APP_CSS, ConversationBlock

logger = logging.getLogger(__name__)


class SessionThreadsApp(App):
    """TUI showing one session with its sub-agents nested inline."""

    CSS = APP_CSS

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("e", "expand_all", "Expand All"),
        Binding("c", "collapse_all", "Collapse All"),
        Binding("j", "scroll_down", "Down", show=False),
        Binding("k", "scroll_up", "Up", show=False),
        Binding("home", "scroll_home", "Home", show=False),
        Binding("end", "scroll_end", "End", show=False),
    ]

    def __init__(
        self,
        source: LogSource,
        session: str,
        store: Optional[ProgressStore] = None,
        dangers: Optional[dict[str, list[DangerHit]]] = None,
        expand_all: bool = False,
    ):
        super().__init__()
        self.source = source
        self.session_name = session
        self.store = store or ProgressStore()
        self.dangers = dangers or {}
        self.initial_expand_all = expand_all
        self.root_view: Optional[ConversationView] = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static("", id="status-bar")
        yield ScrollableContainer(id="conversation-scroll")
        yield Footer()

    def on_mount(self):
        """Resolve the session, then scan for spawned sub-agents in the background."""
        key, filename = self.source.resolve_log(self.session_name)
        self.title = f"Session Threads · {key}"
        self.query_one("#status-bar", Static).update(Text("Loading sessions...", style="dim"))
        self._load_registry_background(key, filename)

    @work(thread=True)
    def _load_registry_background(self, key: str, filename: str):
        """Build the spawned-conversation registry off the event loop."""
        spawned = self.source.load_spawn_registry()
        self.call_from_thread(self._on_registry_loaded, key, filename, spawned)

    def _on_registry_loaded(self, key: str, filename: str, spawned: dict[str, SpawnedConversation]):
        """Build the root view once the registry is ready."""
        context = ViewContext(
            source=self.source,
            spawned=spawned,
            progress=self.store,
            dangers=self.dangers,
            on_mark_read=self._on_mark_read,
        )
        self.root_view = ConversationView(
            key=key,
            filename=filename,
            context=context,
            ambient_expanded=self.initial_expand_all,
        )
        # The top-level session is always shown
        self.root_view.manual_expanded = True

        scroll = self.query_one("#conversation-scroll", ScrollableContainer)
        scroll.mount(ConversationBlock(self.root_view, show_header=False, id="root-block"))
        self._update_status_bar()

    def _on_mark_read(self, key: str, entry_id: str):
        logger.debug(f"Marked {key} read up to {entry_id}")
        self.store.mark_read(key, entry_id)
        self.store.save()
        self._update_status_bar()

    def _update_status_bar(self):
        status = self.query_one("#status-bar", Static)
        text = Text()
        text.append(f"{self.source.icon} ", style="bold")
        text.append(self.root_view.key if self.root_view else self.session_name, style="cyan")
        if self.root_view:
            stats = self.root_view.header_stats()
            if stats:
                text.append(f" │ {stats}", style="dim")
        text.append(" │ click a message to mark it read", style="dim")
        status.update(text)

    def on_conversation_block_loaded(self, event: ConversationBlock.Loaded):
        """Refresh whichever blocks currently show the loaded view."""
        for block in self.query(ConversationBlock):
            if block.view is event.view:
                block.refresh_view()
        if event.view is self.root_view:
            self._update_status_bar()

    def _root_block(self) -> Optional[ConversationBlock]:
        blocks = self.query("#root-block").results(ConversationBlock)
        return next(iter(blocks), None)

    def action_expand_all(self):
        block = self._root_block()
        if block:
            block.apply_ambient(True)

    def action_collapse_all(self):
        block = self._root_block()
        if block:
            block.apply_ambient(False)

    def action_scroll_down(self):
        self.query_one("#conversation-scroll", ScrollableContainer).scroll_down()

    def action_scroll_up(self):
        self.query_one("#conversation-scroll", ScrollableContainer).scroll_up()

    def action_scroll_home(self):
        self.query_one("#conversation-scroll", ScrollableContainer).scroll_home()

    def action_scroll_end(self):
        self.query_one("#conversation-scroll", ScrollableContainer).scroll_end()

    def on_unmount(self):
        self.store.save()
