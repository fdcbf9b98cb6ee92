"""CSS styles for the session threads TUI."""

APP_CSS = """
#conversation-scroll {
    height: 1fr;
    border: solid $primary;
    padding: 0 1;
    scrollbar-gutter: stable;
}

#status-bar {
    height: 1;
    padding: 0 1;
    background: $surface;
}

.conversation-block {
    height: auto;
}

.block-body {
    height: auto;
}

ConversationBlock ConversationBlock {
    border-left: thick $warning;
    padding-left: 1;
    margin: 0 0 1 2;
}

.block-header {
    height: 1;
    background: $surface;
}

.block-header:hover {
    background: $surface-lighten-1;
}

.entry {
    height: auto;
}

.entry:hover {
    background: $surface-lighten-1;
}

.read-marker {
    height: 1;
    content-align: center middle;
    color: $warning;
}

.loading {
    height: 1;
    color: $text-muted;
    padding: 0 1;
}

Footer {
    background: $surface;
}
"""
